from fastapi import Request

from schema.security import RefreshTokenRequest
from security.transport import read_access_token, read_refresh_token


def make_request(cookie: str = "") -> Request:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request({"type": "http", "headers": headers})


def test_bearer_header_takes_precedence_over_access_cookie():
    request = make_request("accessToken=stale-cookie")

    assert read_access_token(request, "fresh-header") == "fresh-header"


def test_access_cookie_is_used_without_header():
    assert read_access_token(make_request("accessToken=from-cookie"), None) == "from-cookie"


def test_no_access_token_anywhere():
    assert read_access_token(make_request(), None) is None


def test_refresh_cookie_is_read_before_body():
    request = make_request("refreshToken=from-cookie")

    assert read_refresh_token(request, RefreshTokenRequest(refresh_token="from-body")) == "from-cookie"


def test_refresh_body_is_used_without_cookie():
    assert read_refresh_token(make_request(), RefreshTokenRequest(refresh_token="from-body")) == "from-body"
    assert read_refresh_token(make_request(), None) is None
