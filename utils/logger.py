"""Logfire instrumentation for the application."""

import logfire


def instrument_libraries():
    """Instrument the libraries the API talks through: Cloudinary uploads (httpx) and MongoDB."""
    logfire.instrument_httpx()
    logfire.instrument_pymongo()
