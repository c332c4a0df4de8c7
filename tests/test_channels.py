from bson import ObjectId

from schema.users import ChannelProfile
from services.channels import channel_profile_pipeline, to_watch_history, watch_history_pipeline


def test_channel_profile_pipeline_matches_lowercased_username():
    pipeline = channel_profile_pipeline("  SomeChannel ")

    assert pipeline[0] == {"$match": {"username": "somechannel"}}


def test_channel_profile_pipeline_joins_both_subscription_sides():
    lookups = [stage["$lookup"] for stage in channel_profile_pipeline("abc") if "$lookup" in stage]

    assert {(lookup["foreignField"], lookup["as"]) for lookup in lookups} == {
        ("channel", "subscribers"),
        ("subscriber", "subscribed_to"),
    }
    assert all(lookup["from"] == "subscriptions" and lookup["localField"] == "_id" for lookup in lookups)


def test_channel_profile_pipeline_checks_viewer_subscription():
    viewer_id = "64b7f0c2a1b2c3d4e5f60718"

    add_fields = channel_profile_pipeline("abc", viewer_id)[3]["$addFields"]

    viewer, subscribers = add_fields["is_subscribed"]["$cond"]["if"]["$in"]
    assert str(viewer) == viewer_id
    assert subscribers == "$subscribers.subscriber"


def test_channel_profile_pipeline_never_projects_secrets():
    projection = channel_profile_pipeline("abc")[-1]["$project"]

    assert "password" not in projection
    assert "refresh_token" not in projection
    assert projection["_id"] == 0


def test_channel_profile_from_aggregation_row():
    row = {
        "full_name": "Abc Def",
        "username": "abc",
        "email": "a@b.com",
        "avatar": "https://assets.test/avatar.png",
        "cover_image": "",
        "subscribers_count": 3,
        "channels_subscribed_to_count": 1,
        "is_subscribed": True,
    }

    dumped = ChannelProfile(**row).model_dump(by_alias=True)

    assert dumped["subscribersCount"] == 3
    assert dumped["channelsSubscribedToCount"] == 1
    assert dumped["isSubscribed"] is True


def test_watch_history_pipeline_matches_user_and_joins_owner():
    user_id = "64b7f0c2a1b2c3d4e5f60718"

    pipeline = watch_history_pipeline(user_id)

    assert str(pipeline[0]["$match"]["_id"]) == user_id
    lookup = pipeline[1]["$lookup"]
    assert lookup["from"] == "videos"
    assert lookup["localField"] == "watch_history"
    owner_lookup = lookup["pipeline"][0]["$lookup"]
    assert owner_lookup["from"] == "users"
    assert owner_lookup["pipeline"] == [{"$project": {"full_name": 1, "username": 1, "avatar": 1}}]


def test_to_watch_history_flattens_owner():
    video_id = ObjectId()
    videos = [
        {
            "_id": video_id,
            "title": "First video",
            "thumbnail": "https://assets.test/thumb.png",
            "video_file": "https://assets.test/video.mp4",
            "duration": 12.5,
            "views": 7,
            "owner": {"_id": ObjectId(), "full_name": "Abc Def", "username": "abc", "avatar": "https://assets.test/a.png"},
        },
        {
            "_id": ObjectId(),
            "title": "Orphaned",
            "thumbnail": "",
            "video_file": "https://assets.test/orphan.mp4",
        },
    ]

    entries = to_watch_history(videos)

    assert entries[0].id == str(video_id)
    assert entries[0].owner.username == "abc"
    assert entries[0].model_dump(by_alias=True)["videoFile"] == "https://assets.test/video.mp4"
    assert entries[1].owner is None
