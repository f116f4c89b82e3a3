import pytest
from pydantic import TypeAdapter, ValidationError

from ghstargazers.models import (
    Absent,
    EnrichedUser,
    ItemOutcome,
    ProgressEvent,
    ProgressUpdate,
    RawStargazer,
    RunComplete,
    UserProfile,
)


def test_name_falls_back_to_login_and_counts_to_zero():
    prof = UserProfile(login="octocat", name=None, followers=None, public_repos=None)
    user = EnrichedUser.from_profile(prof, total_stars=0)

    assert user.name == "octocat"
    assert (user.followers, user.following, user.public_repos) == (0, 0, 0)
    assert user.total_stars == 0


def test_enriched_user_is_read_only():
    user = EnrichedUser(login="octocat", name="Octo")
    with pytest.raises(ValidationError):
        user.total_stars = 5


def test_negative_counts_rejected():
    with pytest.raises(ValidationError):
        EnrichedUser(login="octocat", name="Octo", total_stars=-1)


def test_empty_login_rejected():
    with pytest.raises(ValidationError):
        RawStargazer(login="")


def test_events_round_trip_through_discriminator():
    adapter = TypeAdapter(ProgressEvent)
    event = adapter.validate_python(
        {"type": "complete", "message": "done", "users": [], "total": 0}
    )
    assert isinstance(event, RunComplete)

    outcome = TypeAdapter(ItemOutcome).validate_python({"kind": "absent", "login": "x"})
    assert outcome == Absent(login="x")


@pytest.mark.parametrize(
    "message, warning",
    [
        ("Processed 5 of 10 users", False),
        ("Error fetching page 2: boom. Retrying... (1/5)", True),
        ("Skipping batch 1-5 after 3 failed attempts", True),
    ],
)
def test_warning_messages(message, warning):
    assert ProgressUpdate(message=message, phase="enriching").is_warning is warning
