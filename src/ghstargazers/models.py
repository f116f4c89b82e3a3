"""Records and events exchanged between the engine and its caller."""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class RawStargazer(_Frozen):
    """One entry of the stargazers listing."""

    login: str = Field(min_length=1)
    starred_at: datetime | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "RawStargazer":
        # The star media type nests the user under "user"; the plain one doesn't.
        if "user" in item:
            return cls(login=item["user"]["login"], starred_at=item.get("starred_at"))
        return cls(login=item["login"], starred_at=item.get("starred_at"))


class UserProfile(BaseModel):
    login: str = Field(min_length=1)
    name: str | None = None
    avatar_url: str = ""
    html_url: str = ""
    followers: int | None = None
    following: int | None = None
    public_repos: int | None = None
    created_at: datetime | None = None
    location: str | None = None
    company: str | None = None
    blog: str | None = None
    bio: str | None = None


class RepoSummary(BaseModel):
    stargazers_count: int | None = None


class EnrichedUser(_Frozen):
    login: str = Field(min_length=1)
    name: str
    avatar_url: str = ""
    html_url: str = ""
    followers: int = Field(default=0, ge=0)
    following: int = Field(default=0, ge=0)
    public_repos: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    location: str | None = None
    company: str | None = None
    blog: str | None = None
    bio: str | None = None
    total_stars: int = Field(default=0, ge=0)
    starred_at: datetime | None = None

    @classmethod
    def from_profile(
        cls,
        profile: UserProfile,
        *,
        total_stars: int,
        starred_at: datetime | None = None,
    ) -> "EnrichedUser":
        return cls(
            login=profile.login,
            name=profile.name or profile.login,
            avatar_url=profile.avatar_url,
            html_url=profile.html_url,
            followers=profile.followers or 0,
            following=profile.following or 0,
            public_repos=profile.public_repos or 0,
            created_at=profile.created_at,
            location=profile.location,
            company=profile.company,
            blog=profile.blog,
            bio=profile.bio,
            total_stars=total_stars,
            starred_at=starred_at,
        )


# --- Per-item enrichment outcome ---


class Present(_Frozen):
    kind: Literal["present"] = "present"
    user: EnrichedUser


class Absent(_Frozen):
    """Upstream has no such user (404)."""

    kind: Literal["absent"] = "absent"
    login: str


class Failed(_Frozen):
    kind: Literal["failed"] = "failed"
    login: str
    reason: str


ItemOutcome = Annotated[Union[Present, Absent, Failed], Field(discriminator="kind")]


# --- Progress events ---

_WARNING_MARKERS = ("Error", "Retrying", "Skipping")


class ProgressUpdate(_Frozen):
    type: Literal["progress"] = "progress"
    message: str
    phase: Literal["collecting", "enriching"]
    total: int | None = None
    processed: int | None = None
    fetched: int | None = None
    users: tuple[EnrichedUser, ...] | None = None

    @property
    def is_warning(self) -> bool:
        return any(marker in self.message for marker in _WARNING_MARKERS)


class RunComplete(_Frozen):
    type: Literal["complete"] = "complete"
    message: str
    users: tuple[EnrichedUser, ...]
    total: int


class RunFailed(_Frozen):
    type: Literal["error"] = "error"
    message: str


ProgressEvent = Annotated[
    Union[ProgressUpdate, RunComplete, RunFailed], Field(discriminator="type")
]


class RunRequest(_Frozen):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    cap: int = Field(ge=1)
    token: str = Field(min_length=1, repr=False)

    @field_validator("owner", "repo", "token", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class RunResult(_Frozen):
    status: Literal["complete", "error", "stopped"]
    message: str
    users: tuple[EnrichedUser, ...] = ()
