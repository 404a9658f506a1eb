from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Europe/Moscow"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


@dataclass(frozen=True)
class Post:
    channel: str
    author: str
    timestamp: datetime
    text: str
    images: tuple[str, ...] = ()
    videos: tuple[str, ...] = ()
    display_timezone: str = field(default=DEFAULT_TIMEZONE, compare=False)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError(f"post from {self.channel} has no text")
        if self.timestamp.tzinfo is None:
            raise ValueError("post timestamp must be timezone-aware")
        if not self.author:
            object.__setattr__(self, "author", self.channel)
        object.__setattr__(self, "images", tuple(self.images))
        object.__setattr__(self, "videos", tuple(self.videos))

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.astimezone(ZoneInfo(self.display_timezone)).strftime(DISPLAY_FORMAT)


@dataclass(frozen=True)
class SinglePostContent:
    text: str | None = None
    images: tuple[str, ...] = ()
    videos: tuple[str, ...] = ()

    @property
    def has_media(self) -> bool:
        return bool(self.images or self.videos)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one page fetch. Network and HTTP failures land here instead of raising."""

    url: str
    status: int = 0
    html: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and 200 <= self.status < 300
