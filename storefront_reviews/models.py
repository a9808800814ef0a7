from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import DEFAULT_LANG, DEFAULT_COUNTRY


@dataclass(frozen=True)
class ReviewRecord:
    id: str
    author_name: str
    body: Optional[str]
    rating: int
    submitted_at: str
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlayReview(ReviewRecord):
    thumbs_up: int = 0
    reply_body: Optional[str] = None
    reply_at: Optional[str] = None


@dataclass(frozen=True)
class AppStoreReview(ReviewRecord):
    title: str = ""
    permalink: str = ""


@dataclass(frozen=True)
class TokenCursor:
    """Server-issued continuation token, handed back verbatim. None only before the first page."""
    value: Any = None

    def after_failure(self) -> "TokenCursor":
        return self

    def describe(self) -> str:
        return "token:start" if self.value is None else "token"


@dataclass(frozen=True)
class PageCursor:
    """Client-incremented, 1-based page index."""
    number: int = 1

    def next(self) -> "PageCursor":
        return PageCursor(self.number + 1)

    def after_failure(self) -> "PageCursor":
        return self.next()

    def describe(self) -> str:
        return f"page:{self.number}"


Cursor = Union[TokenCursor, PageCursor]


@dataclass(frozen=True)
class Page:
    records: List[ReviewRecord]
    next_cursor: Optional[Cursor]
    page_size: int


@dataclass(frozen=True)
class AggregationRequest:
    app_id: str
    target_count: int
    lang: Optional[str] = DEFAULT_LANG
    country: str = DEFAULT_COUNTRY
    sort: str = ""

    def __post_init__(self):
        if not self.app_id:
            raise ValueError("app_id is required")
        if self.target_count < 1:
            raise ValueError("target_count must be at least 1")


@dataclass(frozen=True)
class PageEvent:
    attempt: int
    cursor: str
    requested: int
    received: int = 0
    duplicates: int = 0
    error: Optional[str] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregationResult:
    records: Tuple[ReviewRecord, ...]
    reached_target: bool
    exhausted: bool
    partial: bool = False
    error: Optional[str] = None
    events: Tuple[PageEvent, ...] = field(default_factory=tuple)

    @property
    def has_more(self) -> bool:
        return not self.exhausted


@dataclass(frozen=True)
class ExportInfo:
    file_path: str
    file_name: str
    file_size: int
    file_size_formatted: str
    review_count: int
    created_at: str
    modified_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
