"""Data models for readlater.

This module defines the article record shared by the remote API and the local
cache, plus the queue entries and result types returned by the sync layer.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


def _opt_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class Article:
    """Represents a saved article as known to the remote service."""

    url: str
    id: Optional[int] = None
    title: str = ""
    excerpt: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    image: Optional[str] = None
    archived: bool = False
    created_at: Optional[str] = None
    read_at: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Article":
        """Build an Article from a JSON object sent by the remote.

        The reference server names some fields ``image_url`` and
        ``saved_at``; those are accepted when the canonical names are absent.
        Only the single-article endpoint fills in ``tags``.
        """
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            url=str(data.get("url") or ""),
            title=str(data.get("title") or ""),
            excerpt=_opt_str(data.get("excerpt")),
            content=_opt_str(data.get("content")),
            author=_opt_str(data.get("author")),
            image=_opt_str(data.get("image") or data.get("image_url")),
            archived=bool(data.get("archived", False)),
            created_at=_opt_str(data.get("created_at") or data.get("saved_at")),
            read_at=_opt_str(data.get("read_at")),
            tags=[str(tag) for tag in data.get("tags") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Tag:
    """A tag as listed by the remote."""

    id: int
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Tag":
        return cls(id=int(data["id"]), name=str(data["name"]))


@dataclass
class PendingWrite:
    """A create-article request waiting to be replayed against the remote."""

    seq: int
    url: str
    enqueued_at: str
    attempts: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ViewFilter:
    """Filter state observed by the article list view.

    A non-empty search_query takes precedence over tag, and a non-empty tag
    takes precedence over archived_only.
    """

    archived_only: bool = False
    search_query: str = ""
    tag: str = ""

    @property
    def is_search(self) -> bool:
        return bool(self.search_query)

    @property
    def is_tag(self) -> bool:
        return bool(self.tag) and not self.is_search


class SaveStatus(str, Enum):
    """Outcome of a save request."""

    SAVED = "saved"
    QUEUED = "queued"
    FAILED = "failed"


@dataclass
class SaveOutcome:
    """Result of SyncCoordinator.save_article."""

    status: SaveStatus
    article: Optional[Article] = None
    pending: Optional[PendingWrite] = None
    error: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.status is SaveStatus.SAVED

    @property
    def queued(self) -> bool:
        return self.status is SaveStatus.QUEUED


@dataclass
class WriteResult:
    """Result of a pessimistic write (archive, read, delete, tag changes)."""

    success: bool
    error: Optional[str] = None
    article: Optional[Article] = None


@dataclass
class DrainReport:
    """Summary of one pass over the pending-write queue."""

    replayed: List[Article] = field(default_factory=list)
    dead_lettered: List[PendingWrite] = field(default_factory=list)
    remaining: int = 0
    stopped_error: Optional[str] = None
    offline: bool = False
    skipped: bool = False
