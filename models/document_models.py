from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Document:
    """A persisted markdown article.

    Attributes:
        name: Normalized file name (always carries the `.md` extension).
        content: Full markdown text.
    """

    name: str
    content: str


@dataclass
class DocumentInfo:
    """Size and timestamp details for one stored article."""

    name: str
    bytes: int
    line_count: int
    modified_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.name,
            "size": self.bytes,
            "lines": self.line_count,
            "modified": self.modified_at,
        }


@dataclass
class StoreStats:
    """Aggregate statistics returned by `DocumentStore.stats()`."""

    count: int = 0
    total_bytes: int = 0
    documents: List[DocumentInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalArticles": self.count,
            "totalSize": self.total_bytes,
            "articles": [doc.to_dict() for doc in self.documents],
        }
