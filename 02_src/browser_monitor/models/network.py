"""Network request data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from ..config import DEFAULT_QUERY_LIMIT

SortField = Literal["timestamp", "response_size", "status"]
SortOrder = Literal["asc", "desc"]


@dataclass
class NetworkRequest:
    """One request reconstructed from its lifecycle events."""

    id: str
    timestamp: datetime
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    type: str = ""  # CDP resource type: "XHR", "Fetch", "Document", ...
    status: int = 0  # 0 until a response arrives
    response_headers: dict[str, str] = field(default_factory=dict)
    response_size: int = 0
    encoded_data_length: int | None = None
    response_body: str | None = None
    body: str | None = None  # request post data
    error: str | None = None

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC; the store always returns aware ones.
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)


@dataclass
class RequestFilter:
    """Live-feed filter applied before fan-out."""

    url_pattern: str | None = None
    types: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.url_pattern and self.types is None


@dataclass
class RequestQuery:
    """Predicate bundle over the request store. Unset fields are ignored."""

    type: str | None = None  # "all" disables the type predicate
    method: str | None = None
    status: int | None = None
    url: str | None = None  # substring
    start_time: datetime | None = None
    end_time: datetime | None = None
    min_response_size: int | None = None
    max_response_size: int | None = None
    min_status: int | None = None
    max_status: int | None = None
    url_pattern: str | None = None  # regular expression
    response_content_type: str | None = None  # substring of Content-Type
    error: str | None = None  # substring
    has_error: bool | None = None
    sort_by: SortField = "timestamp"
    sort_order: SortOrder = "desc"
    limit: int = DEFAULT_QUERY_LIMIT
    offset: int = 0


@dataclass
class RequestStats:
    """Aggregate counts over the request store."""

    total_count: int
    type_stats: dict[str, int] = field(default_factory=dict)
    status_stats: dict[int, int] = field(default_factory=dict)  # 0 = no response
