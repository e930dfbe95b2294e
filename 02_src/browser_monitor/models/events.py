"""Request lifecycle events delivered by an event source."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class EventKind(str, Enum):
    """CDP Network domain events the tracker consumes."""

    REQUEST_STARTED = "Network.requestWillBeSent"
    RESPONSE_RECEIVED = "Network.responseReceived"
    LOAD_FINISHED = "Network.loadingFinished"
    LOAD_FAILED = "Network.loadingFailed"


@dataclass
class RequestStarted:
    request_id: str
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    type: str = ""
    body: str | None = None


@dataclass
class ResponseReceived:
    request_id: str
    status: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class LoadFinished:
    request_id: str
    encoded_data_length: int = 0


@dataclass
class LoadFailed:
    request_id: str
    error_text: str | None = None


NetworkEvent = Union[RequestStarted, ResponseReceived, LoadFinished, LoadFailed]
