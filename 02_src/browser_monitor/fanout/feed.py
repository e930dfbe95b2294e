"""Live feed subscriber keeping the most recent published requests."""

import copy
from collections import deque

from ..config import LIVE_FEED_SIZE
from ..models import NetworkRequest


class LiveFeed:
    """Bounded buffer of recently published requests, oldest first."""

    def __init__(self, maxlen: int = LIVE_FEED_SIZE):
        self._items: deque[NetworkRequest] = deque(maxlen=maxlen)

    async def handle(self, request: NetworkRequest) -> None:
        # Snapshot: the tracker keeps mutating its own record
        self._items.append(copy.deepcopy(request))

    def recent(self) -> list[NetworkRequest]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
