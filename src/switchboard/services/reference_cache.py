"""Reference cache: message id -> channel context.

Slack identifies a message by its ``ts``, which is only unique inside one
channel, so editing, deleting or reacting needs the channel too. Adapters for
such platforms remember the context of every message they send or receive and
resolve bare ids through this cache. A full message reference never touches
the cache.

Entries are evicted by whichever comes first: capacity (least recently used)
or age (TTL).
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import assert_never

from switchboard.errors import MessageContextNotFoundError
from switchboard.models.message import FullMessageRef, MessageIdRef, MessageRef, UnifiedMessage
from switchboard.models.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1000
DEFAULT_CACHE_TTL_MS = 60 * 60 * 1000
DEFAULT_STATS_INTERVAL = 1000


@dataclass(frozen=True)
class MessageContext:
    channel_id: str
    thread_id: str | None
    timestamp: datetime

    @classmethod
    def from_message(cls, message: UnifiedMessage) -> "MessageContext":
        return cls(
            channel_id=message.channel_id,
            thread_id=message.thread_id,
            timestamp=message.timestamp,
        )


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    size: int

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.lookups if self.lookups else 0.0


class CacheEntry:
    __slots__ = ("context", "inserted_at")

    def __init__(self, context: MessageContext, inserted_at: float) -> None:
        self.context = context
        self.inserted_at = inserted_at


class ReferenceCache:
    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        *,
        platform: str = "",
        stats_interval: int = DEFAULT_STATS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_ms / 1000
        self._platform = platform
        self._stats_interval = stats_interval
        self._clock = clock
        self._hits = 0
        self._misses = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_ms(self) -> int:
        return int(self._ttl * 1000)

    @property
    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        if not isinstance(message_id, str):
            return False
        entry = self._entries.get(message_id)
        return entry is not None and not self._is_expired(entry)

    def remember(self, message: UnifiedMessage) -> None:
        """Store (or overwrite) the context of a sent or received message."""
        self._entries[message.id] = CacheEntry(MessageContext.from_message(message), self._clock())
        self._entries.move_to_end(message.id)
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from %s reference cache (capacity)", evicted, self._label)

    def forget(self, message_id: str) -> bool:
        """Drop an entry, e.g. after the message was deleted."""
        return self._entries.pop(message_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def resolve(self, ref: MessageRef, operation: str) -> Result[MessageContext]:
        if isinstance(ref, FullMessageRef):
            return Ok(MessageContext.from_message(ref.message))
        if isinstance(ref, MessageIdRef):
            return self._lookup(ref.message_id, operation)
        assert_never(ref)

    def _lookup(self, message_id: str, operation: str) -> Result[MessageContext]:
        entry = self._entries.get(message_id)
        if entry is not None and self._is_expired(entry):
            del self._entries[message_id]
            entry = None

        if entry is None:
            self._misses += 1
            self._report()
            return Err(MessageContextNotFoundError(self._platform, message_id, operation))

        self._entries.move_to_end(message_id)
        self._hits += 1
        self._report()
        return Ok(entry.context)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.inserted_at > self._ttl

    def _report(self) -> None:
        stats = self.stats
        if self._stats_interval and stats.lookups % self._stats_interval == 0:
            logger.info(
                "%s reference cache hit rate: %.1f%% (%d/%d)",
                self._label,
                stats.hit_rate * 100,
                stats.hits,
                stats.lookups,
            )

    @property
    def _label(self) -> str:
        return self._platform.capitalize() or "Message"
