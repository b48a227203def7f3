"""Platform name -> adapter instance.

One adapter per platform. Registering the same platform twice replaces the
first adapter (last registration wins) and logs a warning.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchboard.platforms.base import PlatformAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    def __init__(self) -> None:
        self._adapters: dict[str, "PlatformAdapter"] = {}

    def register(self, platform: str, adapter: "PlatformAdapter") -> None:
        if platform in self._adapters:
            logger.warning(
                "Adapter for platform %r is already registered. Overwriting.", platform
            )
        self._adapters[platform] = adapter
        logger.debug("Registered %s for platform %r", type(adapter).__name__, platform)

    def get(self, platform: str) -> "PlatformAdapter | None":
        return self._adapters.get(platform)

    def has(self, platform: str) -> bool:
        return platform in self._adapters

    def registered_platforms(self) -> list[str]:
        return list(self._adapters)

    def clear(self) -> None:
        """Remove every adapter (between bot lifecycles or tests)."""
        self._adapters.clear()


# Default instance for the outermost composition point (main.py).
registry = AdapterRegistry()
