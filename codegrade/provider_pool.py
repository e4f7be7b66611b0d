"""Round-robin pool of Judge0 provider configurations."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str = ""
    rapidapi_host: str = ""  # set for RapidAPI-hosted deployments

    @classmethod
    def from_dict(cls, data: dict) -> ProviderConfig:
        if not data.get("base_url"):
            raise ValueError(f"Provider entry is missing 'base_url': {data!r}")
        return cls(
            name=data.get("name") or data["base_url"],
            base_url=data["base_url"].rstrip("/"),
            api_key=data.get("api_key", ""),
            rapidapi_host=data.get("rapidapi_host", ""),
        )


class ProviderPool:
    """Fixed priority list of providers plus a shared cursor.

    The cursor is never reset to the first provider: after a failure the next
    call, from any request, starts at the failed provider's successor.
    """

    def __init__(self, providers: list[ProviderConfig]) -> None:
        if not providers:
            raise ValueError("ProviderPool needs at least one provider")
        self._providers = list(providers)
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def providers(self) -> list[ProviderConfig]:
        return list(self._providers)

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    def current(self) -> ProviderConfig:
        with self._lock:
            return self._providers[self._index]

    def advance(self, failed: ProviderConfig | None = None) -> ProviderConfig:
        """Move the cursor to the next provider and return it.

        With *failed*, the move only happens if the cursor still points at that
        provider, so two requests failing on the same provider advance once.
        """
        with self._lock:
            if failed is not None and self._providers[self._index] != failed:
                return self._providers[self._index]
            self._index = (self._index + 1) % len(self._providers)
            config = self._providers[self._index]
        logger.info("Switching to %s provider (%s)", config.name, config.base_url)
        return config
