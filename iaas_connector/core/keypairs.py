"""Per-region cache of generated key pairs.

The cache keeps one default key pair per region so instances created without
explicit credentials can still be reached over SSH. Every lookup checks the
cached name against the provider and recreates the key pair when it has been
deleted remotely, so a name handed out by the cache is never rejected at
instance creation time.

Concurrency: the mapping is guarded by one lock, held only around dict
access. Remote calls happen outside of it, so two concurrent misses for the
same region may both create a key pair; the last write wins. Both key pairs
exist remotely, which is all the cache promises.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from iaas_connector.core.errors import BackendError
from iaas_connector.core.interfaces import KeyPairGateway
from iaas_connector.core.models import KeyPairRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPairResolution:
    """Outcome of KeyPairCache.resolve.

    ``key_pair`` is None when the key pair could not be created; ``error``
    then holds the cause.
    """

    region: str
    key_pair: KeyPairRecord | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.key_pair is not None

    def unwrap(self) -> KeyPairRecord:
        if self.key_pair is None:
            raise BackendError(f"No usable key pair in region {self.region}") from self.error
        return self.key_pair


class KeyPairCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_region: dict[str, KeyPairRecord] = {}

    def peek(self, region: str) -> KeyPairRecord | None:
        """Return the cached record for a region without contacting the provider."""
        with self._lock:
            return self._by_region.get(region)

    def resolve(self, region: str, gateway: KeyPairGateway) -> KeyPairResolution:
        """Return a key pair that exists remotely in ``region``, creating one if needed."""
        cached = self.peek(region)

        if cached is not None:
            remote_names = gateway.list_key_pairs(region, cached.name)
            if cached.name in remote_names:
                return KeyPairResolution(region, key_pair=cached)
            logger.info(
                "Cached key pair %s no longer exists in region %s, recreating",
                cached.name,
                region,
            )

        try:
            created = gateway.create_key_pair(region)
        except BackendError as exc:
            logger.warning("Cannot create key pair in region %s", region, exc_info=True)
            return KeyPairResolution(region, error=exc)

        with self._lock:
            self._by_region[region] = created
        logger.info("Created key pair %s in region %s", created.name, region)
        return KeyPairResolution(region, key_pair=created)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_region)
