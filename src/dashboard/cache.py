"""
Memoised derived state for chart specifications.

Entries are keyed by ``(dataset_version, size_version, params)``. Any change
of dataset or viewport version drops every entry computed for the old
versions, so stale specs are never served.
"""

import logging
from typing import Callable, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DerivedStateCache:
    """Cache of values derived from the current dataset and viewport."""

    def __init__(self) -> None:
        self._entries: dict[tuple[Hashable, ...], object] = {}
        self._versions: dict[str, tuple[str, int]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(
        self,
        namespace: str,
        dataset_version: str,
        size_version: int,
        params: tuple[Hashable, ...],
        compute: Callable[[], T],
    ) -> T:
        """
        Return the cached value or compute and store it.

        Args:
            namespace: Independent slot (one per chart)
            dataset_version: Version of the dataset the value derives from
            size_version: Version of the viewport size
            params: Any further inputs (filter, animation index)
            compute: Zero-argument function producing the value
        """
        versions = (dataset_version, size_version)
        if self._versions.get(namespace) != versions:
            self._drop(namespace)
            self._versions[namespace] = versions

        key = (namespace, dataset_version, size_version, *params)
        if key in self._entries:
            self.hits += 1
            return self._entries[key]  # type: ignore[return-value]

        self.misses += 1
        value = compute()
        self._entries[key] = value
        return value

    def invalidate(self, namespace: str | None = None) -> None:
        """Drop one namespace, or everything."""
        if namespace is None:
            self._entries.clear()
            self._versions.clear()
            return
        self._drop(namespace)
        self._versions.pop(namespace, None)

    def _drop(self, namespace: str) -> None:
        stale = [k for k in self._entries if k[0] == namespace]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Dropped {len(stale)} stale {namespace} entries")
