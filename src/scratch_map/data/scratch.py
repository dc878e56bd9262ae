"""Countries the user has revealed by hand."""

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Iterator, Set

from scratch_map.data.store import JsonFileStore

LOGGER = logging.getLogger(__name__)

SCRATCH_KEY = "scratch-map-scratched-countries"


class ScratchSet:
    """Set of country identifiers, persisted on every mutation."""

    def __init__(self, store: JsonFileStore) -> None:
        self._store = store
        self._ids: Set[str] = set()
        self.version = 0

        stored = store.get(SCRATCH_KEY, [])
        if isinstance(stored, list):
            self._ids = {item for item in stored if isinstance(item, str)}
        else:
            LOGGER.warning("Ignoring malformed scratch list in %s", store.path)

    def __contains__(self, country_id: object) -> bool:
        return country_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._ids)

    def add(self, country_id: str) -> bool:
        if country_id in self._ids:
            return False
        self._ids.add(country_id)
        self._persist()
        return True

    def discard(self, country_id: str) -> bool:
        if country_id not in self._ids:
            return False
        self._ids.remove(country_id)
        self._persist()
        return True

    def toggle(self, country_id: str) -> bool:
        """Flip membership and return the new state."""
        if country_id in self._ids:
            self.discard(country_id)
            return False
        self.add(country_id)
        return True

    def update(self, country_ids: Iterable[str]) -> int:
        added = {item for item in country_ids if item not in self._ids}
        if added:
            self._ids |= added
            self._persist()
        return len(added)

    def clear(self) -> None:
        if self._ids:
            self._ids.clear()
            self._persist()

    def _persist(self) -> None:
        self.version += 1
        self._store.set(SCRATCH_KEY, sorted(self._ids))
        LOGGER.debug("Persisted %d scratched countries", len(self._ids))


__all__ = ["SCRATCH_KEY", "ScratchSet"]
