"""Recompute reveal results only when one of their inputs changed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Set, Tuple

from scratch_map.data.countries import Country
from scratch_map.data.scratch import ScratchSet
from scratch_map.geometry.disks import CoverageDisk
from scratch_map.reveal.matcher import (
    RevealedCountries,
    compute_revealed_countries,
    is_country_covered,
    is_country_scratched,
    total_covered_area,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevealSummary:
    revealed_countries: RevealedCountries
    covered_ids: FrozenSet[str]
    scratched_ids: FrozenSet[str]
    total_area_km2: float

    @property
    def revealed_ids(self) -> FrozenSet[str]:
        return self.covered_ids | self.scratched_ids


class RevealEngine:
    """Holds countries, disks and the scratch set; caches the derived summary.

    The cache key is the tuple of input versions. Replacing countries or disks
    bumps their version; the scratch set bumps its own on every real mutation.
    """

    def __init__(self, scratch_set: ScratchSet) -> None:
        self._scratch_set = scratch_set
        self._countries: List[Country] = []
        self._disks: List[CoverageDisk] = []
        self._countries_version = 0
        self._disks_version = 0
        self._cached_key: Optional[Tuple[int, int, int]] = None
        self._cached: Optional[RevealSummary] = None
        self.computations = 0

    @property
    def countries(self) -> Sequence[Country]:
        return tuple(self._countries)

    @property
    def disks(self) -> Sequence[CoverageDisk]:
        return tuple(self._disks)

    @property
    def scratch_set(self) -> ScratchSet:
        return self._scratch_set

    def set_countries(self, countries: Sequence[Country]) -> None:
        self._countries = list(countries)
        self._countries_version += 1

    def set_disks(self, disks: Sequence[CoverageDisk]) -> None:
        self._disks = list(disks)
        self._disks_version += 1

    def _key(self) -> Tuple[int, int, int]:
        return (self._countries_version, self._disks_version, self._scratch_set.version)

    def summary(self) -> RevealSummary:
        key = self._key()
        if self._cached is not None and key == self._cached_key:
            return self._cached

        scratched = self._scratch_set.snapshot()
        covered_ids: Set[str] = set()
        scratched_ids: Set[str] = set()
        for country in self._countries:
            if is_country_scratched(country, scratched):
                scratched_ids.add(country.identifier)
            if is_country_covered(country, self._disks):
                covered_ids.add(country.identifier)

        summary = RevealSummary(
            revealed_countries=compute_revealed_countries(self._countries, self._disks),
            covered_ids=frozenset(covered_ids),
            scratched_ids=frozenset(scratched_ids),
            total_area_km2=total_covered_area(self._disks),
        )
        self.computations += 1
        self._cached_key = key
        self._cached = summary
        LOGGER.debug(
            "Recomputed reveal summary: %d covered, %d scratched, %d visited",
            len(summary.covered_ids),
            len(summary.scratched_ids),
            summary.revealed_countries.count,
        )
        return summary

    def is_revealed(self, country: Country) -> bool:
        return country.identifier in self.summary().revealed_ids


__all__ = ["RevealEngine", "RevealSummary"]
