"""Google Geocoding client backed by a bundled dataset plus a persistent overlay."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import requests

from scratch_map.config import Settings
from scratch_map.data.places import GeocodedPlace, Place, search_query
from scratch_map.data.store import JsonFileStore

LOGGER = logging.getLogger(__name__)

GEOCODE_CACHE_KEY = "scratch-map-geocode-cache"
GEOCODE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(RuntimeError):
    pass


class ApiKeyInvalidError(GeocodingError):
    pass


class QuotaExceededError(GeocodingError):
    pass


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lng: float
    formatted_address: Optional[str] = None
    place_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"lat": self.lat, "lng": self.lng, "formattedAddress": self.formatted_address}
        if self.place_id:
            payload["placeId"] = self.place_id
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional["GeocodeResult"]:
        try:
            return cls(
                lat=float(data["lat"]),
                lng=float(data["lng"]),
                formatted_address=data.get("formattedAddress"),
                place_id=data.get("placeId"),
            )
        except (KeyError, TypeError, ValueError):
            return None


def normalize_query(query: str) -> str:
    return query.lower()


class GeocodeCache:
    """Bundled results merged with an overlay; the overlay wins on collisions."""

    def __init__(self, bundled: Mapping[str, Mapping[str, Any]], store: JsonFileStore) -> None:
        self._bundled = {normalize_query(key): dict(value) for key, value in bundled.items()}
        self._store = store

    @classmethod
    def from_file(cls, path: Path, store: JsonFileStore) -> "GeocodeCache":
        bundled: Mapping[str, Mapping[str, Any]] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    bundled = json.load(handle).get("places") or {}
            except (OSError, ValueError, AttributeError) as exc:
                LOGGER.warning("Ignoring bundled geocode data %s: %s", path, exc)
                bundled = {}
        return cls(bundled, store)

    def _overlay(self) -> Dict[str, Dict[str, Any]]:
        overlay = self._store.get(GEOCODE_CACHE_KEY, {})
        return overlay if isinstance(overlay, dict) else {}

    def entries(self) -> Dict[str, Dict[str, Any]]:
        return {**self._bundled, **self._overlay()}

    def get(self, query: str) -> Optional[GeocodeResult]:
        entry = self.entries().get(normalize_query(query))
        if not entry:
            return None
        return GeocodeResult.from_dict(entry)

    def __contains__(self, query: object) -> bool:
        return isinstance(query, str) and self.get(query) is not None

    def put(self, query: str, result: GeocodeResult) -> None:
        overlay = self._overlay()
        overlay[normalize_query(query)] = result.to_dict()
        self._store.set(GEOCODE_CACHE_KEY, overlay)

    def clear(self) -> None:
        self._store.remove(GEOCODE_CACHE_KEY)

    def stats(self) -> Dict[str, int]:
        entries = self.entries()
        return {"total_cached": len(entries), "cache_size": len(json.dumps(entries))}


class GeocodingClient:
    """Resolves addresses through the Geocoding API, one request at a time."""

    def __init__(
        self,
        settings: Settings,
        cache: GeocodeCache,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_key = settings.require_api_key()
        self._cache = cache
        self._session = session or requests.Session()
        self._request_delay = settings.request_delay
        self._quota_backoff = settings.quota_backoff
        self._sleep = sleep

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        if not address:
            raise ValueError("address is required")

        cached = self._cache.get(address)
        if cached is not None:
            return cached

        response = self._session.get(
            GEOCODE_API_URL,
            params={"address": address, "key": self._api_key},
            timeout=10,
        )
        response.raise_for_status()
        data = response.json()
        status = data.get("status")

        if status == "OK" and data.get("results"):
            first = data["results"][0]
            location = first["geometry"]["location"]
            result = GeocodeResult(
                lat=float(location["lat"]),
                lng=float(location["lng"]),
                formatted_address=first.get("formatted_address"),
                place_id=first.get("place_id"),
            )
            self._cache.put(address, result)
            return result
        if status == "ZERO_RESULTS":
            LOGGER.warning("No results for: %s", address)
            return None
        if status == "REQUEST_DENIED":
            raise ApiKeyInvalidError("API request denied; check GOOGLE_MAPS_API_KEY")
        if status == "OVER_QUERY_LIMIT":
            raise QuotaExceededError("Geocoding API quota exceeded")
        LOGGER.error("Geocoding error for %s: %s", address, status)
        return None

    def geocode_places(
        self,
        places: Sequence[Place],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[GeocodedPlace]:
        results: List[GeocodedPlace] = []
        total = len(places)

        for index, place in enumerate(places):
            query = search_query(place)
            if not query:
                LOGGER.warning("No search query for place: %s", place.title)
                continue

            was_cached = query in self._cache
            try:
                coords = self.geocode(query)
            except ApiKeyInvalidError:
                raise
            except (GeocodingError, requests.RequestException) as exc:
                results.append(GeocodedPlace(title=place.title, geocoded=False, error=str(exc), source=place))
                if isinstance(exc, QuotaExceededError):
                    self._sleep(self._quota_backoff)
            else:
                if coords is not None:
                    results.append(_resolved(place, coords, cached=was_cached))
                else:
                    results.append(GeocodedPlace(title=place.title, geocoded=False, error="No results found", source=place))

            if on_progress is not None:
                on_progress(index + 1, total)

            if not was_cached and index < total - 1:
                self._sleep(self._request_delay)

        LOGGER.info(
            "Geocoded %d of %d places",
            sum(1 for item in results if item.geocoded),
            total,
        )
        return results


def load_cached_places(places: Iterable[Place], cache: GeocodeCache) -> List[GeocodedPlace]:
    """Resolve places from the cache only, without touching the network."""
    results = []
    for place in places:
        query = search_query(place)
        if not query:
            continue
        cached = cache.get(query)
        if cached is not None:
            results.append(_resolved(place, cached, cached=True))
    return results


def places_from_cache_entries(cache: GeocodeCache) -> List[GeocodedPlace]:
    """Every cache entry as a geocoded place titled by its query."""
    places = []
    for query, entry in cache.entries().items():
        result = GeocodeResult.from_dict(entry)
        if result is None:
            continue
        places.append(
            GeocodedPlace(
                title=query,
                lat=result.lat,
                lng=result.lng,
                formatted_address=result.formatted_address,
                geocoded=True,
                cached=True,
            )
        )
    return places


def _resolved(place: Place, coords: GeocodeResult, *, cached: bool) -> GeocodedPlace:
    return GeocodedPlace(
        title=place.title,
        lat=coords.lat,
        lng=coords.lng,
        formatted_address=coords.formatted_address,
        geocoded=True,
        cached=cached,
        source=place,
    )


__all__ = [
    "ApiKeyInvalidError",
    "GEOCODE_CACHE_KEY",
    "GeocodeCache",
    "GeocodeResult",
    "GeocodingClient",
    "GeocodingError",
    "QuotaExceededError",
    "load_cached_places",
    "normalize_query",
    "places_from_cache_entries",
]
