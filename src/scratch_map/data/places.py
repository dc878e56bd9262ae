"""Read saved-place CSV exports and derive geocoding queries from them."""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote

LOGGER = logging.getLogger(__name__)

UNKNOWN_PLACE = "Unknown Place"

_PLACE_ID_RE = re.compile(r"!1s(0x[a-f0-9]+:0x[a-f0-9]+)", re.IGNORECASE)
_PLACE_NAME_RE = re.compile(r"/place/([^/]+)/")


@dataclass(frozen=True)
class Place:
    title: str
    url: str = ""
    note: str = ""
    tags: str = ""
    comment: str = ""
    source_file: Optional[str] = None


@dataclass(frozen=True)
class GeocodedPlace:
    title: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    formatted_address: Optional[str] = None
    geocoded: bool = False
    cached: bool = False
    error: Optional[str] = None
    source: Optional[Place] = None


def parse_csv(content: str) -> List[Dict[str, str]]:
    """Parse CSV text into rows keyed by the stripped header names."""
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return []
    reader = csv.reader(io.StringIO("\n".join(lines)))
    headers = [header.strip() for header in next(reader)]
    rows = []
    for values in reader:
        if not values:
            continue
        rows.append({header: (values[i].strip() if i < len(values) else "") for i, header in enumerate(headers)})
    return rows


def extract_places(rows: Iterable[Dict[str, str]], source_file: Optional[str] = None) -> List[Place]:
    places = []
    for row in rows:
        title = (row.get("Titre") or "").strip()
        url = (row.get("URL") or "").strip()
        if not title and "google.com/maps" not in url:
            continue
        places.append(
            Place(
                title=title or UNKNOWN_PLACE,
                url=url,
                note=(row.get("Note") or "").strip(),
                tags=(row.get("Tags") or "").strip(),
                comment=(row.get("Commentaire") or "").strip(),
                source_file=source_file,
            )
        )
    return places


def extract_place_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = _PLACE_ID_RE.search(url)
    return match.group(1) if match else None


def extract_place_name(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = _PLACE_NAME_RE.search(url)
    if not match:
        return None
    return unquote(match.group(1).replace("+", " "))


def search_query(place: Place) -> Optional[str]:
    """Prefer the name embedded in the Maps URL, then the title."""
    url_name = extract_place_name(place.url)
    if url_name:
        return url_name
    if place.title and place.title != UNKNOWN_PLACE:
        return place.title
    return None


def load_csv_file(path: Path) -> List[Place]:
    with open(path, "r", encoding="utf-8-sig") as handle:
        content = handle.read()
    return extract_places(parse_csv(content), source_file=path.name)


def load_csv_directory(directory: Path) -> List[Place]:
    places: List[Place] = []
    if not directory.is_dir():
        LOGGER.warning("Data directory %s does not exist", directory)
        return places
    for path in sorted(directory.glob("*.csv")):
        try:
            file_places = load_csv_file(path)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            LOGGER.error("Error parsing %s: %s", path, exc)
            continue
        LOGGER.info("Loaded %d places from %s", len(file_places), path.name)
        places.extend(file_places)
    return places


__all__ = [
    "GeocodedPlace",
    "Place",
    "UNKNOWN_PLACE",
    "extract_place_id",
    "extract_place_name",
    "extract_places",
    "load_csv_directory",
    "load_csv_file",
    "parse_csv",
    "search_query",
]
