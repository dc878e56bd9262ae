"""Command line entry point for the scratch map."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Sequence

from scratch_map.config import Settings
from scratch_map.data.countries import Country, CountrySource
from scratch_map.data.geocoder import (
    GeocodeCache,
    GeocodingClient,
    load_cached_places,
    places_from_cache_entries,
)
from scratch_map.data.places import GeocodedPlace, load_csv_directory
from scratch_map.data.scratch import ScratchSet
from scratch_map.data.store import JsonFileStore
from scratch_map.geometry.disks import create_disks_for_places
from scratch_map.pipeline.preview import MapPreview
from scratch_map.reveal.engine import RevealEngine

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class ScratchMapApp:
    """Wires settings, persisted state and data sources to the reveal engine."""

    def __init__(self, settings: Settings, store: JsonFileStore | None = None) -> None:
        self.settings = settings
        self.store = store or JsonFileStore(settings.state_path)
        self.scratch_set = ScratchSet(self.store)
        self.cache = GeocodeCache.from_file(settings.bundled_geocode_path, self.store)
        self.engine = RevealEngine(self.scratch_set)
        self.total_places = 0

    def load_places(self) -> List[GeocodedPlace]:
        places = load_csv_directory(self.settings.data_dir)
        self.total_places = len(places)
        if places:
            geocoded = load_cached_places(places, self.cache)
            logger.info(f"{len(geocoded)} of {len(places)} places resolved from cache")
            return geocoded
        # Without CSV exports, fall back to whatever the cache already knows.
        cached = places_from_cache_entries(self.cache)
        self.total_places = len(cached)
        return cached

    def load_countries(self) -> List[Country]:
        source = CountrySource(url=self.settings.countries_url, path=self.settings.countries_path)
        return source.load()

    def prepare(self, places: Sequence[GeocodedPlace]) -> None:
        self.engine.set_countries(self.load_countries())
        self.engine.set_disks(
            create_disks_for_places(places, self.settings.radius_km, self.settings.circle_steps)
        )


def cmd_stats(app: ScratchMapApp, args: argparse.Namespace) -> int:
    places = app.load_places()
    app.prepare(places)
    summary = app.engine.summary()
    visited = summary.revealed_countries
    geocoded = [place for place in places if place.geocoded]
    cached = [place for place in geocoded if place.cached]
    print(f"Places loaded: {app.total_places}")
    print(f"Places geocoded: {len(geocoded)} ({len(cached)} from cache)")
    print(f"Places not geocoded: {app.total_places - len(geocoded)}")
    print(f"Geocode cache entries: {app.cache.stats()['total_cached']}")
    print(f"Countries visited: {visited.count}")
    for name in visited.names:
        print(f"  - {name}")
    print(f"Countries revealed by places: {len(summary.covered_ids)}")
    print(f"Countries scratched: {len(summary.scratched_ids)}")
    print(f"Covered area: {summary.total_area_km2:,.0f} km²")
    return 0


def cmd_geocode(app: ScratchMapApp, args: argparse.Namespace) -> int:
    places = load_csv_directory(app.settings.data_dir)
    if not places:
        logger.warning(f"No places found in {app.settings.data_dir}")
        return 1
    client = GeocodingClient(app.settings, app.cache)

    def report(current: int, total: int) -> None:
        logger.info(f"Geocoding progress: {current}/{total}")

    results = client.geocode_places(places, on_progress=report)
    failed = [item for item in results if not item.geocoded]
    for item in failed:
        logger.warning(f"Failed to geocode {item.title}: {item.error}")
    print(f"Geocoded {len(results) - len(failed)} places, {len(failed)} failed")
    return 0


def cmd_scratch(app: ScratchMapApp, args: argparse.Namespace) -> int:
    for name in args.names:
        if app.scratch_set.add(name):
            print(f"Scratched {name}")
    return 0


def cmd_unscratch(app: ScratchMapApp, args: argparse.Namespace) -> int:
    for name in args.names:
        if app.scratch_set.discard(name):
            print(f"Unscratched {name}")
    return 0


def cmd_scratched(app: ScratchMapApp, args: argparse.Namespace) -> int:
    for name in app.scratch_set:
        print(name)
    return 0


def cmd_preview(app: ScratchMapApp, args: argparse.Namespace) -> int:
    places = app.load_places()
    app.prepare(places)
    summary = app.engine.summary()
    preview = MapPreview(
        app.settings.preview_width,
        app.settings.preview_height,
        pin_color=app.settings.pin_color,
    )
    image = preview.render(app.engine.countries, summary.revealed_ids, app.engine.disks, places)
    target = preview.save(image, args.output or app.settings.preview_dir)
    print(f"Preview written to {target}")
    return 0


def cmd_clear_cache(app: ScratchMapApp, args: argparse.Namespace) -> int:
    app.cache.clear()
    stats = app.cache.stats()
    print(f"Geocode overlay cleared; {stats['total_cached']} bundled entries remain")
    return 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reveal the countries you have visited")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Print visited countries and covered area").set_defaults(func=cmd_stats)
    sub.add_parser("geocode", help="Geocode CSV places through the Google API").set_defaults(func=cmd_geocode)

    scratch = sub.add_parser("scratch", help="Mark countries as revealed")
    scratch.add_argument("names", nargs="+")
    scratch.set_defaults(func=cmd_scratch)

    unscratch = sub.add_parser("unscratch", help="Hide countries again")
    unscratch.add_argument("names", nargs="+")
    unscratch.set_defaults(func=cmd_unscratch)

    sub.add_parser("scratched", help="List scratched countries").set_defaults(func=cmd_scratched)

    preview = sub.add_parser("preview", help="Render a flat map preview")
    preview.add_argument("--output", type=Path, default=None, help="Directory for the PNG")
    preview.set_defaults(func=cmd_preview)

    sub.add_parser("clear-cache", help="Drop locally cached geocode results").set_defaults(func=cmd_clear_cache)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = Settings.load()
    configure_logging(settings.log_level)
    app = ScratchMapApp(settings)
    return args.func(app, args)


if __name__ == "__main__":
    sys.exit(main())
