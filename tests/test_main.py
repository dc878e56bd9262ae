import json
from pathlib import Path

import pytest

from scratch_map.app.main import main, parse_args

WORLD = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"name": "Aland"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[19, 59.5], [21, 59.5], [21, 60.5], [19, 60.5], [19, 59.5]]],
            },
        },
        {
            "type": "Feature",
            "properties": {"ADMIN": "Farland"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[100, 0], [110, 0], [110, 10], [100, 10], [100, 0]]],
            },
        },
    ],
}


@pytest.fixture
def workspace(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "geocoded.json").write_text(
        json.dumps({"places": {"mariehamn": {"lat": 60.1, "lng": 19.94, "formattedAddress": "Mariehamn"}}}),
        encoding="utf-8",
    )
    world = tmp_path / "world.geojson"
    world.write_text(json.dumps(WORLD), encoding="utf-8")

    monkeypatch.setenv("SCRATCH_DATA_DIR", str(data_dir))
    monkeypatch.setenv("SCRATCH_STATE_PATH", str(tmp_path / "var" / "state.json"))
    monkeypatch.setenv("SCRATCH_COUNTRIES_PATH", str(world))
    monkeypatch.setenv("SCRATCH_PREVIEW_DIR", str(tmp_path / "previews"))
    monkeypatch.setenv("SCRATCH_PREVIEW_WIDTH", "360")
    monkeypatch.setenv("SCRATCH_PREVIEW_HEIGHT", "180")
    return tmp_path


def test_parse_args_requires_command() -> None:
    with pytest.raises(SystemExit):
        parse_args([])
    assert parse_args(["scratch", "France", "Peru"]).names == ["France", "Peru"]


def test_stats_from_bundled_cache(workspace: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "Places loaded: 1" in out
    assert "Countries visited: 1" in out
    assert "  - Aland" in out
    assert "Countries revealed by places: 1" in out


def test_stats_reports_geocoding_counts(workspace: Path, capsys: pytest.CaptureFixture) -> None:
    (workspace / "data" / "saved.csv").write_text("Titre,URL\nMariehamn,\nAtlantis,\n", encoding="utf-8")
    assert main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "Places loaded: 2" in out
    assert "Places geocoded: 1 (1 from cache)" in out
    assert "Places not geocoded: 1" in out
    assert "Geocode cache entries: 1" in out
    assert "Countries visited: 1" in out


def test_scratch_commands_persist(workspace: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["scratch", "Farland", "Peru"]) == 0
    assert main(["unscratch", "Peru"]) == 0
    capsys.readouterr()
    assert main(["scratched"]) == 0
    assert capsys.readouterr().out.split() == ["Farland"]

    main(["stats"])
    assert "Countries scratched: 1" in capsys.readouterr().out


def test_preview_writes_png(workspace: Path) -> None:
    assert main(["preview"]) == 0
    assert (workspace / "previews" / "scratch-map.png").exists()


def test_geocode_without_places(workspace: Path) -> None:
    assert main(["geocode"]) == 1
