"""Minimal configuration loader for the scratch map tools."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_COUNTRIES_URL = (
    "https://raw.githubusercontent.com/holtzy/D3-graph-gallery/master/DATA/world.geojson"
)

API_KEY_INSTRUCTIONS = """
To use the Google Maps Geocoding API:

1. Go to the Google Cloud Console: https://console.cloud.google.com/
2. Create a new project or select an existing one
3. Enable the "Geocoding API" for your project
4. Create an API key in "Credentials"
5. Add the following line to a .env file in the project root:
   GOOGLE_MAPS_API_KEY=your_api_key_here

Note: The Geocoding API has usage limits and may incur charges.
""".strip()


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if not value or not value.strip():
        return None
    return Path(value).expanduser().resolve()


def is_valid_key_format(key: Optional[str]) -> bool:
    """Google API keys are typically 39 characters long."""
    if not key or not isinstance(key, str):
        return False
    return 30 <= len(key) <= 50


@dataclass(frozen=True)
class Settings:
    google_api_key: Optional[str]
    data_dir: Path
    state_path: Path
    countries_url: str
    countries_path: Optional[Path]
    radius_km: float
    circle_steps: int
    request_delay: float
    quota_backoff: float
    preview_dir: Path
    preview_width: int
    preview_height: int
    pin_color: str
    log_level: str

    @property
    def bundled_geocode_path(self) -> Path:
        return self.data_dir / "geocoded.json"

    def has_api_key(self) -> bool:
        return bool(self.google_api_key and self.google_api_key.strip())

    def require_api_key(self) -> str:
        if not self.has_api_key():
            raise RuntimeError(f"GOOGLE_MAPS_API_KEY is required\n\n{API_KEY_INSTRUCTIONS}")
        return self.google_api_key.strip()  # type: ignore[union-attr]

    @classmethod
    def load(cls) -> "Settings":
        preview_dir = Path(os.getenv("SCRATCH_PREVIEW_DIR", "var/previews")).resolve()
        steps = int(os.getenv("SCRATCH_CIRCLE_STEPS", "64"))
        if steps < 3:
            raise RuntimeError("SCRATCH_CIRCLE_STEPS must be at least 3")

        return cls(
            google_api_key=os.getenv("GOOGLE_MAPS_API_KEY") or None,
            data_dir=Path(os.getenv("SCRATCH_DATA_DIR", "data")).resolve(),
            state_path=Path(os.getenv("SCRATCH_STATE_PATH", "var/state.json")).resolve(),
            countries_url=os.getenv("SCRATCH_COUNTRIES_URL", DEFAULT_COUNTRIES_URL),
            countries_path=_optional_path(os.getenv("SCRATCH_COUNTRIES_PATH")),
            radius_km=float(os.getenv("SCRATCH_RADIUS_KM", "100")),
            circle_steps=steps,
            request_delay=float(os.getenv("SCRATCH_REQUEST_DELAY", "0.1")),
            quota_backoff=float(os.getenv("SCRATCH_QUOTA_BACKOFF", "2.0")),
            preview_dir=preview_dir,
            preview_width=int(os.getenv("SCRATCH_PREVIEW_WIDTH", "1440")),
            preview_height=int(os.getenv("SCRATCH_PREVIEW_HEIGHT", "720")),
            pin_color=os.getenv("MAP_PIN_COLOR", "#ff6b6b"),
            log_level=os.getenv("SCRATCH_LOG_LEVEL", "INFO"),
        )
