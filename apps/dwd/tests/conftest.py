
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402
from main import create_app  # noqa: E402
from services.dwd_client import dwd_client  # noqa: E402
from services.dwd_stations import station_directory  # noqa: E402

HEADER_ROW = (
    "<tr><th>Stationsname</th><th>Stations_ID</th><th>Kennung</th><th>Stations-kennung</th>"
    "<th>Breite</th><th>Länge</th><th>Stations-höhe</th><th>Flussgebiet</th>"
    "<th>Bundesland</th><th>Beginn</th><th>Ende</th></tr>"
)


def station_row(
    name: str,
    code: str,
    lat: str,
    lng: str,
    *,
    station_id: str = "433",
    altitude: str = "48",
    end: str = "18.03.2025",
) -> str:
    cells = [name, station_id, "KL", code, lat, lng, altitude, "Spree", "Berlin", "01.01.1950", end]
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


def station_table(*rows: str) -> str:
    return "<html><body><table>" + HEADER_ROW + "".join(rows) + "</table></body></html>"


class FakeFetcher:
    """In-memory stand-in for the DWD client that records every call."""

    def __init__(self, markup: str, forecasts: Dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.markup = markup
        self.forecasts = forecasts or {}
        self.error = error
        self.list_calls = 0
        self.forecast_calls: list[list[str]] = []

    async def fetch_station_list_html(self) -> str:
        self.list_calls += 1
        if self.error is not None:
            raise self.error
        return self.markup

    async def fetch_forecasts_by_codes(self, codes) -> Dict[str, Any]:
        codes = list(codes)
        self.forecast_calls.append(codes)
        if self.error is not None:
            raise self.error
        return {code: payload for code, payload in self.forecasts.items() if code in codes}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_dwd_services() -> None:
    station_directory.clear()
    dwd_client.clear()
    yield
    station_directory.clear()
    dwd_client.clear()


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def client() -> TestClient:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
