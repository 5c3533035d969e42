from __future__ import annotations

import html
import logging
import math
from dataclasses import astuple, dataclass, fields, replace
from html.parser import HTMLParser
from typing import Callable, Dict, List, Mapping, Optional, TypeVar

from services.dates import normalize_german_date
from services.dwd_types import Station

logger = logging.getLogger("nexus.dwd.parser")

_CELL_TAGS = {"td", "th"}

T = TypeVar("T")


class MalformedRowError(ValueError):
    """Raised when a single table cell cannot be converted to its field type."""


class SchemaDriftError(RuntimeError):
    """Raised when the station table no longer has the expected structure."""


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """1-based positions of the station table cells we extract."""

    name: int = 1
    id: int = 2
    code: int = 4
    lat: int = 5
    lng: int = 6
    altitude: int = 7
    recency: int = 11

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, int] | None) -> ColumnMap:
        if not overrides:
            return cls()
        known = {item.name for item in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown station columns: {', '.join(sorted(unknown))}")
        columns = replace(cls(), **{key: int(value) for key, value in overrides.items()})
        if min(astuple(columns)) < 1:
            raise ValueError("Station column indexes start at 1")
        return columns

    @property
    def required_columns(self) -> int:
        return max(astuple(self))


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise MalformedRowError(f"{text!r} is not a number") from exc


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError) as exc:
        raise MalformedRowError(f"{text!r} is not an integer") from exc


def _to_iso_date(text: str) -> str:
    normalized = normalize_german_date(text)
    if normalized is None:
        raise MalformedRowError(f"{text!r} is not a DD.MM.YYYY date")
    return normalized


class StationTableParser(HTMLParser):
    """Single pass scanner turning the DWD station table into ``Station`` rows.

    Row 1 is the header and is skipped. Cells are addressed by position via
    ``ColumnMap``; a row ends on ``</tr>``, on the next ``<tr>`` or on
    ``</table>``. Only rows accepted by ``predicate`` are kept, in table order.
    The document may be fed in one piece or in chunks.
    """

    def __init__(self, predicate: Callable[[Station], bool], columns: Optional[ColumnMap] = None) -> None:
        super().__init__(convert_charrefs=False)
        self._predicate = predicate
        self._columns = columns or ColumnMap()
        self._row = 1
        self._column = 0
        self._in_row = False
        self._cell: Optional[List[str]] = None
        self._values: Dict[int, str] = {}
        self._results: List[Station] = []
        self.rows_seen = 0
        self.data_rows = 0
        self.complete_rows = 0
        self.malformed_fields = 0

    # HTMLParser hooks ---------------------------------------------------
    def handle_starttag(self, tag, attrs):
        if tag == "tr":
            if self._in_row:
                self._close_row()
            self._in_row = True
            self._column = 0
            self._values = {}
            return
        if self._row == 1 or not self._in_row:
            return
        if tag in _CELL_TAGS:
            self._flush_cell()
            self._column += 1
            self._cell = []

    def handle_endtag(self, tag):
        if tag in _CELL_TAGS:
            self._flush_cell()
        elif tag in ("tr", "table") and self._in_row:
            self._close_row()

    def handle_data(self, data):
        if self._cell is not None:
            self._cell.append(data)

    def handle_entityref(self, name):
        if self._cell is not None:
            self._cell.append(f"&{name};")

    def handle_charref(self, name):
        if self._cell is not None:
            self._cell.append(f"&#{name};")

    # Public API ---------------------------------------------------------
    def finish(self) -> List[Station]:
        """Flush buffered markup and return the accepted stations."""
        self.close()
        if self._in_row:
            self._close_row()
        if self.rows_seen == 0:
            raise SchemaDriftError("station table has no rows")
        if self.data_rows and not self.complete_rows:
            raise SchemaDriftError(
                f"none of {self.data_rows} rows reached column {self._columns.required_columns}"
            )
        if self.malformed_fields:
            logger.info("Station table contained %d malformed cells", self.malformed_fields)
        return list(self._results)

    # Helpers ------------------------------------------------------------
    def _flush_cell(self) -> None:
        if self._cell is None:
            return
        self._values[self._column] = "".join(self._cell).strip()
        self._cell = None

    def _close_row(self) -> None:
        self._flush_cell()
        self.rows_seen += 1
        if self._row > 1:
            self.data_rows += 1
            if self._column >= self._columns.required_columns:
                self.complete_rows += 1
            station = self._build_station()
            if station.code and self._predicate(station):
                self._results.append(station)
        self._row += 1
        self._column = 0
        self._in_row = False
        self._values = {}

    def _build_station(self) -> Station:
        columns = self._columns
        return Station(
            name=html.unescape(self._values.get(columns.name, "")),
            id=self._values.get(columns.id, ""),
            code=self._values.get(columns.code, ""),
            lat=self._field(columns.lat, _to_float, 0.0, math.nan),
            lng=self._field(columns.lng, _to_float, 0.0, math.nan),
            altitude=self._field(columns.altitude, _to_int, 0, 0),
            recency=self._field(columns.recency, _to_iso_date, "", ""),
        )

    def _field(self, column: int, convert: Callable[[str], T], default: T, sentinel: T) -> T:
        raw = self._values.get(column)
        if raw is None:
            return default
        try:
            return convert(raw)
        except MalformedRowError as exc:
            self.malformed_fields += 1
            logger.debug("Row %d column %d: %s", self._row, column, exc)
            return sentinel


def parse_station_table(
    markup: str,
    predicate: Callable[[Station], bool],
    columns: Optional[ColumnMap] = None,
    chunk_size: Optional[int] = None,
) -> List[Station]:
    parser = StationTableParser(predicate, columns)
    if chunk_size and chunk_size > 0:
        for offset in range(0, len(markup), chunk_size):
            parser.feed(markup[offset:offset + chunk_size])
    else:
        parser.feed(markup)
    return parser.finish()
