"""
Filter vocabulary shared by the compatibility analyzer and the filter evaluator.

Records are schema-less dicts produced by user-generated data functions, so
every field lookup goes through the FieldAliases table below instead of
inspecting record shapes ad hoc. The same table drives both "which filters
make sense for this dataset" and "which field does this filter read".
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional, Union

from django.utils.dateparse import parse_date, parse_datetime

from canvas.errors import InvalidFilterError

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class FilterKind(Enum):
    DATE = "date"
    NUMERIC = "numeric"
    LOCATION = "location"
    STATUS = "status"
    TURBINE = "turbine"
    CORRELATION = "correlation"
    TEXT = "text"


class FilterOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER = "greater"
    LESS = "less"
    BETWEEN = "between"
    IN = "in"


class GroupLogic(Enum):
    AND = "AND"
    OR = "OR"


# Kinds whose value is a list of selected strings
SELECTION_KINDS = frozenset({
    FilterKind.LOCATION,
    FilterKind.STATUS,
    FilterKind.TURBINE,
    FilterKind.CORRELATION,
})

DEFAULT_OPERATORS = {
    FilterKind.DATE: FilterOperator.BETWEEN,
    FilterKind.NUMERIC: FilterOperator.BETWEEN,
    FilterKind.LOCATION: FilterOperator.IN,
    FilterKind.STATUS: FilterOperator.IN,
    FilterKind.TURBINE: FilterOperator.IN,
    FilterKind.CORRELATION: FilterOperator.IN,
    FilterKind.TEXT: FilterOperator.CONTAINS,
}


# ── Field aliasing ──


@dataclass
class FieldAliases:
    """
    Field-name configuration for schema-less records.

    *_tokens are matched case-insensitively as substrings of a dataset's field
    names (compatibility). *_fields are exact record keys, read in order, the
    first present one wins (evaluation).
    """
    numeric_tokens: dict[str, tuple[str, ...]] = field(default_factory=lambda: {
        "wind_speed": ("wind_speed", "windspeed"),
        "power_output": ("power_output",),
        "rpm": ("rotor_rpm", "rpm"),
    })
    numeric_fields: dict[str, tuple[str, ...]] = field(default_factory=lambda: {
        "wind_speed": ("wind_speed_mph", "wind_speed", "windSpeed"),
        "power_output": ("power_output_kw", "power_output"),
        "rpm": ("rotor_rpm", "rpm"),
    })
    kind_tokens: dict[FilterKind, tuple[str, ...]] = field(default_factory=lambda: {
        FilterKind.LOCATION: ("location", "farm", "site"),
        FilterKind.STATUS: ("status", "state"),
        FilterKind.TURBINE: ("turbine", "id"),
        FilterKind.DATE: ("timestamp", "date", "created", "updated"),
    })
    kind_fields: dict[FilterKind, tuple[str, ...]] = field(default_factory=lambda: {
        FilterKind.LOCATION: ("location", "farm", "site"),
        FilterKind.STATUS: ("status", "state"),
        FilterKind.TURBINE: ("turbine_id", "turbine", "id"),
        FilterKind.DATE: ("timestamp", "createdAt", "updatedAt"),
    })
    # Correlation label (lower-cased) -> fields a record must carry
    correlation_fields: dict[str, tuple[str, ...]] = field(default_factory=lambda: {
        "rpm vs wind speed": ("rotor_rpm", "wind_speed_mph"),
        "power vs wind speed": ("power_output_kw", "wind_speed_mph"),
        "temperature vs time": ("temperature", "timestamp"),
    })

    def fields_for_numeric(self, filter_id: str) -> tuple[str, ...]:
        """Record keys a numeric filter reads. Unknown ids read the field of the same name."""
        return self.numeric_fields.get(filter_id, (filter_id,))


DEFAULT_ALIASES = FieldAliases()


# ── Filter catalog ──


@dataclass(frozen=True)
class CatalogEntry:
    filter_id: str
    name: str
    kind: FilterKind


# Order is the order filters are offered to the user
FILTER_CATALOG = (
    CatalogEntry("location", "Location", FilterKind.LOCATION),
    CatalogEntry("status", "Status", FilterKind.STATUS),
    CatalogEntry("turbine", "Turbine", FilterKind.TURBINE),
    CatalogEntry("correlation", "Correlation Type", FilterKind.CORRELATION),
    CatalogEntry("date", "Date Range", FilterKind.DATE),
    CatalogEntry("wind_speed", "Wind Speed Range", FilterKind.NUMERIC),
    CatalogEntry("power_output", "Power Output Range", FilterKind.NUMERIC),
    CatalogEntry("rpm", "RPM Range", FilterKind.NUMERIC),
    CatalogEntry("text", "Text Search", FilterKind.TEXT),
)

CATALOG_BY_ID = {entry.filter_id: entry for entry in FILTER_CATALOG}


def catalog_name(filter_id: str) -> str:
    entry = CATALOG_BY_ID.get(filter_id)
    return entry.name if entry else filter_id


# ── Filter values ──


@dataclass
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


@dataclass
class NumericRange:
    min: Optional[float] = None
    max: Optional[float] = None

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


FilterValue = Union[DateRange, NumericRange, list, str]


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a record or filter value to an aware datetime.

    Accepts datetimes, dates, ISO-8601 strings and epoch milliseconds.
    Naive values are taken as UTC. Returns None when the value cannot be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            parsed = None
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_number(value: Any) -> Optional[float]:
    """Numbers and numeric strings become floats; everything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parse_value(kind: FilterKind, raw: Any, filter_id: str) -> FilterValue:
    path = f"{filter_id}.value"

    if kind == FilterKind.DATE:
        if raw is None:
            return DateRange()
        if not isinstance(raw, dict):
            raise InvalidFilterError("Date filter value must be an object with start/end", path, raw)
        bounds = {}
        for key in ("start", "end"):
            bound = raw.get(key)
            if bound is None or bound == "":
                bounds[key] = None
                continue
            parsed = to_datetime(bound)
            if parsed is None:
                raise InvalidFilterError(f"Unreadable date for '{key}'", f"{path}.{key}", bound)
            bounds[key] = parsed
        return DateRange(**bounds)

    if kind == FilterKind.NUMERIC:
        if raw is None:
            return NumericRange()
        if not isinstance(raw, dict):
            raise InvalidFilterError("Numeric filter value must be an object with min/max", path, raw)
        bounds = {}
        for key in ("min", "max"):
            bound = raw.get(key)
            if bound is None or bound == "":
                bounds[key] = None
                continue
            number = to_number(bound)
            if number is None:
                raise InvalidFilterError(f"'{key}' must be a number", f"{path}.{key}", bound)
            bounds[key] = number
        return NumericRange(**bounds)

    if kind == FilterKind.TEXT:
        if raw is None:
            return ""
        if not isinstance(raw, str):
            raise InvalidFilterError("Text filter value must be a string", path, raw)
        return raw

    # Selection kinds
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise InvalidFilterError(f"{kind.value} filter value must be a list", path, raw)
    return [str(item) for item in raw if item is not None]


# ── Filters and groups ──


@dataclass
class Filter:
    id: str
    kind: FilterKind
    value: FilterValue
    operator: Optional[FilterOperator] = None
    name: str = ""

    def __post_init__(self):
        if self.operator is None:
            self.operator = DEFAULT_OPERATORS[self.kind]
        if not self.name:
            self.name = catalog_name(self.id)

    @property
    def is_active(self) -> bool:
        """A filter only takes part in evaluation when it carries a non-empty value."""
        value = self.value
        if self.kind == FilterKind.DATE:
            return value.start is not None and value.end is not None
        if self.kind == FilterKind.NUMERIC:
            return value.min is not None or value.max is not None
        if self.kind == FilterKind.TEXT:
            return bool(value and value.strip())
        return len(value) > 0

    def display_value(self) -> str:
        value = self.value
        if self.kind == FilterKind.DATE:
            start = value.start.date().isoformat() if value.start else ""
            end = value.end.date().isoformat() if value.end else ""
            return f"{start} – {end}"
        if self.kind == FilterKind.NUMERIC:
            if value.min is not None and value.max is not None:
                return f"{_format_number(value.min)} - {_format_number(value.max)}"
            if value.min is not None:
                return f"≥ {_format_number(value.min)}"
            if value.max is not None:
                return f"≤ {_format_number(value.max)}"
            return ""
        if self.kind == FilterKind.TEXT:
            return value
        return ", ".join(value)

    def describe(self) -> str:
        return f"{self.name}: {self.display_value()}"

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, (DateRange, NumericRange)):
            value = value.to_dict()
        elif isinstance(value, list):
            value = list(value)
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "operator": self.operator.value,
            "value": value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Filter":
        if not isinstance(data, dict):
            raise InvalidFilterError("Filter must be an object", "filter", data)
        filter_id = data.get("id")
        if not filter_id or not isinstance(filter_id, str):
            raise InvalidFilterError("Filter id is required", "id", filter_id)

        # "type" is accepted for payloads saved by older clients
        raw_kind = data.get("kind", data.get("type"))
        try:
            kind = FilterKind(raw_kind)
        except ValueError:
            raise InvalidFilterError(f"Unknown filter kind '{raw_kind}'", f"{filter_id}.kind", raw_kind)

        raw_operator = data.get("operator")
        operator = None
        if raw_operator is not None:
            try:
                operator = FilterOperator(raw_operator)
            except ValueError:
                raise InvalidFilterError(
                    f"Unknown filter operator '{raw_operator}'", f"{filter_id}.operator", raw_operator
                )

        return cls(
            id=filter_id,
            kind=kind,
            value=_parse_value(kind, data.get("value"), filter_id),
            operator=operator,
            name=data.get("name") or "",
        )


@dataclass
class FilterGroup:
    id: str
    name: str = ""
    logic: GroupLogic = GroupLogic.AND
    filters: list[Filter] = field(default_factory=list)

    @property
    def active_filters(self) -> list[Filter]:
        return [f for f in self.filters if f.is_active]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "logic": self.logic.value,
            "filters": [f.to_dict() for f in self.filters],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FilterGroup":
        if not isinstance(data, dict):
            raise InvalidFilterError("Filter group must be an object", "group", data)
        group_id = data.get("id") or ""
        raw_logic = str(data.get("logic", "AND")).upper()
        try:
            logic = GroupLogic(raw_logic)
        except ValueError:
            raise InvalidFilterError(f"Unknown group logic '{raw_logic}'", f"{group_id}.logic", raw_logic)
        raw_filters = data.get("filters") or []
        if not isinstance(raw_filters, list):
            raise InvalidFilterError("Group filters must be a list", f"{group_id}.filters", raw_filters)
        return cls(
            id=group_id,
            name=data.get("name") or "",
            logic=logic,
            filters=[Filter.from_dict(f) for f in raw_filters],
        )


def build_available_filters(compatible_filter_ids: list[str]) -> list[Filter]:
    """
    Inactive template filters for every compatible catalog entry.

    Text search is always offered. Ids outside the catalog are ignored.
    """
    wanted = set(compatible_filter_ids) | {"text"}
    available = []
    for entry in FILTER_CATALOG:
        if entry.filter_id not in wanted:
            continue
        if entry.kind == FilterKind.DATE:
            value = DateRange()
        elif entry.kind == FilterKind.NUMERIC:
            value = NumericRange()
        elif entry.kind == FilterKind.TEXT:
            value = ""
        else:
            value = []
        available.append(Filter(id=entry.filter_id, kind=entry.kind, value=value, name=entry.name))
    return available


def flatten_records(output: Any) -> list[Record]:
    """
    Flatten data-function output into one record list.

    A list passes through; a mapping of key -> list is concatenated in key
    order. Anything that is not a dict record is dropped.
    """
    if output is None:
        return []
    if isinstance(output, dict):
        records = []
        for key, rows in output.items():
            if isinstance(rows, list):
                records.extend(r for r in rows if isinstance(r, dict))
            else:
                logger.debug(f"flatten_records: skipping non-list entry '{key}'")
        return records
    if isinstance(output, list):
        return [r for r in output if isinstance(r, dict)]
    return []


# ── Derived results ──


@dataclass
class CompatibilityReport:
    """Which filter kinds make sense for one dataset. Derived, never persisted."""
    dataset_id: str
    fields: list[str] = field(default_factory=list)
    compatible_kinds: list[FilterKind] = field(default_factory=lambda: [FilterKind.TEXT])
    compatible_filters: list[str] = field(default_factory=lambda: ["text"])
    sample: list[Record] = field(default_factory=list)
    dataset_name: str = ""

    def to_dict(self) -> dict:
        return {
            "dataset_id": self.dataset_id,
            "dataset_name": self.dataset_name,
            "fields": self.fields,
            "compatible_kinds": [k.value for k in self.compatible_kinds],
            "compatible_filters": self.compatible_filters,
            "sample": self.sample,
        }


@dataclass
class FilterCompatibility:
    """Per-filter view across datasets."""
    filter_id: str
    filter_name: str
    kind: FilterKind
    compatible_datasets: list[str] = field(default_factory=list)
    incompatible_datasets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "filter_id": self.filter_id,
            "filter_name": self.filter_name,
            "kind": self.kind.value,
            "compatible_datasets": self.compatible_datasets,
            "incompatible_datasets": self.incompatible_datasets,
        }


@dataclass
class FilterResult:
    kept_records: list[Record] = field(default_factory=list)
    total_count: int = 0
    kept_count: int = 0
    applied_filter_descriptions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kept_records": self.kept_records,
            "total_count": self.total_count,
            "kept_count": self.kept_count,
            "applied_filter_descriptions": self.applied_filter_descriptions,
        }
