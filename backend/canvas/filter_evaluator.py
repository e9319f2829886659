"""
Filter evaluation over schema-less records.

Groups are applied left to right, each narrowing the records kept by the
previous one. Inside a group, active filters are combined per record with
the group's AND/OR logic; inactive filters are vacuously true and left out.

A group that leaves no records makes the whole result empty, even when a
later group alone would match. Later groups still run over the empty list
and their active filters are still listed in the applied descriptions.
This reproduces the behavior dashboards were built against and is pinned by
tests; see DESIGN.md before changing it.
"""

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from canvas.filter_model import (
    DEFAULT_ALIASES,
    FieldAliases,
    Filter,
    FilterGroup,
    FilterKind,
    FilterResult,
    GroupLogic,
    Record,
    to_datetime,
    to_number,
)

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def serialize_record(record: Record) -> str:
    """Compact JSON text of a record, the haystack for text search."""
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False, default=_json_default)


class FilterEvaluator:
    """Applies filter groups to a record list. Stateless apart from its alias table."""

    def __init__(self, aliases: Optional[FieldAliases] = None, now: Optional[datetime] = None):
        self.aliases = aliases or DEFAULT_ALIASES
        # Fixed clock for records without any date field; None means wall clock
        self._now = to_datetime(now) if now else None
        self._predicates = {
            FilterKind.DATE: self._match_date,
            FilterKind.NUMERIC: self._match_numeric,
            FilterKind.LOCATION: self._match_location,
            FilterKind.STATUS: self._match_status,
            FilterKind.TURBINE: self._match_turbine,
            FilterKind.CORRELATION: self._match_correlation,
            FilterKind.TEXT: self._match_text,
        }

    # ── Public API ──

    def apply(self, records: list[Record], groups: list[FilterGroup]) -> FilterResult:
        records = list(records or [])
        total = len(records)

        if not groups:
            return FilterResult(
                kept_records=records,
                total_count=total,
                kept_count=total,
            )

        kept = records
        applied: list[str] = []

        for group in groups:
            active = group.active_filters
            if not active:
                logger.debug(f"Group '{group.name or group.id}' has no active filters, skipping")
                continue

            if kept:
                kept = [r for r in kept if self.matches_group(r, group)]
                if not kept:
                    logger.info(f"Group '{group.name or group.id}' matched no records, result is empty")
            applied.extend(f.describe() for f in active)
            logger.debug(
                f"Group '{group.name or group.id}' ({group.logic.value}, {len(active)} filter(s)) "
                f"kept {len(kept)} record(s)"
            )

        logger.info(f"Filtered {total} record(s) down to {len(kept)} with {len(applied)} active filter(s)")
        return FilterResult(
            kept_records=kept,
            total_count=total,
            kept_count=len(kept),
            applied_filter_descriptions=applied,
        )

    def matches_group(self, record: Record, group: FilterGroup) -> bool:
        """Whether one record satisfies a group. A group without active filters matches everything."""
        active = group.active_filters
        if not active:
            return True
        results = (self.matches(record, f) for f in active)
        if group.logic == GroupLogic.OR:
            return any(results)
        return all(results)

    def matches(self, record: Record, filter_: Filter) -> bool:
        """Per-record predicate for one filter. Inactive filters are vacuously true."""
        if not filter_.is_active:
            return True
        if not isinstance(record, dict):
            return False
        predicate = self._predicates.get(filter_.kind)
        if predicate is None:
            logger.warning(f"No predicate for filter kind '{filter_.kind}', treating as match")
            return True
        return predicate(record, filter_)

    # ── Field resolution ──

    @staticmethod
    def _first_present(record: Record, keys: tuple[str, ...]) -> Any:
        """First non-null value among keys."""
        for key in keys:
            value = record.get(key)
            if value is not None:
                return value
        return None

    @staticmethod
    def _first_text(record: Record, keys: tuple[str, ...]) -> Optional[str]:
        """First non-empty value among keys, as text."""
        for key in keys:
            value = record.get(key)
            if value is None or value == "" or value is False:
                continue
            return str(value)
        return None

    def record_date(self, record: Record) -> Optional[datetime]:
        """
        The date a record is filed under.

        Reads the first set date field; a record with none is dated now.
        An unreadable date yields None and fails any date filter.
        """
        for key in self.aliases.kind_fields[FilterKind.DATE]:
            value = record.get(key)
            if value is not None and value != "" and value is not False:
                return to_datetime(value)
        return self._now or datetime.now(timezone.utc)

    # ── Predicates ──

    def _match_date(self, record: Record, filter_: Filter) -> bool:
        item_date = self.record_date(record)
        if item_date is None:
            return False
        start = to_datetime(filter_.value.start)
        end = to_datetime(filter_.value.end)
        return start <= item_date <= end

    def _match_numeric(self, record: Record, filter_: Filter) -> bool:
        raw = self._first_present(record, self.aliases.fields_for_numeric(filter_.id))
        value = to_number(raw)
        if value is None:
            logger.debug(f"No numeric value for '{filter_.id}' in record")
            return False
        bounds = filter_.value
        if bounds.min is not None and value < bounds.min:
            return False
        if bounds.max is not None and value > bounds.max:
            return False
        return True

    def _match_substring(self, record: Record, filter_: Filter) -> bool:
        item_value = self._first_text(record, self.aliases.kind_fields[filter_.kind])
        if item_value is None:
            return False
        item_value = item_value.lower()
        return any(selected.lower() in item_value for selected in filter_.value)

    _match_location = _match_substring
    _match_turbine = _match_substring

    def _match_status(self, record: Record, filter_: Filter) -> bool:
        item_status = self._first_text(record, self.aliases.kind_fields[FilterKind.STATUS])
        if item_status is None:
            return False
        item_status = item_status.lower()
        return any(item_status == selected.lower() for selected in filter_.value)

    def _match_correlation(self, record: Record, filter_: Filter) -> bool:
        # Structural gate: the record must carry both sides of the selected pair
        label = filter_.value[0].lower() if filter_.value else ""
        required = self.aliases.correlation_fields.get(label)
        if required is None:
            return True
        return all(key in record for key in required)

    def _match_text(self, record: Record, filter_: Filter) -> bool:
        return filter_.value.lower() in serialize_record(record).lower()


# ── Module-level helpers ──


def apply_filters(
    records: list[Record],
    groups: list[FilterGroup],
    aliases: Optional[FieldAliases] = None,
) -> FilterResult:
    return FilterEvaluator(aliases).apply(records, groups)


def filter_summary(groups: list[FilterGroup]) -> str:
    """One-line description of every active filter across groups."""
    if not groups:
        return "No filters applied"
    return " • ".join(f.describe() for group in groups for f in group.active_filters)


def has_active_filters(groups: list[FilterGroup]) -> bool:
    return any(group.active_filters for group in groups)


def active_filter_count(groups: list[FilterGroup]) -> int:
    return sum(len(group.active_filters) for group in groups)
