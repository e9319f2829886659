"""
Filter compatibility analysis.

Looks at a small sample of a dataset's records and decides which filter
kinds are meaningful for it, purely from field names. Used to decide which
filters to offer when one or several datasets are selected on the canvas.
"""

import logging
from typing import Optional

from canvas.filter_model import (
    DEFAULT_ALIASES,
    FILTER_CATALOG,
    CompatibilityReport,
    FieldAliases,
    FilterCompatibility,
    FilterKind,
    Record,
)

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5

# Offered when no dataset is selected
DEFAULT_COMMON_KINDS = [FilterKind.TEXT, FilterKind.DATE]
DEFAULT_COMMON_FILTERS = ["text", "date"]

# Filter ids that compatibility can report, in report order
COMPATIBILITY_FILTER_IDS = ["wind_speed", "power_output", "rpm", "location", "status", "turbine", "date", "text"]


def _has_token(fields: list[str], tokens: tuple[str, ...]) -> bool:
    lowered = [f.lower() for f in fields]
    return any(token.lower() in name for name in lowered for token in tokens)


def collect_fields(records: list[Record]) -> list[str]:
    """Union of field names across records, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        if isinstance(record, dict):
            for key in record:
                seen.setdefault(str(key), None)
    return list(seen)


def compatible_filter_ids(fields: list[str], aliases: FieldAliases = DEFAULT_ALIASES) -> list[str]:
    """Catalog filter ids whose alias tokens appear in the field names. Text is always included."""
    compatible = []

    for filter_id, tokens in aliases.numeric_tokens.items():
        if _has_token(fields, tokens):
            compatible.append(filter_id)

    for kind in (FilterKind.LOCATION, FilterKind.STATUS, FilterKind.TURBINE, FilterKind.DATE):
        if _has_token(fields, aliases.kind_tokens.get(kind, ())):
            compatible.append(kind.value)

    compatible.append("text")
    return compatible


def _kinds_for_filters(filter_ids: list[str], aliases: FieldAliases) -> list[FilterKind]:
    kinds = []
    for filter_id in filter_ids:
        kind = FilterKind.NUMERIC if filter_id in aliases.numeric_tokens else FilterKind(filter_id)
        if kind not in kinds:
            kinds.append(kind)
    return kinds


def analyze_dataset(
    dataset_id: str,
    records: list[Record],
    dataset_name: str = "",
    aliases: FieldAliases = DEFAULT_ALIASES,
) -> CompatibilityReport:
    """
    Build the CompatibilityReport for one dataset.

    An empty sample is still compatible with text search, nothing else.
    """
    records = records or []
    if not records:
        logger.info(f"No records for dataset '{dataset_id}', only text search is compatible")
        return CompatibilityReport(dataset_id=dataset_id, dataset_name=dataset_name)

    fields = collect_fields(records)
    filter_ids = compatible_filter_ids(fields, aliases)
    kinds = _kinds_for_filters(filter_ids, aliases)

    logger.info(
        f"Dataset '{dataset_id}': {len(fields)} field(s), "
        f"compatible kinds {[k.value for k in kinds]}"
    )
    logger.debug(f"Dataset '{dataset_id}' fields: {fields}")

    return CompatibilityReport(
        dataset_id=dataset_id,
        dataset_name=dataset_name,
        fields=fields,
        compatible_kinds=kinds,
        compatible_filters=filter_ids,
        sample=[dict(r) for r in records[:SAMPLE_SIZE] if isinstance(r, dict)],
    )


def _intersect(lists: list[list]) -> list:
    common = list(lists[0])
    for current in lists[1:]:
        common = [item for item in common if item in current]
    return common


def common_compatible_kinds(reports: list[CompatibilityReport]) -> list[FilterKind]:
    """Kinds compatible with every dataset. No datasets -> basic filters only."""
    if not reports:
        return list(DEFAULT_COMMON_KINDS)
    common = _intersect([r.compatible_kinds for r in reports])
    logger.debug(f"Common compatible kinds across {len(reports)} dataset(s): {[k.value for k in common]}")
    return common


def common_compatible_filters(reports: list[CompatibilityReport]) -> list[str]:
    """Filter ids compatible with every dataset. No datasets -> basic filters only."""
    if not reports:
        return list(DEFAULT_COMMON_FILTERS)
    return _intersect([r.compatible_filters for r in reports])


def filter_compatibility_details(
    reports: list[CompatibilityReport],
    filter_ids: Optional[list[str]] = None,
) -> list[FilterCompatibility]:
    """For each filter id, which datasets support it and which don't."""
    catalog = {entry.filter_id: entry for entry in FILTER_CATALOG}
    details = []
    for filter_id in filter_ids or COMPATIBILITY_FILTER_IDS:
        entry = catalog.get(filter_id)
        detail = FilterCompatibility(
            filter_id=filter_id,
            filter_name=entry.name if entry else filter_id,
            kind=entry.kind if entry else FilterKind.TEXT,
        )
        for report in reports:
            if filter_id in report.compatible_filters:
                detail.compatible_datasets.append(report.dataset_id)
            else:
                detail.incompatible_datasets.append(report.dataset_id)
        details.append(detail)
    return details
