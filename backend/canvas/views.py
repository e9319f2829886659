import logging

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .compaction import compact_layout
from .compatibility import (
    analyze_dataset,
    common_compatible_filters,
    common_compatible_kinds,
    filter_compatibility_details,
)
from .controller import configured_min_rows
from .errors import CanvasError, InvalidLayoutError
from .filter_evaluator import apply_filters, filter_summary
from .filter_model import FilterGroup, build_available_filters, flatten_records
from .grid import Component, GridSpec, Size, find_overlaps
from .placement import find_position
from .serializers import (
    ApplyFiltersSerializer,
    CompactLayoutSerializer,
    CompatibilitySerializer,
    PlaceComponentSerializer,
)

logger = logging.getLogger(__name__)


def _error_response(error: CanvasError) -> Response:
    logger.warning(f"Rejected canvas request: {error.message} ({error.field_path})")
    return Response(error.to_dict(), status=error.status_code)


# ── Filters ──


@api_view(["POST"])
def apply_filters_view(request):
    """
    POST — filter a record set.
    Body: { "records": [...] | {key: [...]}, "groups": [FilterGroup, ...] }
    """
    serializer = ApplyFiltersSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        groups = [FilterGroup.from_dict(g) for g in serializer.validated_data["groups"]]
    except CanvasError as e:
        return _error_response(e)

    records = flatten_records(serializer.validated_data["records"])
    result = apply_filters(records, groups)
    body = result.to_dict()
    body["summary"] = filter_summary(groups)
    return Response(body)


@api_view(["POST"])
def compatibility_view(request):
    """
    POST — which filters apply to the given datasets.
    Body: { "datasets": {dataset_id: records}, "names": {dataset_id: name}, "selected": [dataset_id] }
    """
    serializer = CompatibilitySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    reports = [
        analyze_dataset(dataset_id, flatten_records(output), data["names"].get(dataset_id, ""))
        for dataset_id, output in data["datasets"].items()
    ]
    selected = data.get("selected")
    chosen = [r for r in reports if r.dataset_id in selected] if selected is not None else reports

    common_filters = common_compatible_filters(chosen)
    return Response({
        "reports": [r.to_dict() for r in reports],
        "common_kinds": [k.value for k in common_compatible_kinds(chosen)],
        "common_filters": common_filters,
        "available_filters": [f.to_dict() for f in build_available_filters(common_filters)],
        "details": [d.to_dict() for d in filter_compatibility_details(reports)],
    })


# ── Layout ──


@api_view(["POST"])
def place_component_view(request):
    """
    POST — first free slot for a new component.
    Body: { "components": [Component, ...], "size": {width, height}, "grid": {...} }
    """
    serializer = PlaceComponentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        grid = GridSpec.from_dict(data.get("grid"))
        existing = [Component.from_dict(c) for c in data["components"]]
        size = Size(**data["size"])
        if size.width > grid.columns:
            raise InvalidLayoutError(
                f"Width {size.width} exceeds {grid.columns} grid columns", "size.width", size.width
            )
    except CanvasError as e:
        return _error_response(e)

    position = find_position(existing, size, grid, configured_min_rows())
    return Response(position.to_dict())


@api_view(["POST"])
def compact_layout_view(request):
    """
    POST — re-pack a component set.
    Body: { "components": [Component, ...], "grid": {...} }
    """
    serializer = CompactLayoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        grid = GridSpec.from_dict(data.get("grid"))
        components = [Component.from_dict(c) for c in data["components"]]
    except CanvasError as e:
        return _error_response(e)

    compacted = compact_layout(components, grid, configured_min_rows())
    return Response(
        {
            "components": [c.to_dict() for c in compacted],
            "overlaps": find_overlaps(compacted, grid),
        },
        status=status.HTTP_200_OK,
    )
