"""
Pytest configuration and fixtures for dashboard builder tests.
"""
import os
import sys
from pathlib import Path

# Add backend to path for imports
BACKEND_DIR = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(BACKEND_DIR))

# Set Django settings before any Django imports
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dashboard_builder.settings")

import django
django.setup()

import pytest


# ============================================================
# Django Fixtures
# ============================================================

@pytest.fixture
def api_client():
    """Django REST framework test client."""
    from rest_framework.test import APIClient
    return APIClient()


# ============================================================
# Layout Fixtures
# ============================================================

@pytest.fixture
def grid():
    """Default 12-column canvas grid."""
    from canvas.grid import GridSpec
    return GridSpec(columns=12, row_height=100, margin=16)


@pytest.fixture
def make_component():
    """Factory for components at a given cell with a given size."""
    from canvas.grid import Component, ComponentKind, Position, Size

    def _make(component_id, x, y, width, height, kind=ComponentKind.CHART):
        return Component(
            id=component_id,
            kind=kind,
            position=Position(x=x, y=y),
            size=Size(width=width, height=height),
        )

    return _make


@pytest.fixture
def memory_store():
    from canvas.store import MemoryDashboardStore
    return MemoryDashboardStore()


# ============================================================
# Record Fixtures
# ============================================================

@pytest.fixture
def turbine_records():
    """Telemetry rows as produced by a wind-farm data function."""
    return [
        {
            "turbine_id": "WTG-001",
            "location": "Wind Farm A",
            "status": "Active",
            "wind_speed_mph": 12.5,
            "power_output_kw": 1500,
            "rotor_rpm": 14,
            "timestamp": "2024-03-01T10:00:00Z",
        },
        {
            "turbine_id": "WTG-002",
            "location": "Wind Farm B",
            "status": "Warning",
            "wind_speed_mph": 30.0,
            "power_output_kw": 2400,
            "rotor_rpm": 18,
            "timestamp": "2024-03-05T10:00:00Z",
        },
        {
            "turbine_id": "WTG-003",
            "location": "Desert Winds",
            "status": "Offline",
            "wind_speed_mph": 0,
            "power_output_kw": 0,
            "rotor_rpm": 0,
            "timestamp": "2024-04-01T10:00:00Z",
        },
    ]


@pytest.fixture
def sales_records():
    """Rows with no recognizable filter fields."""
    return [
        {"name": "North", "value": 120},
        {"name": "South", "value": 80},
    ]
