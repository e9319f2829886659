"""
Error types for the canvas app.

The layout and filter algorithms never raise: bad operands evaluate false,
empty inputs produce empty outputs. These errors are only raised at the
edge, when incoming JSON cannot be turned into the canvas data shapes or
when the controller is asked to touch a component the store does not hold.
"""
from typing import Any, Optional


class CanvasError(Exception):
    """Base error for the canvas app. Carries structured data for the API layer."""

    status_code = 400

    def __init__(self, message: str, field_path: Optional[str] = None, value: Optional[Any] = None):
        self.message = message
        self.field_path = field_path
        self.value = value
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_type": self.__class__.__name__,
            "field_path": self.field_path,
            "value": str(self.value)[:100] if self.value is not None else None,
        }


class InvalidFilterError(CanvasError):
    """Unknown filter kind, operator or group logic, or a malformed filter value."""
    pass


class InvalidLayoutError(CanvasError):
    """Grid, size or position values that break the layout contract."""
    pass


class ComponentNotFoundError(CanvasError):
    """The controller was asked to mutate a component id the store does not hold."""

    status_code = 404

    def __init__(self, component_id: str):
        super().__init__(f"Component '{component_id}' not found", field_path="id", value=component_id)
        self.component_id = component_id
