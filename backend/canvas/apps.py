import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class CanvasConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'canvas'

    def ready(self):
        """Check the configured grid once at startup."""
        from .grid import GridSpec

        grid = GridSpec.from_settings()
        logger.info(f"Canvas grid: {grid.columns} columns, {grid.row_height}px rows, {grid.margin}px margin")
