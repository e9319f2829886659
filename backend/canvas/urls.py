from django.urls import path

from . import views

urlpatterns = [
    path("filters/apply/", views.apply_filters_view, name="canvas-filters-apply"),
    path("filters/compatibility/", views.compatibility_view, name="canvas-filters-compatibility"),
    path("layout/place/", views.place_component_view, name="canvas-layout-place"),
    path("layout/compact/", views.compact_layout_view, name="canvas-layout-compact"),
]
