from django.urls import path, include

urlpatterns = [
    path("api/canvas/", include("canvas.urls")),
]
