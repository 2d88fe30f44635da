from django.urls import include, path

urlpatterns = [
    path("music/", include("apps.music.urls")),
    path("", include("apps.matching.urls")),
    path("", include("apps.connections.urls")),
    path("", include("apps.messaging.urls")),
    path("", include("apps.notifications.urls")),
]
