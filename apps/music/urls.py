from django.urls import path

from apps.music import views

urlpatterns = [
    path("listening/", views.ListeningEventView.as_view(), name="music-listening"),
    path("profile/", views.MusicProfileView.as_view(), name="music-profile"),
    path("spotify/status/", views.SpotifyStatusView.as_view(), name="spotify-status"),
    path("spotify/link/", views.SpotifyLinkView.as_view(), name="spotify-link"),
]
