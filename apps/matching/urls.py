from django.urls import path

from apps.matching import views

urlpatterns = [
    path("matches/", views.MatchListView.as_view(), name="match-list"),
    path("matches/with/<int:user_id>/", views.MatchWithView.as_view(), name="match-with"),
]
