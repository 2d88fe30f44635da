from django.urls import path

from .views import ConversationReadView, ConversationView

urlpatterns = [
    path("messages/<int:user_id>/", ConversationView.as_view(), name="conversation"),
    path("messages/<int:user_id>/read/", ConversationReadView.as_view(), name="conversation-read"),
]
