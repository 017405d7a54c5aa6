from django.urls import path
from .views import BuyView, EventCreateView, EventDetailView, EventListView, VoteView

urlpatterns = [
    path("list", EventListView.as_view(), name="event-list"),
    path("event", EventCreateView.as_view(), name="event-create"),
    path("<int:event_id>", EventDetailView.as_view(), name="event-detail"),
    path("vote/<int:event_id>", VoteView.as_view(), name="event-vote"),
    path("buy/<int:event_id>", BuyView.as_view(), name="event-buy"),
]
