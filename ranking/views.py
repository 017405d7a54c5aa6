"""
API Layer — Ranking Endpoints (Django REST Framework)

Thin controllers over the ranking use cases. Their responsibilities are
intentionally limited to:

- Request validation and type coercion through DRF serializers
- Delegation to the application use cases
- Translation of domain exceptions into HTTP responses

No business rules are implemented here. Every rejection (an invalid vote or
a refused purchase) is a 400 carrying the rejection message verbatim.
Storage errors are not caught and surface as server errors.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from ranking.application.use_cases import buy_rank, cast_vote
from ranking.domain.exceptions import InvalidVoteError, PurchaseRejectedError
from ranking.models import Event
from ranking.serializers import (
    EventCreateSerializer,
    EventSerializer,
    TradeRequestSerializer,
    VoteRequestSerializer,
)

INVALID_PARAM = {"error": "invalid param"}


class EventListView(APIView):
    """
    GET /rs/list?start=&end=

    Events in ranked order. start/end are 1-based and inclusive; either may
    be omitted.
    """

    def get(self, request):
        events = list(Event.objects.ranked_listing())

        try:
            start = int(request.query_params.get("start", 1))
            end = int(request.query_params.get("end", len(events)))
        except (TypeError, ValueError):
            return Response(
                {"error": "invalid request param"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if events and (start < 1 or end < start or end > len(events)):
            return Response(
                {"error": "invalid request param"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        page = events[start - 1:end]
        return Response(EventSerializer(page, many=True).data, status=status.HTTP_200_OK)


class EventDetailView(APIView):
    """GET /rs/<event_id>"""

    def get(self, request, event_id):
        event = Event.objects.filter(id=event_id).first()
        if event is None:
            return Response(
                {"error": "invalid index"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(EventSerializer(event).data, status=status.HTTP_200_OK)


class EventCreateView(APIView):
    """POST /rs/event"""

    def post(self, request):
        serializer = EventCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(INVALID_PARAM, status=status.HTTP_400_BAD_REQUEST)

        event = serializer.save()
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class VoteView(APIView):
    """
    POST /rs/vote/<event_id>

    Every InvalidVoteError variant maps to the same response; the variant is
    only visible in the logs.
    """

    def post(self, request, event_id):
        serializer = VoteRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(INVALID_PARAM, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            result = cast_vote(event_id, data["userId"], data["voteNum"], data["time"])
        except InvalidVoteError:
            return Response(
                {"error": "invalid vote"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(result, status=status.HTTP_200_OK)


class BuyView(APIView):
    """POST /rs/buy/<event_id>"""

    def post(self, request, event_id):
        serializer = TradeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(INVALID_PARAM, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            result = buy_rank(event_id, data["rank"], data["amount"])
        except PurchaseRejectedError as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(result, status=status.HTTP_200_OK)
