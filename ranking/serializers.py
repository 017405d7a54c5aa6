from django.utils import timezone
from rest_framework import serializers

from ranking.models import Event, User


class EventSerializer(serializers.ModelSerializer):
    """Public event representation; the creating user is never exposed."""

    eventName = serializers.CharField(source="event_name", max_length=128)
    keyword = serializers.CharField(max_length=64, allow_blank=True, required=False)
    voteNum = serializers.IntegerField(source="vote_num", read_only=True)
    rank = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Event
        fields = ["id", "eventName", "keyword", "voteNum", "rank"]


class EventCreateSerializer(serializers.Serializer):
    eventName = serializers.CharField(max_length=128)
    keyword = serializers.CharField(max_length=64, allow_blank=True, required=False, default="")
    userId = serializers.IntegerField()

    def validate_userId(self, value):
        if not User.objects.filter(id=value).exists():
            raise serializers.ValidationError("user does not exist")
        return value

    def create(self, validated_data):
        return Event.objects.create(
            event_name=validated_data["eventName"],
            keyword=validated_data["keyword"],
            user_id=validated_data["userId"],
        )


class VoteRequestSerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    voteNum = serializers.IntegerField(min_value=1)
    time = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        attrs.setdefault("time", timezone.now())
        return attrs


class TradeRequestSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    rank = serializers.IntegerField(min_value=1)
