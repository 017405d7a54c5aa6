"""
Persistence Models — Ranking Domain (Django ORM)

Four record collections back the ranking rules: users with a finite vote
budget, events that accumulate votes and may hold a rank, the append-only
vote ledger, and trades (paid bids occupying a rank).

Key architectural decisions:

- Rank and trade uniqueness are enforced by the use cases under row locks.
  The unique constraints below only turn a missed check into an
  IntegrityError instead of silent corruption.
- Vote and Trade reference Event with on_delete=PROTECT. Storage never
  cascades; evicting an event must delete its trades and votes explicitly
  first, otherwise the delete fails.
- RankSlot exists purely as a lock target, so purchases of a rank that has
  no trade yet still serialize on a row.
- The custom QuerySets expose the lookups the use cases need
  (trade-by-rank, rows-by-event, ranked listing) so query shapes live in one
  place.
"""

from django.db import models
from django.db.models import F, Q


class User(models.Model):
    """
    A voter. Only vote_num is load-bearing for the ranking rules; the
    profile fields are carried for the event-creation flow.
    """

    user_name = models.CharField(max_length=32)
    gender = models.CharField(max_length=16, blank=True, default="")
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")

    vote_num = models.PositiveIntegerField(default=10)

    def __str__(self):
        return f"User {self.id} - Votes left: {self.vote_num}"


class EventQuerySet(models.QuerySet):
    def ranked_listing(self):
        """Ranked events in rank order first, then the rest by vote total."""
        return self.order_by(
            F("rank").asc(nulls_last=True),
            "-vote_num",
            "id",
        )


class Event(models.Model):
    event_name = models.CharField(max_length=128)
    # Free-form label, no taxonomy behind it.
    keyword = models.CharField(max_length=64, blank=True, default="")

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="events",
    )

    vote_num = models.PositiveIntegerField(default=0)

    # NULL means unranked; multiple NULLs do not collide with the constraint.
    rank = models.PositiveIntegerField(null=True, blank=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["rank"], name="unique_event_rank"),
        ]

    def __str__(self):
        return f"Event {self.id} - {self.event_name} (rank={self.rank})"


class VoteQuerySet(models.QuerySet):
    def for_event(self, event_id):
        return self.filter(event_id=event_id)


class Vote(models.Model):
    """
    One vote transaction. Rows are only ever inserted by the vote use case
    and removed wholesale when their event is evicted.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="votes",
    )
    event = models.ForeignKey(
        Event,
        on_delete=models.PROTECT,
        related_name="votes",
    )

    num = models.PositiveIntegerField()
    voted_at = models.DateTimeField()

    objects = VoteQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(num__gt=0), name="vote_num_positive"),
        ]

    def __str__(self):
        return f"Vote {self.id} - {self.num} for Event {self.event_id}"


class TradeQuerySet(models.QuerySet):
    def at_rank(self, rank):
        return self.filter(rank=rank)

    def for_event(self, event_id):
        return self.filter(event_id=event_id)


class Trade(models.Model):
    """
    The current highest bid occupying a rank.

    Key architectural decisions:
    - rank and event are each UNIQUE, mirroring the one-trade-per-rank and
      one-trade-per-event rules the buy use case maintains.
    - event is PROTECT so an event cannot disappear from under its trade.
    """

    event = models.ForeignKey(
        Event,
        on_delete=models.PROTECT,
        related_name="trades",
    )

    rank = models.PositiveIntegerField()
    amount = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)

    objects = TradeQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["rank"], name="unique_trade_rank"),
            models.UniqueConstraint(fields=["event"], name="unique_trade_event"),
            models.CheckConstraint(condition=Q(amount__gt=0), name="trade_amount_positive"),
        ]

    def __str__(self):
        return f"Trade {self.id} - rank {self.rank} for {self.amount}"


class RankSlot(models.Model):
    """Lock row for a rank; purchases of the same rank serialize on it."""

    rank = models.PositiveIntegerField(unique=True)

    def __str__(self):
        return f"RankSlot {self.rank}"
