"""
Application Use Cases — Voting and Rank Purchases

The two mutating operations of the ranking system live here, and nowhere
else: casting votes against a user's finite budget, and buying a rank slot
with a bid that may evict the current occupant.

Core guarantees provided:

- Atomicity: each operation executes inside a single transaction.atomic()
  block. A business rejection or a storage failure rolls back every write.
- Row-level locking: select_for_update() on the event and user rows for
  votes. Purchases lock the RankSlot rows of the requested rank and of the
  rank the buyer already holds, then the buyer and incumbent events, so
  check-then-act sequences never see stale state and an evicted event
  cannot gain votes mid-cascade.
- Race-condition safety: counters are updated with database-level F()
  expressions.
- Explicit domain signaling: business rule violations raise the exceptions
  in ranking.domain.exceptions. Storage errors are never caught here.

Eviction order:

Evicting an outbid event deletes its Trade rows, then its Vote rows, then the
Event itself. The foreign keys are PROTECT, so this sequence is the only way
the event can go.
"""

import logging

from django.db import transaction
from django.db.models import F

from ranking.domain.exceptions import (
    EventNotFound,
    InsufficientBudget,
    InvalidQuantity,
    PurchaseRejectedError,
    UserNotFound,
)
from ranking.models import Event, RankSlot, Trade, User, Vote

logger = logging.getLogger(__name__)


def cast_vote(event_id, user_id, num, voted_at):
    """
    Spends ``num`` votes of a user's budget on an event.

    Preconditions are checked in order (event, user, budget) and the first
    failure wins. On success the vote row, the user's budget and the event's
    total change together. A non-positive quantity is rejected before any
    row is touched.
    """
    if num <= 0:
        logger.warning("Vote rejected, invalid quantity: event=%s user=%s num=%s", event_id, user_id, num)
        raise InvalidQuantity(num)

    with transaction.atomic():
        event = (
            Event.objects
            .select_for_update()
            .filter(id=event_id)
            .first()
        )
        if event is None:
            logger.warning("Vote rejected, unknown event: event=%s user=%s", event_id, user_id)
            raise EventNotFound(event_id)

        user = (
            User.objects
            .select_for_update()
            .filter(id=user_id)
            .first()
        )
        if user is None:
            logger.warning("Vote rejected, unknown user: event=%s user=%s", event_id, user_id)
            raise UserNotFound(user_id)

        if user.vote_num < num:
            logger.warning(
                "Vote rejected, insufficient budget: user=%s requested=%s available=%s",
                user_id, num, user.vote_num,
            )
            raise InsufficientBudget(user_id, num, user.vote_num)

        vote = Vote.objects.create(
            user_id=user_id,
            event_id=event_id,
            num=num,
            voted_at=voted_at,
        )
        _debit_budget(user_id, num)
        _credit_event(event_id, num)

        user.refresh_from_db(fields=["vote_num"])
        event.refresh_from_db(fields=["vote_num"])

    logger.info(
        "Vote recorded: vote=%s event=%s user=%s num=%s",
        vote.id, event_id, user_id, num,
    )
    return {
        "vote_id": vote.id,
        "event_id": event.id,
        "user_id": user.id,
        "vote_num": num,
        "remaining_votes": user.vote_num,
        "event_votes": event.vote_num,
    }


def buy_rank(event_id, rank, amount):
    """
    Places a bid of ``amount`` for ``rank`` on behalf of an event.

    Decision table, evaluated under the rank's lock:
    - no trade at the rank: accept.
    - incumbent bid strictly lower: accept and evict the incumbent event.
    - incumbent bid equal or higher: reject. Ties keep the incumbent.

    Lock order is rank slots (ascending), then the incumbent trade, then the
    target and incumbent events (ascending id).
    """
    if rank <= 0 or amount <= 0:
        logger.warning(
            "Purchase rejected, invalid bid: event=%s rank=%s amount=%s",
            event_id, rank, amount,
        )
        raise PurchaseRejectedError(
            PurchaseRejectedError.INVALID_BID, event_id, rank, amount,
        )

    with transaction.atomic():
        # The slot of the rank the event currently holds is locked too, since
        # buying a new rank releases the old one.
        held_rank = (
            Event.objects
            .filter(id=event_id)
            .values_list("rank", flat=True)
            .first()
        )
        locked_ranks = {rank} if held_rank is None else {rank, held_rank}
        _lock_ranks(locked_ranks)

        incumbent = (
            Trade.objects
            .select_for_update()
            .at_rank(rank)
            .first()
        )

        event_ids = {event_id}
        if incumbent is not None:
            event_ids.add(incumbent.event_id)
        events = _lock_events(event_ids)

        event = events.get(event_id)
        if event is None:
            logger.warning("Purchase rejected, unknown event: event=%s rank=%s", event_id, rank)
            raise PurchaseRejectedError(
                PurchaseRejectedError.EVENT_NOT_FOUND, event_id, rank, amount,
            )

        if event.rank is not None and event.rank not in locked_ranks:
            # Moved by a purchase that committed after the unlocked read.
            _lock_ranks({event.rank})

        if incumbent is not None and incumbent.amount >= amount:
            logger.warning(
                "Purchase rejected, bid too low: event=%s rank=%s offered=%s incumbent=%s",
                event_id, rank, amount, incumbent.amount,
            )
            raise PurchaseRejectedError(
                PurchaseRejectedError.BID_TOO_LOW, event_id, rank, amount,
            )

        evicted_event_id = None
        if incumbent is not None and incumbent.event_id != event.id:
            evicted_event_id = incumbent.event_id
            _evict(evicted_event_id)

        # Covers a rebid on the event's own rank and a move from another rank.
        Trade.objects.for_event(event.id).delete()

        # Rank held without a trade (seeded data) is released, not evicted.
        Event.objects.filter(rank=rank).exclude(id=event.id).update(rank=None)

        event.rank = rank
        event.save(update_fields=["rank"])

        trade = Trade.objects.create(event=event, rank=rank, amount=amount)

    logger.info(
        "Rank purchased: trade=%s event=%s rank=%s amount=%s evicted=%s",
        trade.id, event.id, rank, amount, evicted_event_id,
    )
    return {
        "trade_id": trade.id,
        "event_id": event.id,
        "rank": rank,
        "amount": amount,
        "evicted_event_id": evicted_event_id,
    }


def _lock_ranks(ranks):
    # Ascending order keeps two purchases touching the same ranks from
    # deadlocking. get_or_create recovers from a concurrent insert of a slot.
    for rank in sorted(ranks):
        slot, _ = RankSlot.objects.get_or_create(rank=rank)
        RankSlot.objects.select_for_update().get(id=slot.id)


def _lock_events(event_ids):
    events = (
        Event.objects
        .select_for_update()
        .filter(id__in=event_ids)
        .order_by("id")
    )
    return {event.id: event for event in events}


def _evict(event_id):
    trades_deleted, _ = Trade.objects.for_event(event_id).delete()
    votes_deleted, _ = Vote.objects.for_event(event_id).delete()
    Event.objects.filter(id=event_id).delete()
    logger.info(
        "Event evicted: event=%s trades_deleted=%s votes_deleted=%s",
        event_id, trades_deleted, votes_deleted,
    )


def _debit_budget(user_id, num):
    User.objects.filter(id=user_id).update(vote_num=F("vote_num") - num)


def _credit_event(event_id, num):
    Event.objects.filter(id=event_id).update(vote_num=F("vote_num") + num)
