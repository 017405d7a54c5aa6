from datetime import datetime, timezone
from unittest import mock
import threading

from django.db import DatabaseError, connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from rest_framework.test import APIClient

from config.env import EnvSettings
from ranking.application import use_cases
from ranking.application.use_cases import buy_rank, cast_vote
from ranking.domain.exceptions import (
    EventNotFound,
    InsufficientBudget,
    InvalidQuantity,
    InvalidVoteError,
    PurchaseRejectedError,
    UserNotFound,
)
from ranking.models import Event, RankSlot, Trade, User, Vote

VOTED_AT = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)


class RankingFixturesMixin:
    def setUp(self):
        self.user = User.objects.create(
            user_name="idolice",
            gender="female",
            age=19,
            email="a@b.com",
            phone="18888888888",
            vote_num=10,
        )

    def make_event(self, name, **kwargs):
        return Event.objects.create(event_name=name, keyword="无分类", user=self.user, **kwargs)


class CastVoteTest(RankingFixturesMixin, TestCase):

    def test_vote_moves_budget_to_event(self):
        event = self.make_event("第一条事件")

        result = cast_vote(event.id, self.user.id, 1, VOTED_AT)

        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 9)
        self.assertEqual(event.vote_num, 1)
        self.assertEqual(result["remaining_votes"], 9)
        self.assertEqual(result["event_votes"], 1)

        vote = Vote.objects.get()
        self.assertEqual(vote.num, 1)
        self.assertEqual(vote.user_id, self.user.id)
        self.assertEqual(vote.event_id, event.id)
        self.assertEqual(vote.voted_at, VOTED_AT)

    def test_whole_budget_can_be_spent(self):
        event = self.make_event("第一条事件")

        cast_vote(event.id, self.user.id, 10, VOTED_AT)

        self.user.refresh_from_db()
        self.assertEqual(self.user.vote_num, 0)

    def test_sequential_votes_accumulate(self):
        event = self.make_event("第一条事件")

        cast_vote(event.id, self.user.id, 3, VOTED_AT)
        cast_vote(event.id, self.user.id, 4, VOTED_AT)

        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 3)
        self.assertEqual(event.vote_num, 7)
        self.assertEqual(Vote.objects.count(), 2)

    def test_unknown_event_is_rejected(self):
        with self.assertRaises(EventNotFound) as ctx:
            cast_vote(99999, self.user.id, 1, VOTED_AT)

        self.assertEqual(ctx.exception.event_id, 99999)
        self.user.refresh_from_db()
        self.assertEqual(self.user.vote_num, 10)
        self.assertEqual(Vote.objects.count(), 0)

    def test_unknown_user_is_rejected(self):
        event = self.make_event("第一条事件")

        with self.assertRaises(UserNotFound):
            cast_vote(event.id, 99999, 1, VOTED_AT)

        event.refresh_from_db()
        self.assertEqual(event.vote_num, 0)
        self.assertEqual(Vote.objects.count(), 0)

    def test_event_check_precedes_user_check(self):
        with self.assertRaises(EventNotFound):
            cast_vote(99999, 99999, 1, VOTED_AT)

    def test_insufficient_budget_rolls_back(self):
        """Asking for more votes than the budget holds must leave every record untouched."""
        event = self.make_event("第一条事件")

        with self.assertRaises(InsufficientBudget) as ctx:
            cast_vote(event.id, self.user.id, 11, VOTED_AT)

        self.assertEqual(ctx.exception.requested, 11)
        self.assertEqual(ctx.exception.available, 10)
        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 10)
        self.assertEqual(event.vote_num, 0)
        self.assertEqual(Vote.objects.count(), 0)

    def test_every_rejection_is_an_invalid_vote(self):
        for exc_class in (InvalidQuantity, EventNotFound, UserNotFound, InsufficientBudget):
            self.assertTrue(issubclass(exc_class, InvalidVoteError))

    def test_non_positive_quantity_is_a_domain_rejection(self):
        """A negative quantity must not reach the database as an IntegrityError."""
        event = self.make_event("第一条事件")

        for num in (0, -3):
            with self.assertRaises(InvalidQuantity) as ctx:
                cast_vote(event.id, self.user.id, num, VOTED_AT)
            self.assertEqual(ctx.exception.requested, num)

        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 10)
        self.assertEqual(event.vote_num, 0)
        self.assertEqual(Vote.objects.count(), 0)

    def test_storage_failure_propagates_and_rolls_back(self):
        """A failing write after the vote row and budget debit must undo both."""
        event = self.make_event("第一条事件")

        with mock.patch.object(use_cases, "_credit_event", side_effect=DatabaseError("boom")):
            with self.assertRaises(DatabaseError):
                cast_vote(event.id, self.user.id, 2, VOTED_AT)

        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 10)
        self.assertEqual(event.vote_num, 0)
        self.assertEqual(Vote.objects.count(), 0)


class BuyRankTest(RankingFixturesMixin, TestCase):

    def test_buy_free_rank(self):
        self.make_event("第一条事件")
        event = self.make_event("第二条事件")

        result = buy_rank(event.id, 1, 100)

        event.refresh_from_db()
        self.assertEqual(event.rank, 1)
        trade = Trade.objects.get()
        self.assertEqual(trade.amount, 100)
        self.assertEqual(trade.rank, 1)
        self.assertEqual(trade.event_id, event.id)
        self.assertIsNone(result["evicted_event_id"])

    def test_higher_bid_evicts_incumbent(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=10)
        Vote.objects.create(user=self.user, event=incumbent, num=2, voted_at=VOTED_AT)
        Vote.objects.create(user=self.user, event=challenger, num=1, voted_at=VOTED_AT)

        result = buy_rank(challenger.id, 1, 100)

        self.assertEqual(result["evicted_event_id"], incumbent.id)
        trade = Trade.objects.get()
        self.assertEqual(trade.amount, 100)
        self.assertEqual(trade.rank, 1)
        self.assertEqual(trade.event_id, challenger.id)

        self.assertFalse(Event.objects.filter(id=incumbent.id).exists())
        self.assertEqual(Vote.objects.filter(event_id=incumbent.id).count(), 0)
        self.assertEqual(Trade.objects.filter(event_id=incumbent.id).count(), 0)
        self.assertEqual(Vote.objects.filter(event_id=challenger.id).count(), 1)

        challenger.refresh_from_db()
        self.assertEqual(challenger.rank, 1)
        self.assertEqual(Event.objects.count(), 1)

    def test_lower_bid_is_rejected(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=100)

        with self.assertRaises(PurchaseRejectedError) as ctx:
            buy_rank(challenger.id, 1, 10)

        self.assertEqual(str(ctx.exception), "购买失败！")
        self.assertEqual(ctx.exception.reason, PurchaseRejectedError.BID_TOO_LOW)

        trade = Trade.objects.get()
        self.assertEqual(trade.amount, 100)
        self.assertEqual(trade.event_id, incumbent.id)
        incumbent.refresh_from_db()
        challenger.refresh_from_db()
        self.assertEqual(incumbent.rank, 1)
        self.assertIsNone(challenger.rank)

    def test_non_positive_bid_is_a_domain_rejection(self):
        event = self.make_event("第一条事件")

        for rank, amount in ((1, 0), (1, -5), (0, 10)):
            with self.assertRaises(PurchaseRejectedError) as ctx:
                buy_rank(event.id, rank, amount)
            self.assertEqual(ctx.exception.reason, PurchaseRejectedError.INVALID_BID)

        event.refresh_from_db()
        self.assertIsNone(event.rank)
        self.assertEqual(Trade.objects.count(), 0)
        self.assertEqual(RankSlot.objects.count(), 0)

    def test_eviction_locks_incumbent_event(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=10)

        with mock.patch.object(use_cases, "_lock_events", wraps=use_cases._lock_events) as lock_events:
            buy_rank(challenger.id, 1, 100)

        lock_events.assert_called_once_with({challenger.id, incumbent.id})

    def test_moving_ranks_locks_both_slots_in_order(self):
        event = self.make_event("第一条事件")
        buy_rank(event.id, 3, 10)

        with mock.patch.object(RankSlot.objects, "get_or_create", wraps=RankSlot.objects.get_or_create) as get_or_create:
            buy_rank(event.id, 1, 30)

        self.assertEqual(
            [c.kwargs["rank"] for c in get_or_create.call_args_list],
            [1, 3],
        )

    def test_equal_bid_keeps_incumbent(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=50)

        with self.assertRaises(PurchaseRejectedError):
            buy_rank(challenger.id, 1, 50)

        self.assertEqual(Trade.objects.get().event_id, incumbent.id)
        self.assertTrue(Event.objects.filter(id=incumbent.id).exists())

    def test_unknown_event_is_rejected_without_side_effects(self):
        with self.assertRaises(PurchaseRejectedError) as ctx:
            buy_rank(5, 1, 10)

        self.assertEqual(ctx.exception.reason, PurchaseRejectedError.EVENT_NOT_FOUND)
        self.assertEqual(Trade.objects.count(), 0)
        self.assertEqual(RankSlot.objects.count(), 0)

    def test_unknown_event_is_rejected_even_when_bid_would_win(self):
        incumbent = self.make_event("第一条事件", rank=1)
        Trade.objects.create(event=incumbent, rank=1, amount=10)

        with self.assertRaises(PurchaseRejectedError) as ctx:
            buy_rank(99999, 1, 1000)

        self.assertEqual(ctx.exception.reason, PurchaseRejectedError.EVENT_NOT_FOUND)
        self.assertTrue(Event.objects.filter(id=incumbent.id).exists())
        self.assertEqual(Trade.objects.get().amount, 10)

    def test_rebid_on_own_rank_replaces_trade(self):
        event = self.make_event("第一条事件")
        buy_rank(event.id, 1, 10)

        result = buy_rank(event.id, 1, 20)

        self.assertIsNone(result["evicted_event_id"])
        trade = Trade.objects.get()
        self.assertEqual(trade.amount, 20)
        self.assertEqual(trade.event_id, event.id)
        self.assertTrue(Event.objects.filter(id=event.id).exists())

    def test_moving_to_another_rank_frees_the_old_one(self):
        event = self.make_event("第一条事件")
        buy_rank(event.id, 2, 10)

        buy_rank(event.id, 1, 30)

        event.refresh_from_db()
        self.assertEqual(event.rank, 1)
        trade = Trade.objects.get()
        self.assertEqual(trade.rank, 1)
        self.assertFalse(Trade.objects.at_rank(2).exists())

        other = self.make_event("第二条事件")
        buy_rank(other.id, 2, 1)
        other.refresh_from_db()
        self.assertEqual(other.rank, 2)

    def test_rank_held_without_trade_is_released(self):
        seeded = self.make_event("第一条事件", rank=1)
        buyer = self.make_event("第二条事件")

        buy_rank(buyer.id, 1, 10)

        seeded.refresh_from_db()
        buyer.refresh_from_db()
        self.assertIsNone(seeded.rank)
        self.assertEqual(buyer.rank, 1)

    def test_ranks_stay_exclusive_across_bids(self):
        first = self.make_event("第一条事件")
        second = self.make_event("第二条事件")
        third = self.make_event("第三条事件")

        buy_rank(first.id, 1, 10)
        buy_rank(second.id, 1, 20)
        with self.assertRaises(PurchaseRejectedError):
            buy_rank(third.id, 1, 15)
        buy_rank(third.id, 2, 5)

        self.assertEqual(Trade.objects.at_rank(1).count(), 1)
        self.assertEqual(Trade.objects.at_rank(1).get().amount, 20)
        self.assertEqual(Trade.objects.at_rank(2).count(), 1)
        self.assertEqual(
            list(Event.objects.ranked_listing().values_list("id", flat=True)),
            [second.id, third.id],
        )

    def test_storage_failure_during_buy_restores_incumbent(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=10)
        Vote.objects.create(user=self.user, event=incumbent, num=2, voted_at=VOTED_AT)

        real_evict = use_cases._evict

        def evict_then_fail(event_id):
            real_evict(event_id)
            raise DatabaseError("boom")

        with mock.patch.object(use_cases, "_evict", side_effect=evict_then_fail):
            with self.assertRaises(DatabaseError):
                buy_rank(challenger.id, 1, 100)

        self.assertTrue(Event.objects.filter(id=incumbent.id).exists())
        self.assertEqual(Vote.objects.filter(event_id=incumbent.id).count(), 1)
        trade = Trade.objects.get()
        self.assertEqual(trade.event_id, incumbent.id)
        self.assertEqual(trade.amount, 10)
        challenger.refresh_from_db()
        self.assertIsNone(challenger.rank)


class RankedListingTest(RankingFixturesMixin, TestCase):

    def test_ranked_events_first_then_by_votes(self):
        low = self.make_event("low", vote_num=5)
        second = self.make_event("second", rank=2)
        first = self.make_event("first", rank=1)
        high = self.make_event("high", vote_num=9)

        ordered = list(Event.objects.ranked_listing())

        self.assertEqual(ordered, [first, second, high, low])


class RankingEndpointTest(RankingFixturesMixin, TestCase):
    """
    Tests for the /rs/ endpoints.

    Each test runs inside a transaction that is rolled back automatically,
    ensuring full isolation between test cases.
    """

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_list_events(self):
        self.make_event("第一条事件")

        response = self.client.get("/rs/list")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["eventName"], "第一条事件")
        self.assertEqual(response.data[0]["keyword"], "无分类")
        self.assertNotIn("user", response.data[0])

    def test_list_events_between(self):
        self.make_event("第一条事件")
        self.make_event("第二条事件")
        self.make_event("第三条事件")

        response = self.client.get("/rs/list", {"start": 2, "end": 3})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [item["eventName"] for item in response.data],
            ["第二条事件", "第三条事件"],
        )

    def test_list_rejects_out_of_range(self):
        self.make_event("第一条事件")

        response = self.client.get("/rs/list", {"start": 1, "end": 5})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid request param")

    def test_list_orders_by_rank(self):
        self.make_event("第一条事件", rank=3)
        self.make_event("第二条事件", rank=2)
        self.make_event("第三条事件", rank=1)

        response = self.client.get("/rs/list")

        self.assertEqual(response.data[0]["eventName"], "第三条事件")
        self.assertEqual(response.data[0]["rank"], 1)

    def test_get_event(self):
        event = self.make_event("第一条事件")

        response = self.client.get(f"/rs/{event.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["eventName"], "第一条事件")
        self.assertEqual(response.data["voteNum"], 0)

    def test_get_unknown_event(self):
        response = self.client.get("/rs/4")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid index")

    def test_create_event(self):
        response = self.client.post("/rs/event", {
            "eventName": "猪肉涨价了",
            "keyword": "经济",
            "userId": self.user.id,
        })

        self.assertEqual(response.status_code, 201)
        event = Event.objects.get()
        self.assertEqual(event.event_name, "猪肉涨价了")
        self.assertEqual(event.keyword, "经济")
        self.assertEqual(event.user_id, self.user.id)

    def test_create_event_for_unknown_user(self):
        response = self.client.post("/rs/event", {
            "eventName": "猪肉涨价了",
            "keyword": "经济",
            "userId": 100,
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Event.objects.count(), 0)

    def test_vote(self):
        event = self.make_event("第一条事件")

        response = self.client.post(f"/rs/vote/{event.id}", {
            "userId": self.user.id,
            "voteNum": 1,
            "time": "2026-01-01T10:00:00Z",
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["remaining_votes"], 9)
        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 9)
        self.assertEqual(event.vote_num, 1)
        self.assertEqual(Vote.objects.count(), 1)

    def test_vote_without_time_uses_now(self):
        event = self.make_event("第一条事件")

        response = self.client.post(f"/rs/vote/{event.id}", {
            "userId": self.user.id,
            "voteNum": 2,
        })

        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(Vote.objects.get().voted_at)

    def test_vote_over_budget_returns_400(self):
        event = self.make_event("第一条事件")

        response = self.client.post(f"/rs/vote/{event.id}", {
            "userId": self.user.id,
            "voteNum": 11,
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid vote")
        self.assertEqual(Vote.objects.count(), 0)

    def test_vote_for_unknown_event_returns_same_error(self):
        response = self.client.post("/rs/vote/99999", {
            "userId": self.user.id,
            "voteNum": 1,
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid vote")

    def test_vote_with_non_positive_quantity_returns_400(self):
        event = self.make_event("第一条事件")

        response = self.client.post(f"/rs/vote/{event.id}", {
            "userId": self.user.id,
            "voteNum": 0,
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid param")

    def test_buy(self):
        self.make_event("第一条事件")
        event = self.make_event("第二条事件")

        response = self.client.post(f"/rs/buy/{event.id}", {"amount": 100, "rank": 1})

        self.assertEqual(response.status_code, 200)
        trade = Trade.objects.get()
        self.assertEqual(trade.amount, 100)
        self.assertEqual(trade.rank, 1)
        self.assertEqual(trade.event.event_name, "第二条事件")

    def test_buy_outbidding_incumbent(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=10)

        response = self.client.post(f"/rs/buy/{challenger.id}", {"amount": 100, "rank": 1})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["evicted_event_id"], incumbent.id)
        events = list(Event.objects.all())
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].rank, 1)

    def test_buy_rejected_returns_message(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=100)

        response = self.client.post(f"/rs/buy/{challenger.id}", {"amount": 10, "rank": 1})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "购买失败！")
        self.assertEqual(Trade.objects.get().event.event_name, "第一条事件")

    def test_buy_for_unknown_event(self):
        response = self.client.post("/rs/buy/5", {"amount": 10, "rank": 1})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "购买失败！")

    def test_buy_with_missing_fields_returns_400(self):
        event = self.make_event("第一条事件")

        response = self.client.post(f"/rs/buy/{event.id}", {"amount": 10})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid param")


class EnvSettingsTest(SimpleTestCase):

    def test_allowed_hosts_from_comma_separated_string(self):
        env = EnvSettings(allowed_hosts="api.example.com, localhost,")
        self.assertEqual(env.allowed_hosts, ["api.example.com", "localhost"])

    def test_allowed_hosts_from_json_array(self):
        env = EnvSettings(allowed_hosts='["api.example.com", "localhost"]')
        self.assertEqual(env.allowed_hosts, ["api.example.com", "localhost"])

    def test_sqlite_writers_take_the_lock_up_front(self):
        if connection.vendor != "sqlite":
            self.skipTest("SQLite-only connection options")
        options = connection.settings_dict["OPTIONS"]
        self.assertEqual(options["transaction_mode"], "IMMEDIATE")
        self.assertGreater(options["timeout"], 0)


def run_concurrently(calls):
    """Starts every (func, args) pair at once; returns each result or raised exception."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def worker(index, func, args):
        try:
            barrier.wait()
            outcomes[index] = func(*args)
        except Exception as exc:
            outcomes[index] = exc
        finally:
            connection.close()

    threads = [
        threading.Thread(target=worker, args=(index, func, args))
        for index, (func, args) in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


class ConcurrentRankingTest(RankingFixturesMixin, TransactionTestCase):
    """
    Races votes and purchases on separate threads and connections.

    Every call must either succeed or fail with a domain rejection; a
    storage error such as "database is locked" means the calls did not
    serialize.
    """

    def assertOnlyDomainOutcomes(self, outcomes, *rejections):
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                self.assertIsInstance(outcome, rejections)

    def test_concurrent_votes_never_overdraw_budget(self):
        self.user.vote_num = 4
        self.user.save(update_fields=["vote_num"])
        event = self.make_event("第一条事件")

        outcomes = run_concurrently(
            [(cast_vote, (event.id, self.user.id, 1, VOTED_AT))] * 8
        )

        self.assertOnlyDomainOutcomes(outcomes, InsufficientBudget)
        accepted = [o for o in outcomes if isinstance(o, dict)]
        self.assertEqual(len(accepted), 4)

        self.user.refresh_from_db()
        event.refresh_from_db()
        self.assertEqual(self.user.vote_num, 0)
        self.assertEqual(event.vote_num, 4)
        self.assertEqual(Vote.objects.count(), 4)

    def test_concurrent_buys_leave_one_trade_at_the_rank(self):
        events = [self.make_event(f"事件{i}") for i in range(8)]

        outcomes = run_concurrently(
            [(buy_rank, (event.id, 1, 10 + i)) for i, event in enumerate(events)]
        )

        self.assertOnlyDomainOutcomes(outcomes, PurchaseRejectedError)
        for outcome in outcomes:
            if isinstance(outcome, PurchaseRejectedError):
                self.assertEqual(outcome.reason, PurchaseRejectedError.BID_TOO_LOW)

        trade = Trade.objects.get()
        self.assertEqual(trade.rank, 1)
        self.assertEqual(trade.amount, 17)
        self.assertEqual(trade.event_id, events[-1].id)
        self.assertEqual(Event.objects.filter(rank=1).count(), 1)
        self.assertEqual(Event.objects.get(rank=1).id, events[-1].id)

    def test_eviction_racing_votes_leaves_nothing_behind(self):
        incumbent = self.make_event("第一条事件", rank=1)
        challenger = self.make_event("第二条事件")
        Trade.objects.create(event=incumbent, rank=1, amount=10)

        calls = [(cast_vote, (incumbent.id, self.user.id, 1, VOTED_AT))] * 4
        calls.append((buy_rank, (challenger.id, 1, 100)))
        outcomes = run_concurrently(calls)

        self.assertOnlyDomainOutcomes(outcomes, EventNotFound)
        self.assertIsInstance(outcomes[-1], dict)
        self.assertEqual(outcomes[-1]["evicted_event_id"], incumbent.id)

        self.assertFalse(Event.objects.filter(id=incumbent.id).exists())
        self.assertEqual(Vote.objects.filter(event_id=incumbent.id).count(), 0)
        self.assertEqual(Trade.objects.filter(event_id=incumbent.id).count(), 0)
        self.assertEqual(Trade.objects.get().event_id, challenger.id)

        votes_cast = sum(1 for o in outcomes[:-1] if isinstance(o, dict))
        self.user.refresh_from_db()
        self.assertEqual(self.user.vote_num, 10 - votes_cast)
