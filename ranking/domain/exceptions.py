PURCHASE_REJECTED_MESSAGE = "购买失败！"


class InvalidVoteError(Exception):
    """Raised when a vote request violates a business rule. Never retried."""

    reason = "INVALID_VOTE"


class InvalidQuantity(InvalidVoteError):
    """Raised when the requested vote quantity is not a positive integer."""

    reason = "INVALID_QUANTITY"

    def __init__(self, requested):
        self.requested = requested
        super().__init__(f"Vote quantity must be positive, got {requested}")


class EventNotFound(InvalidVoteError):
    """Raised when the voted-on event does not exist."""

    reason = "EVENT_NOT_FOUND"

    def __init__(self, event_id):
        self.event_id = event_id
        super().__init__(f"Event {event_id} does not exist")


class UserNotFound(InvalidVoteError):
    """Raised when the voting user does not exist."""

    reason = "USER_NOT_FOUND"

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id} does not exist")


class InsufficientBudget(InvalidVoteError):
    """Raised when a user does not have enough votes left to cover the request."""

    reason = "INSUFFICIENT_BUDGET"

    def __init__(self, user_id, requested, available):
        self.user_id = user_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"User {user_id}: requested {requested} votes, available {available}"
        )


class PurchaseRejectedError(Exception):
    """
    Raised when a rank purchase is refused.

    The message is always the same user-facing text; ``reason`` tells a
    malformed bid, an unknown event and a bid that does not beat the
    incumbent apart.
    """

    INVALID_BID = "INVALID_BID"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    BID_TOO_LOW = "BID_TOO_LOW"

    def __init__(self, reason, event_id, rank, amount):
        self.reason = reason
        self.event_id = event_id
        self.rank = rank
        self.amount = amount
        super().__init__(PURCHASE_REJECTED_MESSAGE)
