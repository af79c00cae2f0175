"""Cost calculation and balance accounting for translated subtitles."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import InsufficientFundsError, NotFoundError
from subtitle_translator.subtitles.models import SubtitleEntry

if TYPE_CHECKING:
    from subtitle_translator.tasks.models import User
    from subtitle_translator.tasks.stores import UserStore

logger = log_mgr.get_logger().getChild("billing")

CHARACTERS_PER_UNIT = Decimal(100)
CENTS = Decimal("0.01")


def count_characters(entries: Iterable[SubtitleEntry]) -> int:
    """Return the total length of every entry's content."""

    return sum(len(entry.content) for entry in entries)


def compute_cost(characters: int, unit_price: Decimal) -> Decimal:
    """Return ``characters / 100 * unit_price`` rounded half-up to cents."""

    if characters < 0:
        raise ValueError("characters must not be negative")
    raw = Decimal(characters) / CHARACTERS_PER_UNIT * Decimal(unit_price)
    return raw.quantize(CENTS, rounding=ROUND_HALF_UP)


class BillingService:
    """Debit and credit user balances through a :class:`UserStore`."""

    def __init__(self, user_store: "UserStore", *, logger_obj: Optional[logging.Logger] = None) -> None:
        self._users = user_store
        self._logger = logger_obj or logger

    def debit(self, user_id: str, amount: Decimal) -> "User":
        """Subtract ``amount`` from the balance of ``user_id``.

        The balance is left untouched when the user is missing or cannot
        cover the amount.
        """

        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}")
        with self._users.locked(user_id) as user:
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            if user.balance < amount:
                raise InsufficientFundsError(
                    f"User {user_id} balance {user.balance} cannot cover {amount}"
                )
            user.balance = user.balance - amount
            self._logger.info(
                "Debited %s from user %s",
                amount,
                user_id,
                extra={"event": "billing.debit", "user_id": user_id, "balance": str(user.balance)},
            )
            return user

    def top_up(self, user_id: str, amount: Decimal) -> "User":
        """Add ``amount`` to the balance of ``user_id``."""

        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError(f"Top-up amount must be positive, got {amount}")
        with self._users.locked(user_id) as user:
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            user.balance = user.balance + amount
            self._logger.info(
                "Credited %s to user %s",
                amount,
                user_id,
                extra={"event": "billing.top_up", "user_id": user_id, "balance": str(user.balance)},
            )
            return user


__all__ = ["BillingService", "compute_cost", "count_characters"]
