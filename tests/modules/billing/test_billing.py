from __future__ import annotations

from decimal import Decimal

import pytest

from subtitle_translator.billing import BillingService, compute_cost, count_characters
from subtitle_translator.errors import InsufficientFundsError, NotFoundError
from subtitle_translator.tasks import InMemoryUserStore, User
from tests.helpers.subtitles import build_entries

pytestmark = pytest.mark.billing


@pytest.fixture
def user_store() -> InMemoryUserStore:
    store = InMemoryUserStore()
    store.insert(User(user_id="u1", username="alice", balance=Decimal("1.00")))
    return store


@pytest.mark.parametrize(
    ("characters", "price", "expected"),
    [
        (250, Decimal("0.10"), Decimal("0.25")),
        (0, Decimal("0.10"), Decimal("0.00")),
        (5, Decimal("0.10"), Decimal("0.01")),
        (4, Decimal("0.10"), Decimal("0.00")),
        (1234, Decimal("0.07"), Decimal("0.86")),
    ],
)
def test_compute_cost_rounds_half_up(characters, price, expected):
    assert compute_cost(characters, price) == expected


def test_compute_cost_rejects_negative_characters():
    with pytest.raises(ValueError):
        compute_cost(-1, Decimal("0.10"))


def test_count_characters_sums_content_lengths():
    entries = build_entries(3)

    assert count_characters(entries) == len("Line 1") * 3


def test_debit_reduces_balance(user_store):
    billing = BillingService(user_store)

    updated = billing.debit("u1", Decimal("0.25"))

    assert updated.balance == Decimal("0.75")
    assert user_store.find_by_id("u1").balance == Decimal("0.75")


def test_debit_exceeding_balance_leaves_it_untouched():
    store = InMemoryUserStore()
    store.insert(User(user_id="u2", username="bob", balance=Decimal("0.20")))
    billing = BillingService(store)

    with pytest.raises(InsufficientFundsError):
        billing.debit("u2", compute_cost(250, Decimal("0.10")))

    assert store.find_by_id("u2").balance == Decimal("0.20")


def test_debit_unknown_user(user_store):
    with pytest.raises(NotFoundError):
        BillingService(user_store).debit("ghost", Decimal("1"))


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
def test_debit_requires_positive_amount(user_store, amount):
    with pytest.raises(ValueError):
        BillingService(user_store).debit("u1", amount)


def test_top_up_adds_to_balance(user_store):
    updated = BillingService(user_store).top_up("u1", Decimal("2.50"))

    assert updated.balance == Decimal("3.50")
    assert user_store.find_by_id("u1").balance == Decimal("3.50")


def test_user_rejects_float_balance():
    with pytest.raises(TypeError):
        User(user_id="u3", username="carol", balance=0.1)
