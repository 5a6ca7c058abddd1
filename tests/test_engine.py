from decimal import Decimal

import pytest

from spotsim.config import Settings
from spotsim.engine import MatchingEngine
from spotsim.errors import InsufficientFunds, InvalidInput, InvalidState, NotFound
from spotsim.models import OrderStatus, Side
from spotsim.state import MarketState


def make_engine(price=None, **overrides):
    state = MarketState(Settings(**overrides))
    if price is not None:
        state.record_price(Decimal(str(price)))
    return MatchingEngine(state), state


def assert_invariants(state):
    assert state.wallet.fiat >= 0
    assert state.wallet.asset >= 0
    for o in state.book.all():
        if o.status == OrderStatus.filled:
            assert o.filled_at is not None and o.filled_price is not None
        else:
            assert o.filled_at is None and o.filled_price is None


def test_buy_fills_at_observed_price():
    eng, state = make_engine(3500)
    order = eng.submit_order(Side.buy, 3600, 1)
    filled = eng.tick()
    assert filled == [order]
    assert order.status == OrderStatus.filled
    assert order.filled_price == Decimal("3500")
    # the limit price is what gets debited
    assert state.wallet.fiat == Decimal("6400")
    assert state.wallet.asset == Decimal("5001")
    assert_invariants(state)


def test_buy_waits_while_price_above_limit():
    eng, state = make_engine(3500)
    order = eng.submit_order(Side.buy, "3000", "1")
    for p in ("3400", "3100", "3000.01"):
        state.record_price(Decimal(p))
        assert eng.tick() == []
        assert order.status == OrderStatus.pending
    state.record_price(Decimal("3000"))
    assert eng.tick() == [order]
    assert state.wallet.fiat == Decimal("7000")
    assert_invariants(state)


def test_sell_fills_when_price_reaches_limit():
    eng, state = make_engine(3300)
    order = eng.submit_order(Side.sell, "3400", "2")
    assert eng.tick() == []
    state.record_price(Decimal("3500"))
    assert eng.tick() == [order]
    assert order.filled_price == Decimal("3500")
    assert state.wallet.asset == Decimal("4998")
    assert state.wallet.fiat == Decimal("16800")
    assert_invariants(state)


def test_starved_buy_stays_pending_until_funds_arrive():
    eng, state = make_engine(3500)
    big = eng.submit_order(Side.buy, "4000", "2")
    starved = eng.submit_order(Side.buy, "3600", "1")
    sell = eng.submit_order(Side.sell, "3500", "1")

    filled = eng.tick()
    assert filled == [big, sell]
    assert starved.status == OrderStatus.pending
    assert state.wallet.fiat == Decimal("5500")

    assert eng.tick() == [starved]
    assert state.wallet.fiat == Decimal("1900")
    assert state.wallet.asset == Decimal("5002")
    assert_invariants(state)


def test_starved_indefinitely_without_funds():
    eng, state = make_engine(3500, initial_fiat=Decimal("5000"))
    first = eng.submit_order(Side.buy, "4000", "1")
    second = eng.submit_order(Side.buy, "4000", "1")
    eng.tick()
    for _ in range(10):
        assert eng.tick() == []
    assert first.status == OrderStatus.filled
    assert second.status == OrderStatus.pending
    assert state.wallet.fiat == Decimal("1000")
    assert_invariants(state)


@pytest.mark.parametrize(
    "price,amount",
    [(0, 1), (3500, 0), (-1, 1), (3500, -0.5), (None, 1), (3500, None), ("abc", 1), ("NaN", 1), (3500, "Infinity"), (True, 1)],
)
def test_submit_rejects_invalid_input(price, amount):
    eng, state = make_engine(3500)
    with pytest.raises(InvalidInput):
        eng.submit_order(Side.buy, price, amount)
    assert len(state.book) == 0


def test_admission_check():
    eng, state = make_engine(3500)
    with pytest.raises(InsufficientFunds):
        eng.submit_order(Side.buy, "3600", "3")
    with pytest.raises(InsufficientFunds):
        eng.submit_order(Side.sell, "3600", "5001")
    # exactly covered is fine
    eng.submit_order(Side.buy, "2000", "5")
    eng.submit_order(Side.sell, "9000", "5000")
    assert len(state.book) == 2


def test_cancel_rules():
    eng, state = make_engine(3500)
    with pytest.raises(NotFound):
        eng.cancel_order("nope")

    pending = eng.submit_order(Side.buy, "3000", "1")
    eng.cancel_order(pending.order_id)
    assert pending.status == OrderStatus.cancelled
    with pytest.raises(InvalidState):
        eng.cancel_order(pending.order_id)

    filled = eng.submit_order(Side.buy, "3600", "1")
    eng.tick()
    before = state.wallet.snapshot()
    with pytest.raises(InvalidState):
        eng.cancel_order(filled.order_id)
    assert filled.status == OrderStatus.filled
    assert state.wallet.snapshot() == before
    assert_invariants(state)


def test_cancelled_orders_never_fill():
    eng, state = make_engine(3500)
    o = eng.submit_order(Side.buy, "3600", "1")
    eng.cancel_order(o.order_id)
    assert eng.tick() == []
    assert state.wallet.fiat == Decimal("10000")


def test_tick_without_reference_price_is_noop():
    eng, state = make_engine()
    o = eng.submit_order(Side.buy, "3600", "1")
    assert eng.tick() == []
    assert o.status == OrderStatus.pending


def test_oversized_sell_is_rejected_and_later_orders_still_fill():
    eng, state = make_engine(3500)
    with pytest.raises(InvalidInput):
        eng.submit_order(Side.sell, "1e999999", "10")
    buy = eng.submit_order(Side.buy, "3600", "1")
    assert eng.tick() == [buy]
    assert len(state.book) == 1
    assert_invariants(state)


@pytest.mark.parametrize(
    "price,amount",
    [("1e500000", "1e500000"), ("10000000.01", "1"), ("3500", "1000000.5")],
)
def test_submit_rejects_values_beyond_limits(price, amount):
    eng, state = make_engine(3500)
    for side in (Side.buy, Side.sell):
        with pytest.raises(InvalidInput):
            eng.submit_order(side, price, amount)
    assert len(state.book) == 0


def test_limits_are_configurable():
    eng, state = make_engine(3500, max_price=Decimal("5000"), max_quantity=Decimal("2"))
    eng.submit_order(Side.sell, "5000", "2")
    with pytest.raises(InvalidInput):
        eng.submit_order(Side.sell, "5000.01", "1")
    with pytest.raises(InvalidInput):
        eng.submit_order(Side.sell, "4000", "2.5")
