from stockgate.core.availability import (
    StockStatus,
    Tracked,
    Untracked,
    classify,
    clamp,
    deduct,
    derive_available,
)


def test_stock_equal_to_threshold_is_unavailable():
    assert derive_available(Tracked(quantity=10, threshold=10), current=True) is False


def test_stock_above_threshold_is_available():
    assert derive_available(Tracked(quantity=11, threshold=10), current=False) is True


def test_untracked_keeps_current_availability():
    assert derive_available(Untracked(threshold=3), current=False) is False
    assert derive_available(Untracked(threshold=3), current=True) is True


def test_negative_values_are_clamped():
    state = Tracked(quantity=-4, threshold=-1)
    assert (state.quantity, state.threshold) == (0, 0)
    assert Untracked(threshold=-7).threshold == 0
    assert clamp(-1) == 0


def test_deduct_floors_at_zero():
    assert deduct(Tracked(quantity=3), 5).quantity == 0
    assert deduct(Tracked(quantity=10, threshold=2), 3) == Tracked(quantity=7, threshold=2)


def test_deduct_ignores_non_positive_quantities():
    state = Tracked(quantity=4)
    assert deduct(state, 0) is state
    assert deduct(state, -2) is state


def test_classify():
    assert classify(Untracked()) == StockStatus.NOT_TRACKED
    assert classify(Tracked(quantity=11, threshold=10)) == StockStatus.IN_STOCK
    assert classify(Tracked(quantity=10, threshold=10)) == StockStatus.LOW_STOCK
    assert classify(Tracked(quantity=0, threshold=0)) == StockStatus.OUT_OF_STOCK
