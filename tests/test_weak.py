import gc

import pytest
from rcocell import (
    RcOCell,
    WeakRcOCell,
    Slot,
    Replace,
    Dropped,
    ExclusiveAccessConflict,
    RcOCellPanic,
)


def release(cell):
    cell.drop()
    gc.collect()


def test_downgrade():
    cell = RcOCell.from_value("Baum")
    down = cell.downgrade()
    assert down.is_some()
    upgraded = down.try_upgrade()
    assert upgraded.ptr_eq(cell)
    upgraded.drop()
    release(cell)
    assert down.is_none()
    assert down.is_dropped()
    with pytest.raises(Dropped):
        down.try_upgrade()
    with pytest.raises(RcOCellPanic):
        down.upgrade()


def test_downgrade_set():
    cell = RcOCell.from_value("Baum")
    down = cell.downgrade()
    down.set("Nudel")
    with cell.borrow() as guard:
        assert guard.value == "Nudel"
    release(cell)
    assert down.is_none()
    with pytest.raises(Dropped):
        down.try_set("Nudel")
    with pytest.raises(RcOCellPanic):
        down.set("Nudel")


def test_downgrade_get():
    cell = RcOCell.from_value("Baum")
    down = cell.downgrade()
    assert down.get_and_clear() == "Baum"
    assert cell.is_none()
    cell.set("Raum")
    release(cell)
    assert down.is_none()
    with pytest.raises(Dropped):
        down.try_get_and_clear()
    with pytest.raises(RcOCellPanic):
        down.get_and_clear()


def test_clone_keeps_slot_alive():
    cell = RcOCell.from_value(1)
    weak = cell.downgrade()
    other = cell.clone()
    release(cell)
    assert weak.get_and_clone() == 1
    assert other.get_and_clone() == 1
    release(other)
    assert weak.is_dropped()


def test_weak_clone():
    cell = RcOCell.from_value(1)
    weak = cell.downgrade()
    copy = weak.clone()
    assert copy.ptr_eq(weak)
    assert copy.ptr_eq(cell)
    release(cell)
    assert copy.is_none()
    assert not copy.ptr_eq(weak)


def test_weak_is_some_under_exclusive_guard():
    cell = RcOCell.from_value(1)
    weak = cell.downgrade()
    with cell.borrow_mut():
        assert weak.is_some()
    cell.clear()
    assert weak.is_none()


def test_display():
    cell = RcOCell.from_value("Baum")
    weak = cell.downgrade()
    assert str(weak) == "Baum"
    guard = cell.borrow_mut()
    assert str(weak) == "Value currently inaccessible because it is borrowed mutably somewhere"
    guard.release()
    cell.clear()
    assert str(weak) == "No value present"
    release(cell)
    assert str(weak) == "Value already dropped"
    assert repr(weak) == "WeakRcOCell(<dropped>)"


def test_compute_through_weak():
    cell = RcOCell.from_value(2)
    weak = cell.downgrade()
    weak.compute(lambda view: Replace(view.value * 3))
    assert cell.get_and_clone() == 6
    assert weak.compute_if_present(lambda view: Replace(view.value + 1))
    assert not weak.compute_if_absent(lambda: 0)
    assert weak.map(lambda value: value * 10) == 70
    assert weak.if_present(lambda value: None)
    release(cell)
    with pytest.raises(Dropped):
        weak.try_compute(lambda view: Replace(1))
    with pytest.raises(Dropped):
        weak.try_compute_if_absent(lambda: 1)
    with pytest.raises(RcOCellPanic):
        weak.compute_if_absent(lambda: 1)
    with pytest.raises(RcOCellPanic):
        weak.map(lambda value: value)


def test_conflicts_pass_through():
    cell = RcOCell.from_value("Baum")
    weak = cell.downgrade()
    guard = cell.borrow()
    with pytest.raises(ExclusiveAccessConflict):
        weak.try_replace("Nase")
    with pytest.raises(RcOCellPanic):
        weak.clear()
    assert not weak.compute_if_absent(lambda: "Nase")
    guard.release()
    assert weak.replace("Nase") == "Baum"


def test_weak_guard_keeps_slot_alive():
    cell = RcOCell.from_value("Baum")
    weak = cell.downgrade()
    guard = weak.borrow_mut()
    release(cell)
    assert not weak.is_dropped()
    guard.value = "Nase"
    guard.release()
    del guard
    gc.collect()
    assert weak.is_dropped()


def test_swap_through_weak():
    a = RcOCell.from_value("X")
    b = RcOCell.from_value("Y")
    weak_b = b.downgrade()
    a.swap(weak_b)
    assert a.get_and_clone() == "Y"
    weak_b.try_swap(a)
    assert b.get_and_clone() == "Y"
    release(b)
    with pytest.raises(Dropped):
        a.try_swap(weak_b)
    with pytest.raises(RcOCellPanic):
        weak_b.swap(a)
    assert a.get_and_clone() == "X"


def test_conv_unwrap():
    cell = RcOCell.from_value("Baum")
    slot = cell.into_slot()
    with slot.borrow() as guard:
        assert guard.value == "Baum"
    cell = RcOCell.from_slot(slot)
    weak = cell.downgrade()
    raw = weak.into_slot()
    assert raw is slot
    with raw.borrow() as guard:
        assert guard.value == "Baum"


def test_conversions_between_handles():
    cell = RcOCell.from_value("Baum")
    keeper = cell.clone()
    weak = WeakRcOCell.from_cell(cell)
    assert cell.is_released()
    assert weak.ptr_eq(keeper)
    strong = RcOCell.from_weak(weak)
    assert strong.get_and_clone() == "Baum"
    release(strong)
    release(keeper)
    with pytest.raises(Dropped):
        RcOCell.from_weak(weak)
    with pytest.raises(Dropped):
        weak.into_slot()


def test_weak_from_raw_slot():
    slot = Slot("Baum")
    weak = WeakRcOCell.from_slot(slot)
    assert weak.get_and_clone() == "Baum"
    del slot
    gc.collect()
    assert weak.is_none()


def test_del_last_owner():
    cell = RcOCell.from_value("Baum")
    weak = cell.downgrade()
    del cell
    gc.collect()
    assert weak.is_none()
    with pytest.raises(Dropped):
        weak.try_upgrade()
