#!/usr/bin/env python3
"""
Demo script for rcocell showing basic usage.
"""

import logging

from rcocell import RcOCell, Replace, Remove, DoNothing, AccessConflict, RcOCellPanic


def count_visit(view):
    """Compute callback: start a counter, bump it, or drop it at 3."""
    if view is None:
        return Replace(1)
    if view.value >= 3:
        return Remove()
    view.value += 1
    return DoNothing()


def main():
    """Main demo function."""
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")

    visits = RcOCell(label="visits")
    reader = visits.clone()
    watcher = visits.downgrade()

    for _ in range(4):
        visits.compute(count_visit)
        print("[main] visits:", reader, "| some:", watcher.is_some())

    visits.set(10)
    guard = reader.borrow()
    try:
        visits.try_set(11)
    except AccessConflict as e:
        print("[main] write refused while reading:", e)
    try:
        visits.clear()
    except RcOCellPanic as e:
        print("[main] direct form panics:", e)
    finally:
        guard.release()

    print("[main] final value:", visits.get_and_clear())

    visits.drop()
    reader.drop()
    print("[main] after last owner released:", watcher)


if __name__ == "__main__":
    main()
