"""Numeric coercion shared by order lines and inventory records."""

from __future__ import annotations

from typing import Any


def whole_number(value: Any) -> int | None:
    """Return ``value`` as an int if it is a whole number, else None.

    Documents written by the front end do not distinguish ``3`` from ``3.0``,
    so an integral float is accepted and normalised.  Booleans, fractional
    floats and numeric strings are not numbers here.
    """
    # bool is an int subclass; a flag is never a count
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
