"""Same-day wall-clock interval arithmetic.

Times are zero-padded ``HH:MM`` strings, so lexicographic comparison orders
them the same way as minute-of-day integers. Intervals are half-open
``[start, end)``: a class ending at 11:00 and one starting at 11:00 do not
collide.
"""
from __future__ import annotations

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return a_start < b_end and b_start < a_end


def contains(outer_start: str, outer_end: str, inner_start: str, inner_end: str) -> bool:
    return inner_start >= outer_start and inner_end <= outer_end


def overlap_clause(start_column, end_column, start: str, end: str) -> ColumnElement[bool]:
    """SQL form of :func:`overlaps` with the stored row as interval ``b``."""
    return and_(start_column < end, end_column > start)
