"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import Callable

Clock = Callable[[], date]


def history_window(today: date, days: int) -> tuple[date, date]:
    """Earliest and latest accepted transaction dates (inclusive)"""
    return today - timedelta(days=days), today


def days_until(due_date: date, today: date) -> int:
    """Signed day distance, negative once the date has passed"""
    return (due_date - today).days
