"""Wall-clock helpers.

Work order status and lock/confirm timestamps depend on the time at which a
request is served, so every read of "now" goes through here.
"""
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return date.today()
