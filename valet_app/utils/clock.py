# valet_app/utils/clock.py
"""
Wall clock used for every expiry and timestamp decision.
Services take a `clock` argument defaulting to utcnow so tests can pin time.
All timestamps are naive UTC, matching what the DateTime columns store.
"""

from datetime import datetime
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.utcnow()
