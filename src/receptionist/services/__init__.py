"""Services module - Call processing orchestration."""

from receptionist.services.call_processor import CallProcessor, call_processor, transition_allowed
from receptionist.services.analytics import AnalyticsAggregator
from receptionist.services.locks import KeyedLock

__all__ = [
    "CallProcessor",
    "call_processor",
    "transition_allowed",
    "AnalyticsAggregator",
    "KeyedLock",
]
