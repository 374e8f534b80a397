"""Aggregate statistics over stored commits."""

from .aggregator import StatisticsAggregator
from .filters import TimeFilter, build_predicate
from .models import Statistics
from .words import message_words

__all__ = [
    "Statistics",
    "StatisticsAggregator",
    "TimeFilter",
    "build_predicate",
    "message_words",
]
