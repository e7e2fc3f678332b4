"""Violation aggregation and ordering."""

from .reporter import ViolationReporter, summarize

__all__ = ["ViolationReporter", "summarize"]
