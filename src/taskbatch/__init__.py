"""Bounded-concurrency batch task execution."""

__version__ = "0.1.0"
