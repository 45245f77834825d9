"""Instructor performance, ranking and review moderation engine."""

__version__ = "1.0.0"
