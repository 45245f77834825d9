"""Celery application, beat schedule and ranking tasks."""
