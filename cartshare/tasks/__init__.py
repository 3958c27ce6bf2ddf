"""Celery task definitions package."""

from cartshare.tasks import shared_carts  # noqa: F401

__all__ = ["shared_carts"]
