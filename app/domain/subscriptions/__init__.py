"""Subscriptions domain - Program subscriptions and their setup"""

from .router import router

__all__ = ["router"]
