"""Catalog domain - Wellness programs offered for subscription"""

from .router import router

__all__ = ["router"]
