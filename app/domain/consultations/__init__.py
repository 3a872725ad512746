"""Consultations domain - Private client/practitioner rooms and messaging"""

from .router import router

__all__ = ["router"]
