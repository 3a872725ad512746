"""Bookings domain - Appointment requests, time slots and admin confirmation"""

from .router import router

__all__ = ["router"]
