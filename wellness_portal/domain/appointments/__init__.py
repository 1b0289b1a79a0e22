"""Appointments domain - booking, calendar views, rescheduling and cancellation"""

from .router import router

__all__ = ["router"]
