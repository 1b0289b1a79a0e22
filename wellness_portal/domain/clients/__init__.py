"""Clients domain - client records, search, import and export"""

from .router import router

__all__ = ["router"]
