"""Signup domain - client registration and client record linking"""

from .router import router

__all__ = ["router"]
