"""Profiles domain - a client's own profile and onboarding completion"""

from .router import router

__all__ = ["router"]
