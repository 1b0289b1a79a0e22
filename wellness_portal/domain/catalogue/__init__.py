"""Catalogue domain - services, centres and which centre offers which service"""

from .router import centres_router, services_router

__all__ = ["services_router", "centres_router"]
