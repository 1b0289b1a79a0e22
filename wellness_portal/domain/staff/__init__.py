"""Staff domain - staff profiles, roles and profile photos"""

from .router import router, users_router

__all__ = ["router", "users_router"]
