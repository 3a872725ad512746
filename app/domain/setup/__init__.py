"""Setup domain - System initialization state"""

from .router import router

__all__ = ["router"]
