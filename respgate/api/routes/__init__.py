"""
respgate - API Routes
"""

from .responses import router as responses_router

__all__ = ["responses_router"]
