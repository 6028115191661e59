# src/vecinu/api/endpoints/__init__.py
"""API endpoint modules."""

from .admin import router as admin_router
from .auth import router as auth_router
from .comments import router as comments_router
from .neighborhoods import router as neighborhoods_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .reports import router as reports_router
from .search import router as search_router
from .users import account_router
from .users import router as users_router

__all__ = [
    "account_router",
    "admin_router",
    "auth_router",
    "comments_router",
    "neighborhoods_router",
    "notifications_router",
    "posts_router",
    "reports_router",
    "search_router",
    "users_router",
]
