"""HTTP API for Vecinu."""

from .endpoints import (
    account_router,
    admin_router,
    auth_router,
    comments_router,
    neighborhoods_router,
    notifications_router,
    posts_router,
    reports_router,
    search_router,
    users_router,
)

ROUTERS = (
    auth_router,
    neighborhoods_router,
    account_router,
    users_router,
    posts_router,
    comments_router,
    reports_router,
    notifications_router,
    search_router,
    admin_router,
)

__all__ = ["ROUTERS"]
