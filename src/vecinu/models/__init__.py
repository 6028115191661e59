# src/vecinu/models/__init__.py
"""SQLAlchemy models for the Vecinu application."""

from .comment import Comment, CommentStatus
from .moderation import (
    ACTIVE_REPORT_STATUSES,
    AuditAction,
    AuditLog,
    AuditTargetType,
    Report,
    ReportStatus,
    ReportTargetType,
)
from .neighborhood import Neighborhood
from .notification import Notification, NotificationType
from .post import MARKETPLACE_CATEGORIES, Post, PostCategory, PostImage, PostStatus, SavedPost
from .user import STAFF_ROLES, User, UserRole

__all__ = [
    "Comment", "CommentStatus",
    "ACTIVE_REPORT_STATUSES", "AuditAction", "AuditLog", "AuditTargetType",
    "Report", "ReportStatus", "ReportTargetType",
    "Neighborhood",
    "Notification", "NotificationType",
    "MARKETPLACE_CATEGORIES", "Post", "PostCategory", "PostImage", "PostStatus", "SavedPost",
    "STAFF_ROLES", "User", "UserRole",
]
