"""
Database Package - SQLAlchemy
=============================

Persistence layer for disputes, professionals, meetings and notifications.
"""

from .models import (
    Base,
    User, Professional, Dispute, DisputeMeeting, DisputeDocument, Notification,
    UserRole, ResolutionType, ProfessionalType, ProfessionalStatus,
    DocumentType, CaseStatus, NotificationType,
)
from .session import get_db, get_db_session, init_db, get_engine, reset_engine

__all__ = [
    # Base
    "Base",
    # Models
    "User", "Professional", "Dispute", "DisputeMeeting", "DisputeDocument", "Notification",
    # Enums
    "UserRole", "ResolutionType", "ProfessionalType", "ProfessionalStatus",
    "DocumentType", "CaseStatus", "NotificationType",
    # Session
    "get_db", "get_db_session", "init_db", "get_engine", "reset_engine",
]
