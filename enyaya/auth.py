"""
Authorization Module (RBAC)
===========================

Roles:
- admin: manage professionals, users and all disputes
- professional: work on disputes assigned to them (meetings, final documents)
- client: register disputes and follow their own cases

Identity comes from the X-User-Id / X-User-Email headers set by the
authenticating front end. Each request gets an immutable SessionContext;
authorization decisions go through the pure `can_access` function.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db.models import Dispute, User, UserRole
from .db.session import get_db

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    """Things a role may act on"""
    DISPUTE_CREATE = "dispute:create"
    DISPUTE_READ_OWN = "dispute:read_own"
    DISPUTE_READ_ASSIGNED = "dispute:read_assigned"
    DISPUTE_READ_ALL = "dispute:read_all"
    DISPUTE_UPDATE = "dispute:update"
    DISPUTE_ASSIGN = "dispute:assign"
    DOCUMENT_SUBMIT = "document:submit"
    MEETING_SCHEDULE = "meeting:schedule"
    AWARD_ISSUE = "award:issue"
    AWARD_DOWNLOAD = "award:download"
    PROFESSIONAL_MANAGE = "professional:manage"
    PROFESSIONAL_READ = "professional:read"
    ROLE_MANAGE = "role:manage"
    NOTIFICATION_READ = "notification:read"


ROLE_RESOURCES = {
    UserRole.ADMIN: {
        Resource.DISPUTE_CREATE, Resource.DISPUTE_READ_OWN, Resource.DISPUTE_READ_ALL,
        Resource.DISPUTE_UPDATE, Resource.DISPUTE_ASSIGN, Resource.DOCUMENT_SUBMIT,
        Resource.AWARD_DOWNLOAD,
        Resource.PROFESSIONAL_MANAGE, Resource.PROFESSIONAL_READ,
        Resource.ROLE_MANAGE, Resource.NOTIFICATION_READ,
    },
    UserRole.PROFESSIONAL: {
        Resource.DISPUTE_READ_ASSIGNED, Resource.DOCUMENT_SUBMIT,
        Resource.MEETING_SCHEDULE, Resource.AWARD_ISSUE, Resource.AWARD_DOWNLOAD,
        Resource.PROFESSIONAL_READ, Resource.NOTIFICATION_READ,
    },
    UserRole.CLIENT: {
        Resource.DISPUTE_CREATE, Resource.DISPUTE_READ_OWN, Resource.DOCUMENT_SUBMIT,
        Resource.AWARD_DOWNLOAD, Resource.NOTIFICATION_READ,
    },
}


def can_access(role: UserRole, resource: Resource) -> bool:
    """Whether `role` may act on `resource`."""
    return resource in ROLE_RESOURCES.get(role, set())


@dataclass(frozen=True)
class SessionContext:
    """Who is making the request"""
    user_id: str
    email: str
    role: UserRole
    professional_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can(self, resource: Resource) -> bool:
        return can_access(self.role, resource)

    def require(self, resource: Resource):
        if not self.can(resource):
            logger.warning(f"Denied {resource.value} for {self.email} ({self.role.value})")
            raise HTTPException(status_code=403, detail="Not allowed")

    def can_view_dispute(self, dispute: Dispute) -> bool:
        if self.can(Resource.DISPUTE_READ_ALL):
            return True
        if self.can(Resource.DISPUTE_READ_ASSIGNED) and self.professional_id \
                and dispute.assigned_professional_id == self.professional_id:
            return True
        return self.can(Resource.DISPUTE_READ_OWN) and dispute.user_id == self.user_id

    def is_assigned_to(self, dispute: Dispute) -> bool:
        return bool(self.professional_id) and dispute.assigned_professional_id == self.professional_id


def session_from_user(user: User) -> SessionContext:
    return SessionContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        professional_id=user.professional_id,
    )


async def get_session_context(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    db: Session = Depends(get_db),
) -> SessionContext:
    """
    Get the session context from either:
    - `X-User-Id` (preferred when present)
    - `X-User-Email`
    """
    if not x_user_id and not x_user_email:
        raise HTTPException(status_code=401, detail="Authentication required")

    if x_user_id:
        user = db.get(User, x_user_id)
    else:
        user = db.query(User).filter(User.email == x_user_email.strip().lower()).first()

    if user is None:
        logger.warning("Auth failed: user_id=%s email=%s", x_user_id, x_user_email)
        raise HTTPException(status_code=401, detail="User not found")
    return session_from_user(user)
