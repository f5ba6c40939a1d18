"""
Security utilities: permission matrix, admin authentication, rate limiting
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import time
from collections import defaultdict

from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.models import Event, Person, User, UserSession
from app.utils.errors import UnauthorizedError

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

# -------- Permission matrix --------

KEY_ACTIONS = (
    "event:update", "event:delete",
    "meal:create", "meal:update", "meal:delete",
    "service:create", "service:update", "service:delete",
    "item:create", "item:update", "item:delete", "item:assign",
    "ingredient:create", "ingredient:delete", "ingredient:generate",
    "person:create", "person:update:other", "person:delete",
)

# Guests holding only their personal token may still do these
KEY_OR_TOKEN_ACTIONS = (
    "item:check",
    "ingredient:update",
    "person:update:self",
)


@dataclass
class PermissionContext:
    is_authenticated: bool = False
    is_owner: bool = False
    has_valid_key: bool = False
    has_valid_token: bool = False
    user_id: Optional[str] = None
    token_person_id: Optional[int] = None


PERMISSION_RULES = {
    "event:read": lambda ctx: True,
    **{action: (lambda ctx: ctx.has_valid_key) for action in KEY_ACTIONS},
    **{action: (lambda ctx: ctx.has_valid_key or ctx.has_valid_token) for action in KEY_OR_TOKEN_ACTIONS},
}


def can(action: str, ctx: PermissionContext) -> bool:
    """Central permission check: the owner may do everything"""
    if ctx.is_owner:
        return True
    rule = PERMISSION_RULES.get(action)
    if rule is None:
        raise ValueError(f"Unknown action: {action}")
    return rule(ctx)


def assert_can(action: str, ctx: PermissionContext) -> None:
    if not can(action, ctx):
        raise UnauthorizedError(f"Unauthorized: Cannot perform {action}")


def is_admin_key_valid(key: Optional[str], event_key: Optional[str]) -> bool:
    """Simply checks if a key matches an event's admin key"""
    if not event_key:
        return False
    return key == event_key


def build_permission_context(
    db: Session,
    event: Event,
    key: Optional[str] = None,
    person_token: Optional[str] = None,
    user: Optional[User] = None,
) -> PermissionContext:
    """Build the permission context for one request"""
    is_authenticated = user is not None
    is_owner = is_authenticated and bool(event.owner_id) and user.id == event.owner_id
    has_valid_key = is_admin_key_valid(key, event.admin_key)

    has_valid_token = False
    token_person_id = None
    if person_token:
        person = db.query(Person).filter(
            Person.event_id == event.id,
            Person.token == person_token
        ).first()
        if person:
            has_valid_token = True
            token_person_id = person.id

    return PermissionContext(
        is_authenticated=is_authenticated,
        is_owner=is_owner,
        has_valid_key=has_valid_key,
        has_valid_token=has_valid_token,
        user_id=user.id if user else None,
        token_person_id=token_person_id,
    )


def can_modify_person(
    ctx: PermissionContext,
    target_person_id: int,
    target_person_user_id: Optional[str] = None
) -> bool:
    """Own person (by user link or guest token) vs someone else's"""
    if ctx.is_owner:
        return True

    own_by_user = ctx.is_authenticated and target_person_user_id is not None and ctx.user_id == target_person_user_id
    own_by_token = ctx.has_valid_token and ctx.token_person_id == target_person_id
    if own_by_user or own_by_token:
        return can("person:update:self", ctx) or own_by_user

    return can("person:update:other", ctx)


def assert_can_modify_person(ctx: PermissionContext, target_person_id: int, target_person_user_id: Optional[str] = None) -> None:
    if not can_modify_person(ctx, target_person_id, target_person_user_id):
        raise UnauthorizedError("Unauthorized: You cannot modify this person")


# -------- Authentication --------

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify admin authentication token"""
    if credentials.credentials != settings.ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return credentials.credentials


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Resolve the signed-in user from a bearer session token, if any"""
    if credentials is None:
        return None
    session = db.query(UserSession).filter(UserSession.token == credentials.credentials).first()
    if not session or session.expires_at < datetime.utcnow():
        return None
    return session.user


# -------- Rate limiting --------

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    # Check limit
    if len(rate_limiter[client_ip]) >= limit:
        return False

    # Add current request
    rate_limiter[client_ip].append(current_time)
    return True


def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Check for real IP header
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fall back to direct client IP
    return request.client.host if request.client else "unknown"
