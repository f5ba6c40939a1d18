"""
Server action plumbing: input validation, access context and error translation
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from app.models import User
from app.schemas.common import ActionResponse
from app.utils.errors import (
    ActionError,
    DatabaseError,
    DB_UNAVAILABLE_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    ValidationFailed,
    is_database_error,
)

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """Everything an action needs besides its validated input"""
    db: Session
    user: Optional[User] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


def create_safe_action(schema: Type[BaseModel]):
    """Wrap an action so its input is validated first and DB failures are rewritten.

    Validation errors surface as ``ValidationFailed`` before any handler logic
    runs. Errors that look like database connectivity problems are re-raised
    as ``DatabaseError`` carrying the user-safe message; anything else
    propagates unchanged.
    """
    def decorator(handler: Callable[[ActionContext, Any], Any]):
        @functools.wraps(handler)
        def action(ctx: ActionContext, **payload):
            try:
                data = schema(**payload)
            except ValidationError as e:
                raise ValidationFailed("Invalid input", details=e.errors(include_url=False, include_context=False)) from e

            try:
                return handler(ctx, data)
            except ActionError:
                raise
            except Exception as e:
                if is_database_error(e):
                    logger.error(f"Database error in {handler.__name__}: {e}")
                    ctx.db.rollback()
                    raise DatabaseError(DB_UNAVAILABLE_MESSAGE, original_error=e) from e
                raise

        action.schema = schema
        return action
    return decorator


def safe_action(action: Callable, *args, **kwargs) -> ActionResponse:
    """Run an action and fold any failure into an ActionResponse"""
    try:
        data = action(*args, **kwargs)
        return ActionResponse(data=data, error=None, status="success")
    except Exception as e:
        logger.error(f"Action error: {e}")
        if is_database_error(e):
            return ActionResponse(data=None, error=DB_UNAVAILABLE_MESSAGE, status="error")
        return ActionResponse(data=None, error=str(e) or GENERIC_ERROR_MESSAGE, status="error")


def commit_and_revalidate(ctx: ActionContext, slug: str) -> None:
    """Persist the unit of work and drop the cached plan for ``slug``"""
    from app.services.plan_cache import plan_cache

    ctx.db.commit()
    plan_cache.revalidate(slug)
