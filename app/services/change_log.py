"""
Audit trail of every mutation, plus the admin listing/purge operations
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models import ChangeLog

logger = logging.getLogger(__name__)

# Capability secrets never end up in the audit trail
_REDACTED_COLUMNS = {"admin_key", "token"}


def row_to_dict(row) -> Optional[Dict[str, Any]]:
    """Column values of an ORM row as JSON-safe primitives"""
    if row is None:
        return None
    data = {}
    for column in row.__table__.columns:
        if column.key in _REDACTED_COLUMNS:
            continue
        value = getattr(row, column.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        data[column.key] = value
    return data


def log_change(
    db: Session,
    action: str,
    table_name: str,
    record_id: int,
    old_data=None,
    new_data=None,
    request_meta=None,
) -> None:
    """Add an audit row to the current transaction.

    ``old_data``/``new_data`` may be ORM rows or plain dicts. ``request_meta``
    is anything exposing ``client_ip``, ``user_agent``, ``referer`` and
    ``user`` (an ``ActionContext`` in practice).
    """
    if not isinstance(old_data, (dict, type(None))):
        old_data = row_to_dict(old_data)
    if not isinstance(new_data, (dict, type(None))):
        new_data = row_to_dict(new_data)

    user = getattr(request_meta, "user", None)
    db.add(ChangeLog(
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_data=old_data,
        new_data=new_data,
        user_ip=getattr(request_meta, "client_ip", None),
        user_agent=getattr(request_meta, "user_agent", None),
        referer=getattr(request_meta, "referer", None),
        user_id=user.id if user else None,
    ))


def list_change_logs(
    db: Session,
    table_name: Optional[str] = None,
    action: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 200,
) -> List[ChangeLog]:
    query = db.query(ChangeLog)
    if table_name:
        query = query.filter(ChangeLog.table_name == table_name)
    if action:
        query = query.filter(ChangeLog.action == action)
    if user_id:
        query = query.filter(ChangeLog.user_id == user_id)
    return query.order_by(ChangeLog.created_at.desc(), ChangeLog.id.desc()).limit(limit).all()


def purge_change_logs(db: Session, older_than_days: Optional[int] = None, delete_all: bool = False) -> int:
    """Delete audit rows; returns how many went"""
    query = db.query(ChangeLog)
    if not delete_all:
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)
        query = query.filter(ChangeLog.created_at < cutoff)
    deleted = query.delete(synchronize_session=False)
    db.commit()
    logger.info(f"Purged {deleted} change log entries")
    return deleted
