from typing import Optional

from flask_login import current_user

from .extensions import db
from .models import Asset, AssetHistory, ActivityLog


def actor_name() -> str:
    if current_user and current_user.is_authenticated:
        return current_user.name
    return "System"


def record_history(
    asset: Asset,
    action: str,
    details: Optional[str] = None,
    ticket_number: Optional[str] = None,
    user: Optional[str] = None,
) -> AssetHistory:
    """
    Append one AssetHistory entry to the asset. Caller commits.
    """
    entry = AssetHistory(
        action=action[:255],
        details=details,
        ticket_number=ticket_number or None,
        user=user or actor_name(),
    )
    asset.history.append(entry)
    return entry


def log_activity(action: str, details: Optional[str] = None, store_id: Optional[int] = None):
    """
    Add an ActivityLog row for the current user. Caller commits.
    """
    authenticated = current_user and current_user.is_authenticated
    row = ActivityLog(
        user=current_user.name if authenticated else "System",
        email=current_user.email if authenticated else None,
        role=current_user.role if authenticated else None,
        action=action,
        details=details,
        store_id=store_id if store_id is not None else (
            current_user.assigned_store_id if authenticated else None
        ),
    )
    db.session.add(row)
    return row
