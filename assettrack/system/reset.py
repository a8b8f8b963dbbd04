"""
Data reset: wipes transactional records for all stores or for one store and
its child locations. Users (unless asked), stores and the product/category
catalogs survive.
"""
import threading
from typing import Optional

from sqlalchemy import or_

from assettrack.assets.lifecycle import release_holder
from assettrack.extensions import db
from assettrack.models import (
    ROLE_SUPER_ADMIN,
    ActivityLog,
    Asset,
    AssetHistory,
    Pass,
    Permit,
    PurchaseOrder,
    Request,
    Store,
    User,
    Vendor,
)


class ResetInProgress(RuntimeError):
    pass


_reset_lock = threading.Lock()

# wipe order; children before the rows they point at
WIPED_MODELS = (
    ("assets", Asset),
    ("requests", Request),
    ("purchaseOrders", PurchaseOrder),
    ("vendors", Vendor),
    ("passes", Pass),
    ("permits", Permit),
    ("activityLogs", ActivityLog),
)

# user references on rows that can outlive a deleted user
USER_REFERENCES = (
    (Request, Request.requester_id),
    (PurchaseOrder, PurchaseOrder.created_by_id),
    (Pass, Pass.created_by_id),
    (Permit, Permit.requested_by_id),
)


def _in_scope(query, column, store_ids):
    if store_ids is None:
        return query
    return query.filter(column.in_(store_ids))


def _delete_users(store_ids) -> int:
    query = User.query.filter(User.role != ROLE_SUPER_ADMIN)
    query = _in_scope(query, User.assigned_store_id, store_ids)
    user_ids = [uid for (uid,) in query.with_entities(User.id).all()]
    if not user_ids:
        return 0

    # surviving assets held by a removed user go back to stock
    held = Asset.query.filter(
        or_(Asset.assigned_to_id.in_(user_ids), Asset.return_requested_by_id.in_(user_ids))
    ).all()
    for asset in held:
        release_holder(asset, "Holder account removed by data reset")

    for model, column in USER_REFERENCES:
        model.query.filter(column.in_(user_ids)).update({column: None}, synchronize_session=False)

    return User.query.filter(User.id.in_(user_ids)).delete(synchronize_session=False)


def _wipe(store_ids) -> dict:
    deleted = {}

    asset_ids = _in_scope(Asset.query, Asset.store_id, store_ids).with_entities(Asset.id)
    deleted["history"] = AssetHistory.query.filter(
        AssetHistory.asset_id.in_(asset_ids.scalar_subquery())
    ).delete(synchronize_session=False)

    vendor_ids = _in_scope(Vendor.query, Vendor.store_id, store_ids).with_entities(Vendor.id)
    for model, column in ((Asset, Asset.vendor_id), (PurchaseOrder, PurchaseOrder.vendor_id)):
        model.query.filter(column.in_(vendor_ids.scalar_subquery())).update(
            {column: None}, synchronize_session=False
        )

    for key, model in WIPED_MODELS:
        deleted[key] = _in_scope(model.query, model.store_id, store_ids).delete(
            synchronize_session=False
        )
    return deleted


def reset_data(store_ids: Optional[list], include_users: bool = False) -> dict:
    """
    Wipe data for ``store_ids`` (None means every store). Raises
    ResetInProgress when another reset holds the lock. Commits.
    """
    if not _reset_lock.acquire(blocking=False):
        raise ResetInProgress("Another reset is in progress. Please wait and try again.")
    try:
        users_deleted = _delete_users(store_ids) if include_users else 0
        db.session.flush()
        deleted = _wipe(store_ids)

        if store_ids is not None:
            for store in Store.query.filter(Store.id.in_(store_ids)).all():
                store.deletion_requested = False
                store.deletion_requested_at = None
                store.deletion_requested_by = None

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    finally:
        _reset_lock.release()

    deleted["users"] = users_deleted
    return deleted


def is_reset_running() -> bool:
    return _reset_lock.locked()
