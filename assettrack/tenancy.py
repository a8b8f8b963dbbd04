"""
Store hierarchy and per-request tenant scope.

A store is either a main store or a child location of one main store. Reads
issued in the context of a store cover that store and its direct children.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import abort, current_app, g, request
from flask_login import current_user
from sqlalchemy import and_, false, func, or_

from .extensions import db
from .models import Store


ACTIVE_STORE_HEADER = "X-Active-Store"
IGNORED_STORE_VALUES = {"", "undefined", "null", "all"}


def _to_store_id(value) -> Optional[int]:
    try:
        store_id = int(value)
    except (TypeError, ValueError):
        return None
    return store_id if store_id > 0 else None


def get_store_ids(store_id) -> list:
    """
    Return [store_id, *child_store_ids]. Children are stores whose parent is
    store_id (one level). A falsy or malformed store_id yields [].
    """
    if not store_id:
        return []
    parsed = _to_store_id(store_id)
    if parsed is None:
        return []

    children = (
        Store.query
        .with_entities(Store.id)
        .filter(Store.parent_store_id == parsed)
        .order_by(Store.id)
        .all()
    )
    return [parsed] + [child_id for (child_id,) in children]


@dataclass(frozen=True)
class TenantScope:
    """
    store_ids is None for unrestricted access, a non-empty tuple for a
    restricted set and an empty tuple for deny-all.
    """

    store_ids: Optional[tuple] = None
    active_store_id: Optional[int] = None

    @classmethod
    def unrestricted(cls):
        return cls(None)

    @classmethod
    def deny_all(cls):
        return cls(())

    @classmethod
    def for_store(cls, store_id):
        ids = tuple(get_store_ids(store_id))
        return cls(ids, ids[0] if ids else None)

    @property
    def is_unrestricted(self) -> bool:
        return self.store_ids is None

    @property
    def is_denied(self) -> bool:
        return self.store_ids == ()

    def allows(self, store_id) -> bool:
        if self.store_ids is None:
            return True
        return store_id is not None and store_id in self.store_ids

    def narrow(self, store_filter) -> "TenantScope":
        """Intersect with an explicit ``?store=`` filter."""
        if store_filter is None or str(store_filter).strip().lower() in IGNORED_STORE_VALUES:
            return self
        requested = get_store_ids(_to_store_id(store_filter))
        if not requested:
            return TenantScope.deny_all()
        if self.store_ids is None:
            return TenantScope(tuple(requested), requested[0])
        allowed = tuple(sid for sid in requested if sid in self.store_ids)
        if not allowed:
            return TenantScope.deny_all()
        return TenantScope(allowed, allowed[0])

    def apply(self, query, column, location_column=None, include_global=False):
        """
        Filter ``query`` on ``column``. ``include_global`` also keeps rows with
        no store. ``location_column`` enables the legacy location-name match
        when ASSET_LOCATION_FALLBACK is on.
        """
        if self.store_ids is None:
            return query
        if not self.store_ids:
            return query.filter(false())

        condition = column.in_(self.store_ids)
        if include_global:
            condition = or_(condition, column.is_(None))
        if location_column is not None and current_app.config.get("ASSET_LOCATION_FALLBACK"):
            names = [
                name.lower()
                for (name,) in Store.query.with_entities(Store.name)
                .filter(Store.id.in_(self.store_ids))
                .all()
            ]
            if names:
                condition = or_(
                    condition,
                    and_(column.is_(None), func.lower(location_column).in_(names)),
                )
        return query.filter(condition)


def resolve_scope(user=None) -> TenantScope:
    user = user if user is not None else current_user
    if not getattr(user, "is_authenticated", False):
        return TenantScope.deny_all()

    if user.is_super_admin:
        raw = (request.headers.get(ACTIVE_STORE_HEADER) or "").strip()
        if raw.lower() in IGNORED_STORE_VALUES:
            return TenantScope.unrestricted()
        store_id = _to_store_id(raw)
        if store_id is None or db.session.get(Store, store_id) is None:
            current_app.logger.warning("Rejected active store header %r for %s", raw, user.email)
            return TenantScope.deny_all()
        return TenantScope.for_store(store_id)

    if not user.assigned_store_id:
        return TenantScope.deny_all()
    return TenantScope.for_store(user.assigned_store_id)


def current_scope() -> TenantScope:
    """Tenant scope of the current request, resolved once."""
    if "tenant_scope" not in g:
        g.tenant_scope = resolve_scope()
    return g.tenant_scope


def active_store_id() -> Optional[int]:
    """Store new records are bound to."""
    return current_scope().active_store_id


def get_scoped_or_404(model, record_id, description="Not found"):
    """Load a store-scoped record; rows outside the current scope are a 404."""
    record = db.session.get(model, record_id)
    if record is None:
        abort(404, description=description)
    if record.store_id is not None and not current_scope().allows(record.store_id):
        abort(404, description=description)
    return record
