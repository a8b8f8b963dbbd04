from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import event
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .status import derive_state, resolve_status


ROLE_SUPER_ADMIN = "Super Admin"
ROLE_ADMIN = "Admin"
ROLE_TECHNICIAN = "Technician"
ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_TECHNICIAN)

ASSET_STATUSES = ("New", "Used", "Faulty", "Disposed", "Under Repair", "In Use", "Testing")
ASSET_CONDITIONS = (
    "New / Excellent",
    "Good / Fair",
    "Used / Substandard",
    "Repaired / Reconditioned",
    "Faulty / Defective",
    "Poor / Near Failure",
    "Failed / Unserviceable",
    "Disposed",
)
ASSET_SOURCES = ("Vendor", "Contractor", "Technician", "Initial Setup", "Other")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(
        db.DateTime,
        default=utcnow,
        server_default=db.func.now(),
        nullable=False
    )
    updated_at = db.Column(
        db.DateTime,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
        nullable=False
    )


# ----------------------------
# Tenancy / users
# ----------------------------

class Store(TimestampMixin, db.Model):
    __tablename__ = "stores"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    opening_time = db.Column(db.String(5), nullable=False, default="09:00")  # HH:MM, 24h
    closing_time = db.Column(db.String(5), nullable=False, default="17:00")
    is_main_store = db.Column(db.Boolean, nullable=False, default=False, index=True)

    parent_store_id = db.Column(
        db.Integer,
        db.ForeignKey("stores.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    parent_store = db.relationship(
        "Store", remote_side=[id], back_populates="child_stores"
    )
    child_stores = db.relationship("Store", back_populates="parent_store")

    deletion_requested = db.Column(db.Boolean, nullable=False, default=False)
    deletion_requested_at = db.Column(db.DateTime, nullable=True)
    deletion_requested_by = db.Column(db.String(150), nullable=True)  # requester display name

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "openingTime": self.opening_time,
            "closingTime": self.closing_time,
            "isMainStore": self.is_main_store,
            "parentStore": self.parent_store_id,
            "deletionRequested": self.deletion_requested,
            "deletionRequestedAt": _iso(self.deletion_requested_at),
            "deletionRequestedBy": self.deletion_requested_by,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Store {self.name}>"


class User(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    username = db.Column(db.String(80), nullable=True, unique=True)
    email = db.Column(db.String(150), nullable=False, unique=True)
    phone = db.Column(db.String(50), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_TECHNICIAN)

    assigned_store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )
    assigned_store = db.relationship("Store", foreign_keys=[assigned_store_id])

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(password) and check_password_hash(self.password_hash, password)

    @property
    def is_super_admin(self):
        return self.role == ROLE_SUPER_ADMIN

    @property
    def is_admin(self):
        return self.role in (ROLE_SUPER_ADMIN, ROLE_ADMIN)

    def to_brief(self):
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_dict(self):
        store = self.assigned_store
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "assignedStore": {"id": store.id, "name": store.name} if store else None,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


# ----------------------------
# Assets
# ----------------------------

class Asset(TimestampMixin, db.Model):
    __tablename__ = "assets"
    __table_args__ = (
        db.Index("ix_assets_store_status", "store_id", "status"),
        db.Index("ix_assets_store_serial", "store_id", "serial_number"),
        db.Index("ix_assets_store_model", "store_id", "model_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    unique_id = db.Column(db.String(20), nullable=True, unique=True)

    name = db.Column(db.String(200), nullable=False, index=True)
    model_number = db.Column(db.String(150), nullable=True, index=True)
    serial_number = db.Column(db.String(150), nullable=True, index=True)
    serial_last_4 = db.Column(db.String(4), nullable=True, index=True)
    mac_address = db.Column(db.String(100), nullable=False, default="")
    ticket_number = db.Column(db.String(100), nullable=False, default="")
    rfid = db.Column(db.String(100), nullable=False, default="")
    qr_code = db.Column(db.String(200), nullable=False, default="")
    manufacturer = db.Column(db.String(150), nullable=False, default="")

    # legacy free-text catalog fields
    category = db.Column(db.String(150), nullable=False, default="Other", index=True)
    product_type = db.Column(db.String(150), nullable=True, index=True)
    product_name = db.Column(db.String(200), nullable=True, index=True)

    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )
    store = db.relationship("Store")
    location = db.Column(db.String(200), nullable=False, default="")

    vendor_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True
    )
    vendor = db.relationship("Vendor")
    source = db.Column(db.String(30), nullable=False, default="Initial Setup")

    status = db.Column(db.String(50), nullable=False, default="New", index=True)
    previous_status = db.Column(db.String(50), nullable=True)
    condition = db.Column(db.String(100), nullable=False, default="New / Excellent")
    state = db.Column(db.String(20), nullable=True, index=True)  # see status.AssetState

    assigned_to_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])
    assigned_to_external_name = db.Column(db.String(150), nullable=True)
    assigned_to_external_phone = db.Column(db.String(50), nullable=True)
    assigned_to_external_note = db.Column(db.Text, nullable=True)

    # pending return request
    return_pending = db.Column(db.Boolean, nullable=False, default=False, index=True)
    return_condition = db.Column(db.String(30), nullable=True)
    return_requested_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    return_requested_by = db.relationship("User", foreign_keys=[return_requested_by_id])
    return_ticket_number = db.Column(db.String(100), nullable=True)
    return_notes = db.Column(db.Text, nullable=True)

    history = db.relationship(
        "AssetHistory",
        back_populates="asset",
        order_by="AssetHistory.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def assigned_to_external(self):
        if not self.assigned_to_external_name:
            return None
        return {
            "name": self.assigned_to_external_name,
            "phone": self.assigned_to_external_phone or "",
            "note": self.assigned_to_external_note or "",
        }

    def clear_assignment(self):
        self.assigned_to = None
        self.assigned_to_id = None
        self.assigned_to_external_name = None
        self.assigned_to_external_phone = None
        self.assigned_to_external_note = None

    def clear_return_request(self):
        self.return_pending = False
        self.return_condition = None
        self.return_requested_by = None
        self.return_requested_by_id = None
        self.return_ticket_number = None
        self.return_notes = None

    def to_dict(self, include_history=True):
        data = {
            "id": self.id,
            "uniqueId": self.unique_id,
            "name": self.name,
            "model_number": self.model_number,
            "serial_number": self.serial_number,
            "serial_last_4": self.serial_last_4,
            "mac_address": self.mac_address,
            "ticket_number": self.ticket_number,
            "rfid": self.rfid,
            "qr_code": self.qr_code,
            "manufacturer": self.manufacturer,
            "category": self.category,
            "product_type": self.product_type,
            "product_name": self.product_name,
            "store": {"id": self.store.id, "name": self.store.name} if self.store else None,
            "location": self.location,
            "vendor": {"id": self.vendor.id, "name": self.vendor.name} if self.vendor else None,
            "source": self.source,
            "status": self.status,
            "previous_status": self.previous_status,
            "condition": self.condition,
            "state": self.state,
            "statusLabel": resolve_status(self).to_dict(),
            "assigned_to": self.assigned_to.to_brief() if self.assigned_to else None,
            "assigned_to_external": self.assigned_to_external,
            "return_pending": self.return_pending,
            "return_request": None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if self.return_pending:
            data["return_request"] = {
                "condition": self.return_condition,
                "requested_by": (
                    self.return_requested_by.to_brief() if self.return_requested_by else None
                ),
                "ticket_number": self.return_ticket_number,
                "notes": self.return_notes,
            }
        if include_history:
            data["history"] = [h.to_dict() for h in self.history]
        return data

    def __repr__(self):
        return f"<Asset {self.name} ({self.status})>"


class AssetHistory(db.Model):
    __tablename__ = "asset_history"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(
        db.Integer, db.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset = db.relationship("Asset", back_populates="history")

    action = db.Column(db.String(255), nullable=False)
    ticket_number = db.Column(db.String(100), nullable=True)
    user = db.Column(db.String(150), nullable=True)  # display name at the time
    details = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            "action": self.action,
            "ticket_number": self.ticket_number,
            "user": self.user,
            "details": self.details,
            "date": _iso(self.date),
        }

    def __repr__(self):
        return f"<AssetHistory {self.action} for Asset {self.asset_id} at {self.date}>"


def _sync_derived_fields(_mapper, _connection, target):
    serial = (target.serial_number or "").strip()
    target.serial_last_4 = serial[-4:] if serial else None
    state = derive_state(target)
    target.state = state.value if state else None


event.listen(Asset, "before_insert", _sync_derived_fields)
event.listen(Asset, "before_update", _sync_derived_fields)


# ----------------------------
# Catalog trees
# ----------------------------

class AssetCategory(TimestampMixin, db.Model):
    __tablename__ = "asset_categories"
    __table_args__ = (
        db.UniqueConstraint("name", "store_id", name="uq_asset_category_name_store"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    image = db.Column(db.String(300), nullable=False, default="")
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    types = db.relationship(
        "AssetType",
        back_populates="category",
        order_by="AssetType.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "store": self.store_id,
            "types": [t.to_dict() for t in self.types],
        }

    def __repr__(self):
        return f"<AssetCategory {self.name}>"


class AssetType(db.Model):
    __tablename__ = "asset_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    category_id = db.Column(
        db.Integer, db.ForeignKey("asset_categories.id", ondelete="CASCADE"), nullable=False
    )
    category = db.relationship("AssetCategory", back_populates="types")

    # root products only; nested products hang off CatalogProduct.children
    products = db.relationship(
        "CatalogProduct",
        back_populates="asset_type",
        order_by="CatalogProduct.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {"id": self.id, "name": self.name, "products": [p.to_dict() for p in self.products]}


class CatalogProduct(db.Model):
    __tablename__ = "catalog_products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    model_number = db.Column(db.String(150), nullable=False, default="")
    image = db.Column(db.String(300), nullable=False, default="")

    type_id = db.Column(
        db.Integer, db.ForeignKey("asset_types.id", ondelete="CASCADE"), nullable=True
    )
    asset_type = db.relationship("AssetType", back_populates="products")

    parent_id = db.Column(
        db.Integer, db.ForeignKey("catalog_products.id", ondelete="CASCADE"), nullable=True
    )
    parent = db.relationship("CatalogProduct", remote_side=[id], back_populates="children")
    children = db.relationship(
        "CatalogProduct",
        back_populates="parent",
        order_by="CatalogProduct.id",
        cascade="all, delete-orphan",
    )

    def root_type(self):
        node = self
        while node.parent is not None:
            node = node.parent
        return node.asset_type

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "model_number": self.model_number,
            "image": self.image,
            "children": [c.to_dict() for c in self.children],
        }


class Product(TimestampMixin, db.Model):
    __tablename__ = "products"

    MAX_DEPTH = 4

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    image = db.Column(db.String(300), nullable=False, default="")
    model_number = db.Column(db.String(150), nullable=False, default="")

    # only root products carry a store
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )
    parent_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True
    )
    parent = db.relationship("Product", remote_side=[id], back_populates="children")
    children = db.relationship(
        "Product",
        back_populates="parent",
        order_by="Product.id",
        cascade="all, delete-orphan",
    )

    @property
    def depth(self):
        level, node = 1, self
        while node.parent is not None:
            level += 1
            node = node.parent
        return level

    def root(self):
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "model_number": self.model_number,
            "store": self.store_id,
            "children": [c.to_dict() for c in self.children],
        }


# ----------------------------
# Store-scoped records
# ----------------------------

class Vendor(TimestampMixin, db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    contact_person = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(150), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(100), nullable=True)
    payment_terms = db.Column(db.String(100), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="Active")
    notes = db.Column(db.Text, nullable=True)
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "contactPerson": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "taxId": self.tax_id,
            "paymentTerms": self.payment_terms,
            "status": self.status,
            "notes": self.notes,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Vendor {self.name}>"


class PurchaseOrder(TimestampMixin, db.Model):
    __tablename__ = "purchase_orders"

    STATUSES = ("Draft", "Pending", "Approved", "Ordered", "Received", "Cancelled")

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(50), nullable=False, unique=True)
    vendor_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True
    )
    vendor = db.relationship("Vendor")
    order_date = db.Column(db.Date, nullable=True)
    expected_delivery = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="Draft", index=True)
    items = db.Column(db.JSON, nullable=False, default=list)  # [{description, quantity, unit_price}]
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    attachments = db.Column(db.JSON, nullable=False, default=list)
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by = db.relationship("User")
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "poNumber": self.po_number,
            "vendor": {"id": self.vendor.id, "name": self.vendor.name} if self.vendor else None,
            "orderDate": _iso(self.order_date),
            "expectedDelivery": _iso(self.expected_delivery),
            "status": self.status,
            "items": self.items or [],
            "totalAmount": float(self.total_amount or 0),
            "notes": self.notes,
            "attachments": self.attachments or [],
            "createdBy": self.created_by.to_brief() if self.created_by else None,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }


class Request(TimestampMixin, db.Model):
    """Stock request raised by a technician."""

    __tablename__ = "stock_requests"
    __table_args__ = (db.Index("ix_stock_requests_store_status", "store_id", "status"),)

    STATUSES = ("Pending", "Approved", "Ordered", "Rejected")

    id = db.Column(db.Integer, primary_key=True)
    item_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default="Pending")
    requester_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    requester = db.relationship("User")
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )
    store = db.relationship("Store")

    def to_dict(self):
        return {
            "id": self.id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "description": self.description,
            "status": self.status,
            "requester": self.requester.to_brief() if self.requester else None,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }


class Pass(TimestampMixin, db.Model):
    """Gate pass for equipment leaving or entering a store."""

    __tablename__ = "passes"

    TYPES = ("Inbound", "Outbound", "Returnable")
    STATUSES = ("Pending", "Approved", "Rejected", "Closed")

    id = db.Column(db.Integer, primary_key=True)
    pass_number = db.Column(db.String(50), nullable=False, unique=True)
    pass_type = db.Column(db.String(20), nullable=False, default="Outbound")
    issued_to = db.Column(db.String(150), nullable=False)
    company = db.Column(db.String(150), nullable=True)
    purpose = db.Column(db.Text, nullable=True)
    items = db.Column(db.JSON, nullable=False, default=list)  # [{name, serial_number, quantity}]
    status = db.Column(db.String(20), nullable=False, default="Pending")
    valid_until = db.Column(db.Date, nullable=True)
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by = db.relationship("User")
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "passNumber": self.pass_number,
            "type": self.pass_type,
            "issuedTo": self.issued_to,
            "company": self.company,
            "purpose": self.purpose,
            "items": self.items or [],
            "status": self.status,
            "validUntil": _iso(self.valid_until),
            "createdBy": self.created_by.to_brief() if self.created_by else None,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }


class Permit(TimestampMixin, db.Model):
    """Work permit for contractor activity at a store."""

    __tablename__ = "permits"

    STATUSES = ("Pending", "Approved", "Rejected", "Closed")

    id = db.Column(db.Integer, primary_key=True)
    permit_number = db.Column(db.String(50), nullable=False, unique=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(200), nullable=True)
    contractor = db.Column(db.String(150), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="Pending")
    requested_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    requested_by = db.relationship("User")
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "permitNumber": self.permit_number,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "contractor": self.contractor,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "status": self.status,
            "requestedBy": self.requested_by.to_brief() if self.requested_by else None,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }


class ActivityLog(TimestampMixin, db.Model):
    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(150), nullable=True)
    role = db.Column(db.String(20), nullable=True)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.Text, nullable=True)
    store_id = db.Column(
        db.Integer, db.ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user,
            "email": self.email,
            "role": self.role,
            "action": self.action,
            "details": self.details,
            "store": self.store_id,
            "createdAt": _iso(self.created_at),
        }
