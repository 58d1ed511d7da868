from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_utc_z, to_iso_date


MOVEMENT_TYPES = ("IN", "OUT", "ADJUSTMENT", "EXPIRED", "DAMAGED", "TRANSFER")
ALERT_TYPES = ("LOW_STOCK", "OUT_OF_STOCK", "EXPIRING", "EXPIRED", "OVERSTOCK", "PRICE_CHANGE")
ALERT_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


class Product(db.Model):
    """
    Product master data.

    Product.stock is the on-hand quantity. It is only changed through
    StockMovement rows (see services/inventory_service.py), so the movement
    ledger always explains the current number.

    BARCODE: intended-unique business key used by the POS scanner lookup.
    Uniqueness is enforced both by the service layer (ConflictError) and by
    a unique constraint.

    LOCATION: warehouse position is stored flat (zone/aisle/shelf/position)
    and serialized as a nested object.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_supplier", "supplier"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    # Amounts in the store currency's smallest unit
    price = db.Column(db.Integer, nullable=False, default=0)
    cost_price = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)
    max_stock = db.Column(db.Integer, nullable=True)

    category = db.Column(db.String(128), nullable=False, default="")
    subcategory = db.Column(db.String(128), nullable=True)
    supplier = db.Column(db.String(255), nullable=False, default="")
    supplier_code = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(128), nullable=True)
    tags = db.Column(db.JSON, nullable=True)
    weight = db.Column(db.Float, nullable=True)

    expiry_date = db.Column(db.Date, nullable=True)
    manufacture_date = db.Column(db.Date, nullable=True)

    location_zone = db.Column(db.String(16), nullable=True)
    location_aisle = db.Column(db.String(16), nullable=True)
    location_shelf = db.Column(db.String(16), nullable=True)
    location_position = db.Column(db.String(16), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    last_restock_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_sold_date = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    movements = db.relationship(
        "StockMovement",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
    )
    alerts = db.relationship(
        "InventoryAlert",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} stock={self.stock}>"

    @property
    def location(self) -> dict | None:
        parts = (self.location_zone, self.location_aisle, self.location_shelf, self.location_position)
        if all(p is None for p in parts):
            return None
        return {
            "zone": self.location_zone or "",
            "aisle": self.location_aisle or "",
            "shelf": self.location_shelf or "",
            "position": self.location_position or "",
        }

    @location.setter
    def location(self, value: dict | None) -> None:
        value = value or {}
        self.location_zone = value.get("zone")
        self.location_aisle = value.get("aisle")
        self.location_shelf = value.get("shelf")
        self.location_position = value.get("position")

    @property
    def location_code(self) -> str | None:
        loc = self.location
        if loc is None:
            return None
        return f"{loc['zone']}-{loc['aisle']}-{loc['shelf']}-{loc['position']}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "sku": self.sku,
            "description": self.description,
            "image_url": self.image_url,
            "price": self.price,
            "cost_price": self.cost_price,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "category": self.category,
            "subcategory": self.subcategory,
            "supplier": self.supplier,
            "supplier_code": self.supplier_code,
            "brand": self.brand,
            "tags": list(self.tags or []),
            "weight": self.weight,
            "expiry_date": to_iso_date(self.expiry_date),
            "manufacture_date": to_iso_date(self.manufacture_date),
            "location": self.location,
            "is_active": self.is_active,
            "last_restock_date": to_utc_z(self.last_restock_date),
            "last_sold_date": to_utc_z(self.last_sold_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger.

    quantity is signed for ADJUSTMENT/EXPIRED/DAMAGED and non-negative for
    IN/OUT (the type carries the direction). TRANSFER rows record a location
    change and never alter on-hand quantity.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_movements_product_timestamp", "product_id", "timestamp"),
        db.Index("ix_movements_product_type_timestamp", "product_id", "type", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    reference = db.Column(db.String(64), nullable=True, index=True)
    user_id = db.Column(db.String(64), nullable=True)
    cost = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Destination location for TRANSFER, shelf location otherwise
    location = db.Column(db.JSON, nullable=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "reference": self.reference,
            "user_id": self.user_id,
            "cost": self.cost,
            "notes": self.notes,
            "location": self.location,
            "timestamp": to_utc_z(self.timestamp),
        }


class InventoryAlert(db.Model):
    """
    Threshold notification for a product.

    At most one unread alert exists per (type, product_id); the check is
    done in services/alert_service.py before inserting.
    """
    __tablename__ = "inventory_alerts"
    __table_args__ = (
        db.Index("ix_alerts_type_product_read", "type", "product_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_name = db.Column(db.String(255), nullable=False)
    message = db.Column(db.String(512), nullable=False)
    priority = db.Column(db.String(16), nullable=False, index=True)
    action_required = db.Column(db.String(255), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "message": self.message,
            "priority": self.priority,
            "action_required": self.action_required,
            "is_read": self.is_read,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }


class BulkOperation(db.Model):
    """Progress record for a batched product update."""
    __tablename__ = "bulk_operations"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    processed_items = db.Column(db.Integer, nullable=False, default=0)
    failed_items = db.Column(db.Integer, nullable=False, default=0)
    errors = db.Column(db.JSON, nullable=True)

    # Work description, kept so a deferred run can pick it up
    product_ids = db.Column(db.JSON, nullable=False)
    updates = db.Column(db.JSON, nullable=False)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "total_items": self.total_items,
            "processed_items": self.processed_items,
            "failed_items": self.failed_items,
            "errors": list(self.errors or []),
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at),
        }
