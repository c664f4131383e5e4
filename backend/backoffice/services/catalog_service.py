# Overview: Service-layer operations for the catalog (items, serials, services).

"""
Catalog Store

Holds generic and serialized items plus billable services, all scoped to an
owner. Exposes the stock mutation primitives the billing engine relies on:

- decrement_stock: "decrement iff the resulting quantity stays >= 0",
  a single conditional UPDATE
- mark_serial_sold: "set sold iff currently available", a single
  conditional UPDATE

Neither primitive commits; they run inside the caller's unit of work.
"""

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, InsufficientStockError, InvalidInputError, NotFoundError
from ..models import Item, ItemSerial, StockReceipt, Service
from ..models.catalog import ITEM_GENERIC, ITEM_SERIALIZED, SERIAL_AVAILABLE, SERIAL_SOLD
from ..validation import coerce_int
from .concurrency import run_with_retry, unit_of_work
from .tenant_service import get_owned, owned_query, require_owned


# =============================================================================
# ITEMS
# =============================================================================

def create_item(owner_id: int, patch: dict) -> Item:
    """Create an item with empty stock (zero quantity / no serials)."""
    item = Item(
        owner_id=owner_id,
        item_type=patch["item_type"],
        name=patch["name"],
        unit=patch["unit"],
        warranty=patch.get("warranty") or "no_warranty",
        mrp_cents=patch["mrp_cents"],
        purchase_price_cents=patch["purchase_price_cents"],
        sale_price_cents=patch["sale_price_cents"],
        stock_qty=0,
    )
    with unit_of_work():
        db.session.add(item)
    return item


def list_items(owner_id: int) -> list[Item]:
    return owned_query(Item, owner_id).order_by(Item.created_at.desc(), Item.id.desc()).all()


def get_item(owner_id: int, item_id: int) -> Item:
    return require_owned(Item, owner_id, item_id, "Item")


def update_item(owner_id: int, item_id: int, patch: dict) -> Item:
    """Update descriptive and price fields. item_type and stock are not editable here."""
    item = get_item(owner_id, item_id)
    with unit_of_work():
        for key, value in patch.items():
            setattr(item, key, value)
    return item


def delete_item(owner_id: int, item_id: int) -> None:
    item = get_item(owner_id, item_id)
    with unit_of_work():
        item.is_deleted = True


def add_stock(
    owner_id: int,
    item_id: int,
    qty=None,
    serial_numbers: list | None = None,
) -> Item:
    """
    Add stock to an item.

    Generic items take a positive quantity and get a stock history entry.
    Serialized items take a batch of serial numbers; blanks are dropped,
    duplicates inside the batch are rejected, and serials already present
    anywhere in the system (any owner) are rejected as conflicts.
    """
    item = get_item(owner_id, item_id)

    if item.item_type == ITEM_GENERIC:
        if qty is None:
            raise InvalidInputError("qty is required for generic items")
        qty = coerce_int(qty, "qty")
        if qty <= 0:
            raise InvalidInputError("qty must be > 0")

        def _op():
            db.session.execute(
                update(Item)
                .where(Item.id == item.id)
                .values(stock_qty=Item.stock_qty + qty),
                execution_options={"synchronize_session": False},
            )
            db.session.add(StockReceipt(item_id=item.id, qty=qty))
            db.session.commit()
            db.session.refresh(item)
            return item

        return run_with_retry(_op)

    serials = [str(s).strip() for s in (serial_numbers or [])]
    serials = [s for s in serials if s]
    if not serials:
        raise InvalidInputError("Please provide at least one valid serial number")

    seen: set[str] = set()
    duplicates_in_input: list[str] = []
    for serial in serials:
        if serial in seen and serial not in duplicates_in_input:
            duplicates_in_input.append(serial)
        seen.add(serial)
    if duplicates_in_input:
        raise InvalidInputError(
            f"Duplicate serial numbers in your input: {', '.join(duplicates_in_input)}",
            details={"duplicates": duplicates_in_input},
        )

    existing = _existing_serials(serials)
    if existing:
        listing = ", ".join(f"{e['serial_no']} (in {e['item_name']})" for e in existing)
        raise ConflictError(f"Serial numbers already exist: {listing}", details={"duplicates": existing})

    try:
        with unit_of_work():
            for serial in serials:
                db.session.add(ItemSerial(item_id=item.id, serial_no=serial, status=SERIAL_AVAILABLE))
    except IntegrityError:
        # A concurrent writer registered one of these serials after our check
        raise ConflictError("Serial numbers already exist", details={"serial_numbers": serials})

    db.session.refresh(item)
    return item


def _existing_serials(serials: list[str]) -> list[dict]:
    rows = (
        db.session.query(ItemSerial.serial_no, Item.name)
        .join(Item, Item.id == ItemSerial.item_id)
        .filter(ItemSerial.serial_no.in_(serials))
        .all()
    )
    return [{"serial_no": serial_no, "item_name": name} for serial_no, name in rows]


def check_serial(serial_no: str) -> dict:
    """Report whether a serial number exists anywhere in the system."""
    serial_no = (serial_no or "").strip()
    if not serial_no:
        raise InvalidInputError("Serial number is required")

    row = (
        db.session.query(ItemSerial, Item)
        .join(Item, Item.id == ItemSerial.item_id)
        .filter(ItemSerial.serial_no == serial_no)
        .first()
    )
    if row is None:
        return {"exists": False, "message": "Serial number is available"}

    _, item = row
    return {
        "exists": True,
        "message": "Serial number already exists in stock",
        "item_name": item.name,
        "item_id": item.id,
    }


# =============================================================================
# BILLING PRIMITIVES (no commit)
# =============================================================================

def find_item(owner_id: int, item_id, item_type: str | None = None) -> Item | None:
    item = get_owned(Item, owner_id, item_id)
    if item is None:
        return None
    if item_type is not None and item.item_type != item_type:
        return None
    return item


def decrement_stock(owner_id: int, item_id: int, qty: int) -> None:
    """
    Conditionally decrement a generic item's stock.

    Raises InsufficientStockError (with the current available quantity) when
    the item does not hold at least `qty`.
    """
    result = db.session.execute(
        update(Item)
        .where(
            Item.id == item_id,
            Item.owner_id == owner_id,
            Item.item_type == ITEM_GENERIC,
            Item.is_deleted.is_(False),
            Item.stock_qty >= qty,
        )
        .values(stock_qty=Item.stock_qty - qty),
        execution_options={"synchronize_session": False},
    )
    if result.rowcount:
        return

    row = db.session.query(Item.name, Item.stock_qty).filter(Item.id == item_id).first()
    if row is None:
        raise NotFoundError(f"Item not found: {item_id}", details={"item_id": item_id})
    name, available = row
    raise InsufficientStockError(
        f"Insufficient stock for {name}. Available: {available}",
        available=available,
        requested=qty,
        details={"item_id": item_id},
    )


def mark_serial_sold(item_id: int, serial_no: str) -> None:
    """Flip a serial from available to sold; ConflictError if it is not available."""
    result = db.session.execute(
        update(ItemSerial)
        .where(
            ItemSerial.item_id == item_id,
            ItemSerial.serial_no == serial_no,
            ItemSerial.status == SERIAL_AVAILABLE,
        )
        .values(status=SERIAL_SOLD),
        execution_options={"synchronize_session": False},
    )
    if not result.rowcount:
        raise ConflictError(
            f"Serial number {serial_no} is not available",
            details={"item_id": item_id, "serial_no": serial_no},
        )


def annotate_serial_sale(item_id: int, serial_no: str, *, customer_name: str, bill_number: str) -> None:
    db.session.execute(
        update(ItemSerial)
        .where(ItemSerial.item_id == item_id, ItemSerial.serial_no == serial_no)
        .values(customer_name=customer_name, bill_number=bill_number),
        execution_options={"synchronize_session": False},
    )


def total_stock(owner_id: int) -> int:
    """Sum of generic quantities plus count of available serials for the owner."""
    generic = (
        db.session.query(func.coalesce(func.sum(Item.stock_qty), 0))
        .filter(
            Item.owner_id == owner_id,
            Item.item_type == ITEM_GENERIC,
            Item.is_deleted.is_(False),
        )
        .scalar()
    )
    serialized = (
        db.session.query(func.count(ItemSerial.id))
        .join(Item, Item.id == ItemSerial.item_id)
        .filter(
            Item.owner_id == owner_id,
            Item.item_type == ITEM_SERIALIZED,
            Item.is_deleted.is_(False),
            ItemSerial.status == SERIAL_AVAILABLE,
        )
        .scalar()
    )
    return int(generic or 0) + int(serialized or 0)


# =============================================================================
# SERVICES
# =============================================================================

def create_service(owner_id: int, patch: dict) -> Service:
    service = Service(owner_id=owner_id, name=patch["name"], price_cents=patch["price_cents"])
    with unit_of_work():
        db.session.add(service)
    return service


def list_services(owner_id: int) -> list[Service]:
    return owned_query(Service, owner_id).order_by(Service.created_at.desc(), Service.id.desc()).all()


def find_service(owner_id: int, service_id) -> Service | None:
    return get_owned(Service, owner_id, service_id)


def update_service(owner_id: int, service_id: int, patch: dict) -> Service:
    service = require_owned(Service, owner_id, service_id, "Service")
    with unit_of_work():
        for key, value in patch.items():
            setattr(service, key, value)
    return service


def delete_service(owner_id: int, service_id: int) -> None:
    service = require_owned(Service, owner_id, service_id, "Service")
    with unit_of_work():
        service.is_deleted = True
