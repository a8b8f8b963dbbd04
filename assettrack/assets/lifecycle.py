"""
Asset lifecycle transitions.

Each function mutates the asset, appends exactly one history entry and
leaves committing to the caller. Rule violations raise LifecycleError.
"""
from __future__ import annotations

import random
import time
from typing import Optional

from assettrack.audit import record_history
from assettrack.models import Asset, User
from assettrack.status import AssetState, derive_state, is_assigned


class LifecycleError(ValueError):
    pass


UNAVAILABLE_STATES = {
    AssetState.FAULTY,
    AssetState.UNDER_REPAIR,
    AssetState.DISPOSED,
    AssetState.SCRAPPED,
}

RETURN_CONDITIONS = {"new": "New", "used": "Used", "faulty": "Faulty"}

# condition text written alongside a returned status
CONDITION_FOR_STATUS = {
    "New": "New / Excellent",
    "Used": "Good / Fair",
    "Faulty": "Faulty / Defective",
}

STOCK_STATUSES = ("New", "Used")


def generate_unique_id(name: Optional[str]) -> str:
    """
    CAM1234-style id: a three letter prefix from the asset name and four
    random digits, retried until unused.
    """
    upper = (name or "").strip().upper()
    if "CAMERA" in upper:
        prefix = "CAM"
    elif "READER" in upper:
        prefix = "REA"
    elif "CONTROLLER" in upper:
        prefix = "CON"
    elif len(upper) >= 3:
        prefix = upper[:3]
    elif upper:
        prefix = upper.ljust(3, "X")
    else:
        prefix = "AST"

    for _ in range(10):
        candidate = f"{prefix}{random.randint(1000, 9999)}"
        if not Asset.query.filter_by(unique_id=candidate).first():
            return candidate
    return f"{prefix}{int(time.time() * 1000) % 10000:04d}"


def normalize_return_condition(value) -> str:
    condition = RETURN_CONDITIONS.get(str(value or "").strip().lower())
    if not condition:
        raise LifecycleError("Invalid return condition")
    return condition


def _ensure_available(asset: Asset, verb: str):
    state = derive_state(asset)
    if state in UNAVAILABLE_STATES:
        raise LifecycleError(f"Cannot {verb} an asset that is {state.value}")


def _remember_status(asset: Asset):
    if asset.status != "In Use":
        asset.previous_status = asset.status


def _assignee_label(asset: Asset) -> str:
    if asset.assigned_to is not None:
        return asset.assigned_to.name
    if asset.assigned_to_external_name:
        return f"{asset.assigned_to_external_name} (External)"
    return "Unknown"


# ----------------------------
# Admin transitions
# ----------------------------

def assign_to_user(asset: Asset, technician: User, ticket_number: Optional[str] = None):
    _ensure_available(asset, "assign")
    _remember_status(asset)

    asset.clear_assignment()
    asset.assigned_to = technician
    asset.assigned_to_id = technician.id
    asset.status = "In Use"

    return record_history(
        asset,
        "Assigned (Admin)",
        details=f"Assigned to {technician.name}",
        ticket_number=ticket_number or "N/A",
    )


def assign_external(
    asset: Asset,
    name: str,
    phone: Optional[str] = None,
    note: Optional[str] = None,
    ticket_number: Optional[str] = None,
):
    name = (name or "").strip()
    if not name:
        raise LifecycleError("Recipient name is required")
    _ensure_available(asset, "assign")
    _remember_status(asset)

    asset.clear_assignment()
    asset.assigned_to_external_name = name
    asset.assigned_to_external_phone = phone or None
    asset.assigned_to_external_note = note or None
    asset.status = "In Use"

    info = f"Name: {name}"
    if phone:
        info += f", Phone: {phone}"
    if note:
        info += f", Note: {note}"
    return record_history(
        asset, f"Assigned (External) - {info}", ticket_number=ticket_number or "N/A"
    )


def unassign(asset: Asset):
    if not is_assigned(asset):
        raise LifecycleError("Asset is not currently assigned")

    previous = _assignee_label(asset)
    asset.clear_assignment()
    if asset.status == "In Use":
        asset.status = "Used"
    asset.previous_status = None

    return record_history(asset, "Unassigned (Admin)", details=f"Unassigned from {previous}")


def release_holder(asset: Asset, reason: str):
    """Put an asset back in stock because its holder is going away."""
    asset.clear_assignment()
    asset.clear_return_request()
    if asset.status == "In Use":
        asset.status = "Used"
    asset.previous_status = None
    return record_history(asset, "Unassigned (System)", details=reason)


def dispose(asset: Asset, reason: Optional[str] = None, ticket_number: Optional[str] = None):
    if derive_state(asset) == AssetState.DISPOSED:
        raise LifecycleError("Asset is already disposed")

    _remember_status(asset)
    asset.clear_assignment()
    asset.clear_return_request()
    asset.status = "Disposed"
    asset.condition = "Disposed"

    return record_history(asset, "Disposed", details=reason or None, ticket_number=ticket_number)


# ----------------------------
# Technician transitions
# ----------------------------

def collect(
    asset: Asset,
    technician: User,
    ticket_number: Optional[str] = None,
    installation_location: Optional[str] = None,
):
    if is_assigned(asset):
        raise LifecycleError("Asset is already assigned")
    _ensure_available(asset, "collect")

    previous = asset.status
    asset.previous_status = previous
    asset.assigned_to = technician
    asset.assigned_to_id = technician.id
    asset.status = "In Use"

    action = "Collected/New" if previous == "New" else "Collected/Used"
    details = f"Location: {installation_location}" if installation_location else None
    return record_history(asset, action, details=details, ticket_number=ticket_number)


def report_faulty(asset: Asset, ticket_number: Optional[str] = None, details: Optional[str] = None):
    if derive_state(asset) in (AssetState.DISPOSED, AssetState.SCRAPPED):
        raise LifecycleError("Disposed assets cannot be reported faulty")

    _remember_status(asset)
    asset.status = "Faulty"
    asset.condition = CONDITION_FOR_STATUS["Faulty"]
    return record_history(asset, "Reported Faulty", details=details, ticket_number=ticket_number)


def return_asset(
    asset: Asset,
    condition: str,
    ticket_number: Optional[str] = None,
    details: Optional[str] = None,
):
    """Take the asset back into stock with the returned condition."""
    condition = normalize_return_condition(condition)

    asset.clear_assignment()
    asset.clear_return_request()
    asset.status = condition
    asset.condition = CONDITION_FOR_STATUS[condition]
    asset.previous_status = None

    return record_history(
        asset, f"Returned/{condition}", details=details, ticket_number=ticket_number
    )


def request_return(
    asset: Asset,
    requester: User,
    condition: str,
    ticket_number: Optional[str] = None,
    notes: Optional[str] = None,
):
    condition = normalize_return_condition(condition)
    if asset.return_pending:
        raise LifecycleError("A return is already pending for this asset")

    asset.return_pending = True
    asset.return_condition = condition
    asset.return_requested_by = requester
    asset.return_requested_by_id = requester.id
    asset.return_ticket_number = ticket_number or None
    asset.return_notes = notes or None

    return record_history(
        asset, f"Return Requested/{condition}", details=notes or None, ticket_number=ticket_number
    )


def approve_return(asset: Asset):
    if not asset.return_pending or not asset.return_condition:
        raise LifecycleError("No pending return for this asset")

    requester = asset.return_requested_by.name if asset.return_requested_by else "Unknown"
    return return_asset(
        asset,
        asset.return_condition,
        ticket_number=asset.return_ticket_number,
        details=f"Approved return requested by {requester}",
    )


def reject_return(asset: Asset, reason: Optional[str] = None):
    if not asset.return_pending or not asset.return_condition:
        raise LifecycleError("No pending return for this asset")

    action = f"Return Rejected/{asset.return_condition}"
    if reason:
        action += f" - {reason}"
    ticket_number = asset.return_ticket_number
    asset.clear_return_request()
    return record_history(asset, action, ticket_number=ticket_number)
