"""
Asset status resolution.

An asset carries two overlapping descriptions of its physical state: the
``status`` enum and the free-text ``condition``. Every view (admin asset
list, technician asset list, statistics) reads them through
:func:`resolve_status`, and the canonical :class:`AssetState` persisted on
the row is computed by the same rules at write time.

Priority order, first match wins:

  1. condition contains "faulty" or status == "Faulty"        -> Faulty
  2. condition contains "repair" or status == "Under Repair"  -> Under Repair
  3. condition contains "disposed" or status == "Disposed"    -> Disposed
  4. condition contains "scrap" or status == "Scrapped"       -> Scrapped
  5. status == "Testing"                                      -> Testing
  6. assigned internally or externally                        -> In Use
  7. status == "New"                                          -> In Store (New)
  8. status == "Used"                                         -> In Store (Used)
  9. anything else                                            -> raw status
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import NamedTuple, Optional


class AssetState(str, enum.Enum):
    NEW = "New"
    USED = "Used"
    FAULTY = "Faulty"
    UNDER_REPAIR = "Under Repair"
    DISPOSED = "Disposed"
    SCRAPPED = "Scrapped"
    TESTING = "Testing"
    IN_USE = "In Use"


class StatusLabel(NamedTuple):
    label: str
    color_key: str
    state: Optional[AssetState] = None

    def to_dict(self):
        return {"label": self.label, "colorKey": self.color_key}


_LABELS = {
    AssetState.FAULTY: ("Faulty", "red"),
    AssetState.UNDER_REPAIR: ("Under Repair", "amber"),
    AssetState.DISPOSED: ("Disposed", "gray"),
    AssetState.SCRAPPED: ("Scrapped", "stone"),
    AssetState.TESTING: ("Testing", "purple"),
    AssetState.IN_USE: ("In Use", "blue"),
    AssetState.NEW: ("In Store (New)", "green"),
    AssetState.USED: ("In Store (Used)", "green"),
}

# (condition substring, status value, resulting state)
_CONDITION_RULES = (
    ("faulty", "Faulty", AssetState.FAULTY),
    ("repair", "Under Repair", AssetState.UNDER_REPAIR),
    ("disposed", "Disposed", AssetState.DISPOSED),
    ("scrap", "Scrapped", AssetState.SCRAPPED),
)

GENERIC_COLOR = "neutral"


def _get(asset, name):
    if isinstance(asset, Mapping):
        return asset.get(name)
    return getattr(asset, name, None)


def is_assigned(asset) -> bool:
    """True when the asset is held by a user or by an external recipient."""
    if _get(asset, "assigned_to_id") or _get(asset, "assigned_to"):
        return True
    external = _get(asset, "assigned_to_external")
    if isinstance(external, Mapping):
        external = external.get("name")
    if external is None:
        external = _get(asset, "assigned_to_external_name")
    return bool(external and str(external).strip())


def derive_state(asset) -> Optional[AssetState]:
    status = (_get(asset, "status") or "").strip()
    condition = (_get(asset, "condition") or "").lower()

    for needle, status_value, state in _CONDITION_RULES:
        if needle in condition or status == status_value:
            return state

    if status == "Testing":
        return AssetState.TESTING
    if is_assigned(asset):
        return AssetState.IN_USE
    if status == "New":
        return AssetState.NEW
    if status == "Used":
        return AssetState.USED
    return None


def resolve_status(asset) -> StatusLabel:
    """
    Resolve the display label for an asset record (model instance or dict).
    """
    state = derive_state(asset)
    if state is None:
        return StatusLabel(_get(asset, "status") or "Unknown", GENERIC_COLOR)
    label, color = _LABELS[state]
    return StatusLabel(label, color, state)
