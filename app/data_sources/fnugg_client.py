"""Helpers for fetching resort conditions and lift status from the Fnugg API."""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from app.data_sources.http import raise_for_upstream
from app.errors import UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="fnugg_client")

FNUGG_RESORT_URL = "https://api.fnugg.no/resort/{resort_id}"

UNKNOWN_CONDITION = "Unknown"

# Dashboard lift id -> name fragments used by Fnugg for that lift.
LIFT_NAME_FRAGMENTS: Dict[str, tuple[str, ...]] = {
    "backyardheisen": ("Backyardheisen",),
    "hafjell360": ("Hafjell 360",),
    "gondolen": ("Gondolen",),
    "vidsynexpressen": ("Vidsynexpressen",),
    "hafjellheis1": ("Hafjellheis 1", "C. Hafjellheis 1"),
    "hafjellheis2": ("Hafjellheis 2", "E. Hafjellheis 2"),
    "kjusheisen": ("Kjusheisen", "D. Kjusheisen"),
}


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def normalize_station(raw: Any) -> dict:
    """Normalize one Fnugg condition block (top or bottom) into a fixed shape."""
    raw = raw if isinstance(raw, dict) else {}
    condition = _dig(raw, "weather", "description") or _dig(raw, "condition_description")
    return {
        "temperature": _to_float(_dig(raw, "temperature", "value")),
        "condition": condition or UNKNOWN_CONDITION,
        "wind_speed": _to_float(_first(_dig(raw, "wind", "speed"), _dig(raw, "wind", "mps"))),
        "snow_depth": _to_float(_dig(raw, "snow", "depth")),
        "snow_last_day": _to_float(_first(_dig(raw, "snow", "lastDay"), _dig(raw, "snow", "today"))),
    }


def _lift_is_open(lift: dict) -> bool:
    status = lift.get("status")
    if isinstance(status, dict):
        return bool(status.get("isOpen") or status.get("open"))
    if isinstance(status, str):
        return status.lower() in ("open", "opened", "1")
    return bool(status)


def normalize_lifts(raw: Any) -> Dict[str, int]:
    """Map Fnugg lifts onto the dashboard lift ids; unknown lifts default to 0 (closed)."""
    if isinstance(raw, dict):
        # Search results nest the list as {"list": [...], "open": n, "count": n}.
        raw = raw.get("list") or []
    status = {lift_id: 0 for lift_id in LIFT_NAME_FRAGMENTS}
    for lift in raw or []:
        if not isinstance(lift, dict):
            continue
        name = lift.get("name") or ""
        for lift_id, fragments in LIFT_NAME_FRAGMENTS.items():
            if any(fragment in name for fragment in fragments):
                status[lift_id] = 1 if _lift_is_open(lift) else 0
                break
    return status


def normalize_resort(payload: Any) -> dict:
    """Normalize a Fnugg resort payload into `{top, bottom, lifts}`.

    The resort document is read from `_source` when the payload is a search
    hit, else from the payload itself.
    """
    if not isinstance(payload, dict):
        raise UpstreamError("Fnugg returned a non-object payload", service="fnugg")
    doc = payload.get("_source") if isinstance(payload.get("_source"), dict) else payload
    conditions = doc.get("conditions") if isinstance(doc.get("conditions"), dict) else {}
    return {
        "name": doc.get("name"),
        "top": normalize_station(_first(conditions.get("top"), _dig(conditions, "combined", "top"))),
        "bottom": normalize_station(_first(conditions.get("bottom"), _dig(conditions, "combined", "bottom"))),
        "lifts": normalize_lifts(doc.get("lifts")),
    }


class FnuggClient:
    """Fetches one resort document from Fnugg."""

    def __init__(self, resort_id: int, session: requests.Session, *, timeout: float = 20.0) -> None:
        self.resort_id = resort_id
        self.session = session
        self.timeout = timeout

    def get_conditions(self) -> dict:
        """Return normalized `{top, bottom, lifts}` conditions for the resort."""
        resp = self.session.get(FNUGG_RESORT_URL.format(resort_id=self.resort_id), timeout=self.timeout)
        raise_for_upstream(resp, "fnugg")
        conditions = normalize_resort(resp.json())
        logger.debug("Fnugg conditions", extra={"resort_id": self.resort_id, "lifts": conditions["lifts"]})
        return conditions
