# src/order_logistics_sync/api/normalize.py
from __future__ import annotations

from typing import Any, Dict, List

from order_logistics_sync.models import ProviderError, ProviderOk, ProviderResult


def _accepted_entries(payload: Dict[str, Any]) -> List[Any] | None:
    """
    Locate the `accepted` list: 17TRACK nests it under `data`, but a flat
    top-level `accepted` is tolerated too.
    """
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("accepted"), list):
        return data["accepted"]
    if isinstance(payload.get("accepted"), list):
        return payload["accepted"]
    return None


def _latest_status_code(entry: Dict[str, Any]) -> str:
    """Extract track_info.latest_status.status as a string ("" when absent)."""
    info = entry.get("track_info")
    if not isinstance(info, dict):
        return ""
    latest = info.get("latest_status")
    if not isinstance(latest, dict):
        return ""
    status = latest.get("status")
    if status is None:
        return ""
    return str(status).strip()


def parse_track_response(payload: Any) -> ProviderResult:
    """
    Turn a gettrackinfo body into ProviderOk / ProviderError.

    - non-dict body, non-zero `code` or missing `accepted` -> ProviderError
    - accepted entries without a number or latest status are skipped
    """
    if not isinstance(payload, dict):
        return ProviderError(f"unexpected response body type: {type(payload).__name__}")

    code = payload.get("code", 0)
    if str(code).strip() not in ("0", ""):
        message = payload.get("message") or payload.get("msg") or ""
        return ProviderError(f"provider error code {code}: {message}".rstrip(": "))

    accepted = _accepted_entries(payload)
    if accepted is None:
        return ProviderError("response is missing the 'accepted' list")

    out: Dict[str, str] = {}
    for entry in accepted:
        if not isinstance(entry, dict):
            continue
        number = str(entry.get("number") or "").strip()
        status = _latest_status_code(entry)
        if number and status:
            out[number] = status
    return ProviderOk(status_by_number=out)


def accepted_numbers(payload: Any) -> List[str]:
    """Tracking numbers listed in a response body (used to index replays)."""
    if not isinstance(payload, dict):
        return []
    entries = _accepted_entries(payload) or []
    numbers: List[str] = []
    for entry in entries:
        if isinstance(entry, dict) and entry.get("number"):
            numbers.append(str(entry["number"]).strip())
    return numbers
