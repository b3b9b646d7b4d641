# src/order_logistics_sync/api/client.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Protocol
import json

from order_logistics_sync.api.normalize import _accepted_entries


class TrackingClient(Protocol):
    def post_tracking(self, numbers: List[str]) -> Dict[str, Any]:
        ...


@dataclass
class ReplayClient:
    """Serves recorded gettrackinfo bodies instead of calling 17TRACK.

    `replay_file` holds a single response body or a JSON array of bodies (the
    format ResponseWriter produces). Accepted entries are indexed by tracking
    number; later bodies win. post_tracking() answers with a synthetic body
    containing the indexed entries, and lists unknown numbers as rejected.
    """

    replay_file: Path
    _index: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.is_file():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        bodies: List[Any] = raw if isinstance(raw, list) else [raw]

        for body in bodies:
            if not isinstance(body, dict):
                continue
            for entry in _accepted_entries(body) or []:
                if isinstance(entry, dict) and entry.get("number"):
                    self._index[str(entry["number"]).strip()] = entry

    def __contains__(self, number: str) -> bool:
        return str(number) in self._index

    def post_tracking(self, numbers: List[str]) -> Dict[str, Any]:
        accepted = [self._index[n] for n in numbers if n in self._index]
        rejected = [{"number": n, "error": {"code": -18019909, "message": "not recorded"}}
                    for n in numbers if n not in self._index]
        return {"code": 0, "data": {"accepted": accepted, "rejected": rejected}}
