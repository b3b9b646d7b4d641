from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class ResponseWriter:
    """Persist raw 17TRACK response bodies as a single JSON array.

    File shape on disk:
        [
          { ...response body 1... },
          { ...response body 2... },
        ]

    The same file can be fed back through ReplayClient.
    """

    path: Path
    logger: Optional[logging.Logger] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.logger = self.logger or logging.getLogger(
            "order_logistics_sync.api.writer")

    def add_response(self, response: Any) -> None:
        """Append one response body. Write failures are logged, never raised."""
        try:
            with self._lock:
                items = self.read_all()
                items.append(response)
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("w", encoding="utf-8") as fh:
                    json.dump(items, fh, ensure_ascii=False, indent=2)
        except OSError as ex:
            self.logger.warning(
                "Failed to append tracking response to %s: %s", self.path, ex)

    def read_all(self) -> list:
        """Return all saved bodies; a missing or unreadable file reads as []."""
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as ex:
            self.logger.warning(
                "Failed to read tracking responses from %s: %s", self.path, ex)
            return []
        return data if isinstance(data, list) else []
