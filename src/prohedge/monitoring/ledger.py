"""JSONL ledger sink for confirmed-leg events.

One line per LedgerEvent, deduplicated by event key
("<operation_id>:<leg_position>") so a retried write never double-records.
Known keys are reloaded from the file on first use, which keeps the dedup
valid across restarts.
"""

from __future__ import annotations

import json
import logging
from decimal import InvalidOperation
from pathlib import Path
from typing import Iterator

from prohedge.models.ledger import LedgerEvent

logger = logging.getLogger(__name__)


class JsonlLedger:
    """Append-only ledger file.

    Args:
        path: JSONL file path. Parent directories are created on demand.
    """

    def __init__(self, path: str = "data/ledger/hedge_events.jsonl"):
        self.path = Path(path)
        self._recorded_keys: set[str] = set()
        self._loaded = False

    def _load_recorded_keys(self) -> None:
        """Load keys already present in the file for dedup."""
        if self._loaded:
            return
        self._loaded = True
        for data in self._read_records():
            key = data.get("key", "")
            if key and isinstance(key, str):
                self._recorded_keys.add(key)

    def _read_records(self) -> Iterator[dict]:
        """JSON objects in the file, one per line; anything else is skipped."""
        if not self.path.exists():
            return
        with open(self.path) as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    data = None
                if not isinstance(data, dict):
                    logger.warning("Skipping malformed ledger line in %s", self.path)
                    continue
                yield data

    def __contains__(self, key: str) -> bool:
        self._load_recorded_keys()
        return key in self._recorded_keys

    def record(self, event: LedgerEvent) -> bool:
        """Append an event unless its key is already recorded.

        Returns:
            True if written, False if it was a duplicate.

        Raises:
            OSError: the file could not be written.
            ValueError: the existing file could not be decoded.
        """
        self._load_recorded_keys()
        if event.key in self._recorded_keys:
            logger.debug("[LEDGER] SKIP duplicate: %s", event.key)
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a") as f:
            f.write(json.dumps(event.to_dict()) + "\n")
        self._recorded_keys.add(event.key)

        logger.info(
            "[LEDGER] %s leg %d %s stake=%s liability=%s net=%s",
            event.operation_id[:8], event.leg_position, event.branch.value.upper(),
            event.stake_amount, event.liability_amount, event.net_result,
        )
        return True

    def load_events(self, operation_id: str | None = None) -> list[LedgerEvent]:
        """All recorded events, optionally for a single operation."""
        events = []
        for data in self._read_records():
            try:
                event = LedgerEvent.from_dict(data)
            except (KeyError, TypeError, ValueError, InvalidOperation):
                logger.warning("Skipping malformed ledger record in %s", self.path)
                continue
            if operation_id is None or event.operation_id == operation_id:
                events.append(event)
        return events
