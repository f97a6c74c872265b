"""Pending-transaction records for mechain-cmd."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any


class SessionError(ValueError):
    """Raised when a pending record cannot be persisted or read."""


_TX_HASH_RE = re.compile(r"(?:0x)?[0-9A-Fa-f]{1,128}")


def validate_tx_hash(tx_hash: str) -> str:
    """Return ``tx_hash`` if it is a hex hash; it is used as a file name."""
    if not _TX_HASH_RE.fullmatch(tx_hash):
        raise SessionError(f"invalid transaction hash: {tx_hash!r}")
    return tx_hash


def _pending_path(sessions_dir: str, tx_hash: str) -> Path:
    validate_tx_hash(tx_hash)
    return Path(sessions_dir) / "pending" / f"{tx_hash}.json"


def save_pending_record(*, sessions_dir: str, tx_hash: str, payload: dict[str, Any]) -> Path:
    record_path = _pending_path(sessions_dir, tx_hash)
    try:
        record_path.parent.mkdir(parents=True, exist_ok=True)
        record_path.write_text(
            json.dumps(payload, sort_keys=True, indent=2) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise SessionError(f"failed to write pending record: {record_path}") from exc
    return record_path


def load_pending_record(*, sessions_dir: str, tx_hash: str) -> dict[str, Any] | None:
    record_path = _pending_path(sessions_dir, tx_hash)
    if not record_path.exists():
        return None
    try:
        return json.loads(record_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SessionError(f"invalid pending record: {record_path}") from exc


def clear_pending_record(*, sessions_dir: str, tx_hash: str) -> bool:
    record_path = _pending_path(sessions_dir, tx_hash)
    if not record_path.exists():
        return False
    record_path.unlink()
    return True
