#!/usr/bin/env python3
"""
================================================================================
formfill_bridge/telemetry.py - Event Log for Bridge Transactions
================================================================================

PURPOSE:
    Records every bridge transaction and channel lifecycle change as one
    JSON line, so a hanging or misbehaving test run can be replayed after
    the fact.

EVENT SCHEMA (v1.0):
    {
        "event_version": "1.0",
        "ts": "ISO8601 timestamp",
        "component": "bridge|channel|harness|parent",
        "data": {...}
    }

SECURITY:
    - Address field values are never written; emails in free text are
      redacted; strings are stripped of ANSI escapes and truncated
    - Event log is created with 0600 permissions

TUNABLE PARAMETERS:
    - FORMFILL_DIR: base directory (default ~/.local/formfill_bridge)
    - FORMFILL_TELEMETRY: "true" to enable writing
    - TELEMETRY_BATCH: events buffered before a flush (default 10)

================================================================================
"""

import atexit
import json
import os
import re
import stat
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .records import VALID_ADDRESS_FIELDS


EVENT_VERSION = "1.0"

TELEMETRY_BATCH = int(os.environ.get("TELEMETRY_BATCH", "10"))

MAX_STRING_LENGTH = 200

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

# Email addresses in free text (reasons, error messages)
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

REDACTED = "[REDACTED]"

# =============================================================================
# GLOBAL STATE
# =============================================================================

_event_buffer: List[Dict[str, Any]] = []

_lock = threading.RLock()

# Explicit override; None means read FORMFILL_TELEMETRY
_enabled: Optional[bool] = None

_events_path: Optional[Path] = None


def get_base_dir() -> Path:
    """Base directory for formfill_bridge outputs."""
    return Path(os.environ.get("FORMFILL_DIR", "~/.local/formfill_bridge")).expanduser()


def get_events_path() -> Path:
    """Path of the JSONL event log."""
    if _events_path is not None:
        return _events_path
    return get_base_dir() / "events.jsonl"


def is_enabled() -> bool:
    if _enabled is not None:
        return _enabled
    return os.environ.get("FORMFILL_TELEMETRY", "false").lower() == "true"


def configure(enabled: Optional[bool] = None, data_dir: Optional[str] = None) -> None:
    """Override the environment settings, e.g. from a BridgeConfig."""
    global _enabled, _events_path
    with _lock:
        _enabled = enabled
        _events_path = Path(data_dir).expanduser() / "events.jsonl" if data_dir else None


def reset() -> None:
    """Drop buffered events and overrides. Used by tests."""
    global _event_buffer, _enabled, _events_path
    with _lock:
        _event_buffer = []
        _enabled = None
        _events_path = None


def clean_text(text: str, max_length: int = MAX_STRING_LENGTH) -> str:
    """One line of plain text: no ANSI, no newlines, no email addresses, clipped."""
    text = ANSI_ESCAPE.sub("", text)
    text = " ".join(text.split())
    text = EMAIL_PATTERN.sub(REDACTED, text)
    if len(text) > max_length:
        text = text[: max_length - 3] + "..."
    return text


def scrub_event_data(value: Any) -> Any:
    """
    Make event data safe to persist.

    Values stored under address field names are personal data and are
    replaced wholesale, so a record that ends up in an event never reaches
    the log. Everything else goes through clean_text.
    """
    if isinstance(value, dict):
        return {
            str(k): REDACTED if k in VALID_ADDRESS_FIELDS else scrub_event_data(v)
            for k, v in value.items()
        }
    elif isinstance(value, (list, tuple)):
        return [scrub_event_data(v) for v in value]
    elif isinstance(value, (int, float, bool, type(None))):
        return value
    return clean_text(str(value))


# =============================================================================
# EVENT EMISSION
# =============================================================================


def emit_event(component: str, data: Dict[str, Any]) -> None:
    """
    Buffer one event and flush when the batch is full.

    Does nothing when telemetry is disabled.
    """
    if not is_enabled():
        return

    event = {
        "event_version": EVENT_VERSION,
        "ts": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "data": scrub_event_data(data),
    }

    with _lock:
        _event_buffer.append(event)
        if len(_event_buffer) >= TELEMETRY_BATCH:
            flush_events()


def flush_events() -> None:
    """
    Flush event buffer to disk.

    SECURITY:
        - Sets file permissions to 0600
    """
    global _event_buffer

    with _lock:
        if not _event_buffer:
            return

        events_file = get_events_path()
        try:
            events_file.parent.mkdir(parents=True, exist_ok=True)
            with open(events_file, "a") as f:
                for event in _event_buffer:
                    f.write(json.dumps(event) + "\n")
            os.chmod(events_file, stat.S_IRUSR | stat.S_IWUSR)
        except OSError as e:
            print(f"[ERROR] Failed to write events: {e}", file=sys.stderr)

        _event_buffer = []


def read_events(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Read events back from the log, skipping lines that fail to parse."""
    events_file = get_events_path()
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    if limit is not None:
        events = events[-limit:]
    return events


atexit.register(flush_events)
