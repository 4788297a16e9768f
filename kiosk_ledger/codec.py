"""Portable JSON backup documents."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Union
import json
import logging

from .migration import migrate, sanitize
from .models import AppData


logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("inventory", "sales", "purchases")
DEFAULT_EXPORT_PREFIX = "kiosk-ledger-backup"


class InvalidDocumentShape(ValueError):
    """Raised when an import payload is not a usable ledger document."""


def export_document(data: AppData) -> bytes:
    """Serialize ``data`` as human-readable JSON."""

    return json.dumps(data.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")


def export_filename(today: Optional[date] = None, *, prefix: str = DEFAULT_EXPORT_PREFIX) -> str:
    stamp = (today or date.today()).isoformat()
    return f"{prefix}-{stamp}.json"


def parse_document(payload: Union[bytes, str]) -> Dict[str, Any]:
    """Decode ``payload`` and check it has the top-level ledger keys.

    Entries are not validated here; :func:`import_document` heals them.
    """

    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InvalidDocumentShape("File could not be read properly.") from exc
    elif isinstance(payload, str):
        text = payload
    else:
        raise InvalidDocumentShape("File could not be read properly.")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidDocumentShape(f"Not a valid JSON document: {exc}") from exc
    if not isinstance(document, dict):
        raise InvalidDocumentShape("Invalid data structure in backup file.")
    missing = [key for key in REQUIRED_KEYS if key not in document]
    if missing:
        raise InvalidDocumentShape(
            "Invalid data structure in backup file. Missing: " + ", ".join(missing)
        )
    return document


def import_document(payload: Union[bytes, str]) -> AppData:
    """Parse a backup into canonical :class:`AppData`.

    The result is not applied anywhere; the caller confirms with the user
    before replacing the working copy with it.
    """

    document = parse_document(payload)
    migrated, changed = migrate(document)
    if changed:
        logger.info("Imported document required migration")
    return AppData.from_document(sanitize(migrated))


__all__ = [
    "DEFAULT_EXPORT_PREFIX",
    "InvalidDocumentShape",
    "REQUIRED_KEYS",
    "export_document",
    "export_filename",
    "import_document",
    "parse_document",
]
