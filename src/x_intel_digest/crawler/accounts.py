"""Account roster resolution."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from x_intel_digest.config import XSettings

logger = logging.getLogger(__name__)

DEV_ACCOUNTS_FILE = "dev-accounts.json"


def normalize_accounts(handles: Iterable[str]) -> list[str]:
    """Strip leading ``@`` and whitespace, drop blanks and duplicates, keep order."""
    seen: set[str] = set()
    roster: list[str] = []
    for handle in handles:
        name = handle.strip().lstrip("@").strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        roster.append(name)
    return roster


def load_dev_accounts(path: Path) -> list[str]:
    """Read ``[{"username": ...}, ...]`` from the crawler's account file.

    Returns an empty list if the file is missing or unreadable.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable account file %s: %s", path, e)
        return []

    if not isinstance(data, list):
        logger.warning("Ignoring account file %s: expected a JSON list", path)
        return []

    return [
        str(entry["username"])
        for entry in data
        if isinstance(entry, dict) and entry.get("username")
    ]


def resolve_accounts(settings: XSettings) -> list[str]:
    """Resolve the roster for a run.

    The crawler's own account file takes precedence when it lists at
    least one user; otherwise the configured ``X_ACCOUNTS`` are used.
    """
    dev_accounts = normalize_accounts(load_dev_accounts(Path(settings.kit_dir) / DEV_ACCOUNTS_FILE))
    if dev_accounts:
        logger.debug("Using %d accounts from %s", len(dev_accounts), DEV_ACCOUNTS_FILE)
        return dev_accounts
    return normalize_accounts(settings.accounts)
