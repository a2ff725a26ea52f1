"""Per-site persistence of Playwright storage state.

A stored session lets the next run skip the login form. The state holds
live cookies, so it is written owner-only and never logged.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import structlog

from pricetrack.scrapers.sites import SESSION_EXCLUDED_SITES

logger = structlog.get_logger(__name__)


class SessionStore:
    """Keyed store of opaque browser session state, one JSON file per site."""

    def __init__(self, state_dir: Union[str, Path], excluded_sites: Iterable[str] = SESSION_EXCLUDED_SITES):
        self.state_dir = Path(state_dir)
        self.excluded_sites = frozenset(excluded_sites)
        self.logger = logger.bind(component="session_store")

    def is_excluded(self, site_id: str) -> bool:
        return site_id in self.excluded_sites

    def path_for(self, site_id: str) -> Path:
        return self.state_dir / f"{site_id}.json"

    def read(self, site_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored state for ``site_id``, or None.

        Excluded sites always read as None. A missing or unreadable file
        is treated as no session rather than an error.
        """
        if self.is_excluded(site_id):
            return None

        path = self.path_for(site_id)
        if not path.exists():
            return None

        try:
            state = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.warning("session_state_unreadable", site_id=site_id, error=type(e).__name__)
            return None

        if not isinstance(state, dict):
            self.logger.warning("session_state_invalid", site_id=site_id)
            return None

        self.logger.debug("session_state_loaded", site_id=site_id)
        return state

    def write(self, site_id: str, state: Dict[str, Any]) -> None:
        """Persist ``state`` for ``site_id``; a no-op for excluded sites."""
        if self.is_excluded(site_id):
            self.logger.debug("session_state_not_persisted", site_id=site_id, reason="excluded")
            return

        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(site_id)
        tmp_path = path.with_suffix(".json.tmp")

        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(state, fh)
        os.replace(tmp_path, path)

        self.logger.debug("session_state_saved", site_id=site_id)
