"""Login credential resolution for marketplace sites."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

import structlog

from pricetrack.core.exceptions import ConfigurationError, MissingCredentials

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Username/password pair with an optional TOTP secret."""

    username: str
    password: str
    totp_secret: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***', totp={'yes' if self.totp_secret else 'no'})"


class CredentialProvider:
    """Resolve credentials from environment overrides, then the credential file.

    Environment keys are ``<SITE>_USERNAME``, ``<SITE>_PASSWORD`` and
    ``<SITE>_TOTP_SECRET``. The credential file is a JSON object keyed by
    site id: ``{"romprod": {"username": ..., "password": ..., "totpSecret": ...}}``.
    """

    def __init__(self, credentials_path: Union[str, Path], environ: Optional[Mapping[str, str]] = None):
        self.credentials_path = Path(credentials_path)
        self.environ = os.environ if environ is None else environ

    def resolve(self, site_id: str) -> Credentials:
        """Return complete credentials for ``site_id``.

        Raises:
            ConfigurationError: If only one of username/password is set in the environment
            MissingCredentials: If no source yields a complete pair
        """
        from_env = self._from_environment(site_id)
        if from_env:
            logger.debug("credentials_resolved", site_id=site_id, source="environment")
            return from_env

        from_file = self._from_file(site_id)
        if from_file:
            logger.debug("credentials_resolved", site_id=site_id, source="file")
            return from_file

        raise MissingCredentials(site_id)

    def _from_environment(self, site_id: str) -> Optional[Credentials]:
        prefix = site_id.upper()
        username = (self.environ.get(f"{prefix}_USERNAME") or "").strip()
        password = self.environ.get(f"{prefix}_PASSWORD") or ""
        totp_secret = (self.environ.get(f"{prefix}_TOTP_SECRET") or "").strip() or None

        if username and password:
            return Credentials(username=username, password=password, totp_secret=totp_secret)
        if username or password:
            missing = f"{prefix}_PASSWORD" if username else f"{prefix}_USERNAME"
            raise ConfigurationError(f"{missing} is not set while its counterpart is")
        return None

    def _from_file(self, site_id: str) -> Optional[Credentials]:
        if not self.credentials_path.exists():
            return None

        try:
            records = json.loads(self.credentials_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("credentials_file_unreadable", path=str(self.credentials_path), error=type(e).__name__)
            return None

        record = records.get(site_id) if isinstance(records, dict) else None
        if not isinstance(record, dict):
            return None

        username = record.get("username")
        password = record.get("password")
        if not username or not password:
            return None

        return Credentials(
            username=str(username),
            password=str(password),
            totp_secret=record.get("totpSecret") or record.get("totp_secret") or None,
        )
