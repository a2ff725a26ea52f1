"""Custom exception classes for the application."""

from typing import Optional


class PriceTrackError(Exception):
    """Base exception for all price tracker errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PriceTrackError):
    """Raised for unknown site ids, manual-only sites or half-set config."""


class MissingCredentials(PriceTrackError):
    """Raised when no complete username/password pair exists for a site."""

    def __init__(self, site_id: str):
        self.site_id = site_id
        super().__init__(f"Missing credentials for {site_id}")


class AuthenticationFailure(PriceTrackError):
    """Raised when a site login cannot be verified."""

    def __init__(self, site_id: str, message: str):
        self.site_id = site_id
        super().__init__(f"{site_id} login failed: {message}")


class ExtractionFailure(PriceTrackError):
    """Raised when a price cannot be read for a single product link."""

    def __init__(self, site_id: str, message: str):
        self.site_id = site_id
        super().__init__(f"{site_id}: {message}")


class UnparsableAmount(PriceTrackError):
    """Raised when scraped text does not contain a usable price."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Cannot parse price from: {raw!r}")


class MalformedEvent(PriceTrackError):
    """Raised when an event on the stream lacks a usable id or amount."""


class PersistenceFailure(PriceTrackError):
    """Raised when a single event's transaction cannot be applied."""


class LinkNotFound(PersistenceFailure):
    """Raised when an event references a product link that does not exist."""

    def __init__(self, link_id: int):
        self.link_id = link_id
        super().__init__(f"ProductLink with identifier '{link_id}' not found")


class RunInProgress(PriceTrackError):
    """Raised when a run is started while another one is still running."""

    def __init__(self, run_id: Optional[int] = None):
        self.run_id = run_id
        super().__init__("A scrape run is already in progress")
