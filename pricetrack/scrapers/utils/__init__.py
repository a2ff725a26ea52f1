"""Scraper utilities for price parsing, sessions, credentials and page helpers."""

from .normalizer import parse_price, derive_unit_price, format_gbp, coerce_decimal, coerce_int
from .session_store import SessionStore
from .credentials import Credentials, CredentialProvider
from .selectors import first_present, wait_for_first, has_any, settle, goto
from .forms import LoginForm, fill_credentials, submit_form
from .totp import generate_totp, fill_totp_if_present
from .challenge import wait_for_challenge, challenge_present
from .retry import login_retrying


__all__ = [
    # Prices
    "parse_price",
    "derive_unit_price",
    "format_gbp",
    "coerce_decimal",
    "coerce_int",
    # Sessions and credentials
    "SessionStore",
    "Credentials",
    "CredentialProvider",
    # Page helpers
    "first_present",
    "wait_for_first",
    "has_any",
    "settle",
    "goto",
    "LoginForm",
    "fill_credentials",
    "submit_form",
    "generate_totp",
    "fill_totp_if_present",
    "wait_for_challenge",
    "challenge_present",
    # Retry
    "login_retrying",
]
