"""Bounded retry for site logins."""

from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_fixed

from pricetrack.config import settings
from pricetrack.core.exceptions import AuthenticationFailure

logger = structlog.get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "login_retry",
        attempt=retry_state.attempt_number,
        error=str(error) if error else None,
    )


def login_retrying(max_attempts: Optional[int] = None, wait_sec: Optional[float] = None) -> AsyncRetrying:
    """Retry controller for one site's login.

    Retries verification failures and Playwright errors (which include
    timeouts); configuration problems such as missing credentials are
    never retried. The last error is re-raised.

    Usage::

        async for attempt in login_retrying():
            with attempt:
                await adapter.login(page, credentials)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts or settings.LOGIN_MAX_ATTEMPTS),
        wait=wait_fixed(settings.LOGIN_RETRY_WAIT_SEC if wait_sec is None else wait_sec),
        retry=retry_if_exception_type((AuthenticationFailure, PlaywrightError)),
        before_sleep=_log_retry,
        reraise=True,
    )
