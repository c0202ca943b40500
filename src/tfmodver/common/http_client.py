"""Shared HTTP helpers used by the registry client.

Encapsulates common request/timeout error handling so callers get a small,
typed set of failures (timeout, transport error, bad payload, cancellation)
instead of raw ``requests`` exceptions.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from tfmodver.constants import Constants
from tfmodver.errors import CancelledError, RegistryError, RegistryTimeoutError
from tfmodver.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def new_session() -> requests.Session:
    """Create a requests session with the default headers for registry calls."""
    session = requests.Session()
    session.headers.update({
        "Accept": "application/json",
        "User-Agent": Constants.USER_AGENT,
    })
    return session


def _raise_if_cancelled(
    cancel_event: Optional[threading.Event], context: str, cause: Optional[BaseException] = None
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledError(f"{context} request cancelled") from cause


def safe_get(
    session: requests.Session,
    url: str,
    *,
    context: str,
    timeout: float = Constants.REGISTRY_TIMEOUT,
    cancel_event: Optional[threading.Event] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Raises:
        CancelledError: ``cancel_event`` was set before the request started
            or while it was in flight; a response that arrives after
            cancellation is discarded.
        RegistryTimeoutError: the request exceeded ``timeout`` seconds.
        RegistryError: any other transport failure.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledError(f"{context} request cancelled before start")

    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = session.get(url, timeout=timeout, **kwargs)
        except requests.Timeout as exc:
            _raise_if_cancelled(cancel_event, context, exc)
            logger.warning(
                "%s request timed out after %s seconds",
                context,
                timeout,
                extra=extra_context(event="http_exception", outcome="timeout", target=safe_target),
            )
            raise RegistryTimeoutError(f"{context} request to {safe_target} timed out after {timeout}s") from exc
        except requests.RequestException as exc:  # includes ConnectionError
            _raise_if_cancelled(cancel_event, context, exc)
            logger.warning(
                "%s connection error: %s",
                context,
                exc,
                extra=extra_context(event="http_exception", outcome="request_exception", target=safe_target),
            )
            raise RegistryError(f"{context} request to {safe_target} failed: {exc}") from exc

        if cancel_event is not None and cancel_event.is_set():
            res.close()
            raise CancelledError(f"{context} request cancelled while in flight")

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
    return res


def get_json(
    session: requests.Session,
    url: str,
    *,
    context: str,
    timeout: float = Constants.REGISTRY_TIMEOUT,
    cancel_event: Optional[threading.Event] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], Any]:
    """GET ``url`` and decode a JSON body.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none). The body
        is only decoded for 200 responses.

    Raises:
        RegistryError: a 200 response whose body is not valid JSON, plus
            everything ``safe_get`` raises.
    """
    res = safe_get(session, url, context=context, timeout=timeout, cancel_event=cancel_event, **kwargs)
    if res.status_code != 200:
        return res.status_code, dict(res.headers), None
    try:
        return res.status_code, dict(res.headers), json.loads(res.text)
    except json.JSONDecodeError as exc:
        logger.debug(
            "JSON decode error",
            extra=extra_context(
                event="parse",
                component="http_client",
                action="get_json",
                outcome="json_decode_error",
                target=safe_url(url),
            ),
        )
        raise RegistryError(f"{context} returned invalid JSON from {safe_url(url)}: {exc}", res.status_code) from exc
