"""
Outer dispatch for thread lookups.

Whatever sits in front of the pipeline (a web route, the CLI) goes through
``dispatch``: it guarantees a well-formed ``Outcome`` even when something
escapes the pipeline unexpectedly, and ``to_http_response`` turns that
outcome into status, headers and body for an HTTP layer.
"""

import logging
from typing import Awaitable, Callable, Optional

import httpx

from .pipeline import THREAD_URL_TEMPLATE, fetch_thread_details
from .response import ApiResponse, Outcome

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_HTML = "text/html; charset=UTF-8"


async def dispatch(operation: Callable[[], Awaitable[Outcome]], job_id: str = "job") -> Outcome:
    """
    Run an operation, converting any escaped exception into a 500 outcome.

    Args:
        operation: Zero-argument coroutine function returning an Outcome
        job_id: Label for log messages
    """
    logger.debug("Preparing to execute job %s...", job_id)
    try:
        return await operation()
    except Exception as e:
        logger.exception("Job %s failed: %s", job_id, e)
        response = ApiResponse().add_error(str(e) or type(e).__name__)
        cause = e.__cause__
        if isinstance(cause, str):
            response.add_error(cause)
        elif cause is not None and str(cause):
            response.add_error(str(cause))
        return response.internal_server_error()


def to_http_response(outcome: Optional[Outcome]) -> dict:
    """
    Convert an outcome into an HTTP response init.

    Returns:
        {"status", "headers"} plus "body" when there is one. JSON bodies are
        the full outcome (status, success, reason, timestamp, errors,
        warnings, data?) and get an application/json content type; string
        raw bodies are served as HTML.
    """
    if outcome is None:
        logger.warning("Unable to determine HTTP response; No Status Code detected")
        return {}

    init = outcome.to_response()
    headers = init["headers"]

    if outcome.status == 204:
        logger.debug('Response set to "No Content"')
        return {"status": outcome.status, "headers": headers}

    if outcome.has_raw_body:
        body = init.get("body")
        if isinstance(body, str):
            headers["content-type"] = CONTENT_TYPE_HTML
        else:
            logger.warning('Unrecognized body type; Skipping "content-type" assignment...')
        return {"status": outcome.status, "headers": headers, "body": body}

    if CONTENT_TYPE_JSON not in headers.get("content-type", ""):
        headers["content-type"] = CONTENT_TYPE_JSON
    return {"status": outcome.status, "headers": headers, "body": outcome.to_dict()}


async def get_thread(
    raw_id: str,
    url_template: str = THREAD_URL_TEMPLATE,
    client: Optional[httpx.AsyncClient] = None,
) -> Outcome:
    """The inbound operation: get thread details by identifier."""
    return await dispatch(
        lambda: fetch_thread_details(raw_id, url_template=url_template, client=client),
        job_id=f"getThread ({raw_id})",
    )
