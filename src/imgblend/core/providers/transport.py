"""
Shared HTTP exchange for providers.

Posts a JSON payload with requests, maps HTTP status codes and requests
exceptions onto imgblend errors, and logs the exchange (image data truncated
when debug is on).
"""

import json
import time
from typing import Any

import requests

from imgblend.logging_config import get_logger, redact_image_data
from imgblend.utils.exceptions import APIError, NetworkError, RequestTimeoutError

logger = get_logger(__name__)

_RAW_TEXT_LOG_MAX = 2000


def _log_response_body(response: requests.Response) -> None:
    content_type = response.headers.get("content-type", "")
    if content_type.startswith("image/"):
        logger.info(
            "API response (image data truncated): <image body, %s bytes>",
            len(response.content),
        )
        return
    try:
        body = response.json()
    except ValueError:
        text = response.text
        if len(text) > _RAW_TEXT_LOG_MAX:
            text = text[:_RAW_TEXT_LOG_MAX] + f"... <truncated, {len(response.text)} chars total>"
        logger.info("API response (raw text): %s", text)
        return
    logger.info(
        "API response (image data truncated): %s",
        json.dumps(redact_image_data(body), indent=2, default=str),
    )


def raise_for_status(response: requests.Response, service: str, model: str) -> None:
    """Raise APIError for any non-200 response."""
    status = response.status_code
    if status == 200:
        return
    if status in (401, 403):
        raise APIError(
            f"Authentication failed. Please check your {service} API key.",
            status_code=status,
            response=response.text,
        )
    if status == 404:
        raise APIError(
            f"Model not found or endpoint unavailable: {model}",
            status_code=404,
            response=response.text,
        )
    if status == 429:
        raise APIError(
            "Rate limit exceeded. Please wait before making more requests.",
            status_code=429,
            response=response.text,
        )
    if status >= 500:
        raise APIError(
            f"{service} service error: {status}",
            status_code=status,
            response=response.text,
        )
    raise APIError(
        f"API request failed with status {status}: {response.text}",
        status_code=status,
        response=response.text,
    )


def post_json(
    url: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    timeout: int,
    *,
    service: str,
    model: str,
    debug: bool = False,
) -> tuple[requests.Response, float]:
    """
    POST payload and return (response, elapsed seconds) for a 200 response.

    Raises:
        APIError: Non-200 status
        RequestTimeoutError: The request timed out
        NetworkError: Connection or other transport failure
    """
    logger.debug("API request url=%s model=%s timeout=%s", url, model, timeout)
    if debug:
        logger.info(
            "API request payload (image data truncated): %s",
            json.dumps(redact_image_data(payload), indent=2, default=str),
        )
    start_time = time.time()
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.exceptions.Timeout as e:
        raise RequestTimeoutError(
            f"Request timed out after {timeout} seconds. "
            "The generation may be taking longer than expected."
        ) from e
    except requests.exceptions.ConnectionError as e:
        raise NetworkError(
            f"Failed to connect to {service} API. Please check your internet connection.",
            original_error=e,
        ) from e
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"Network error during API request: {str(e)}", original_error=e) from e
    elapsed = time.time() - start_time
    logger.debug(
        "API response status=%s content_type=%s time=%.2fs",
        response.status_code,
        response.headers.get("content-type", ""),
        elapsed,
    )
    if debug:
        _log_response_body(response)
    raise_for_status(response, service, model)
    return response, elapsed


def parse_json(response: requests.Response) -> dict[str, Any]:
    """Return the JSON body or raise APIError."""
    try:
        body = response.json()
    except ValueError as e:
        raise APIError(
            f"Failed to parse API response as JSON: {str(e)}",
            response=response.text,
        ) from e
    if not isinstance(body, dict):
        raise APIError("Unexpected API response shape", response=response.text)
    return body
