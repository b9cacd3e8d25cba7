"""Classification of Salesforce REST API responses.

Every response is mapped to either a decoded JSON value or an
:class:`~salesforce_rest_api.errors.ApiError` using the table below:

=====================  ============  ==========================================
Status                 Body          Result
=====================  ============  ==========================================
304                    empty         ``{"message": NOT_MODIFIED_MESSAGE}``
200, 201, 204, 300     empty         ``{"success": True}``
200, 201, 204, 300     non-empty     decoded JSON body
304                    non-empty     decoded JSON body
anything else          error field   ApiError(service description)
anything else          other body    ApiError(raw body)
anything else          empty         ApiError(reason phrase)
=====================  ============  ==========================================
"""

import json
from typing import Any

import httpx

from .errors import ApiError

NOT_MODIFIED_MESSAGE = "not modified since specified time"

# Statuses that are successes; value is the result for an empty body.
EMPTY_BODY_RESULTS: dict[int, dict[str, Any]] = {
    200: {"success": True},
    201: {"success": True},
    204: {"success": True},
    300: {"success": True},
    304: {"message": NOT_MODIFIED_MESSAGE},
}


def classify(response: httpx.Response) -> Any:
    """Return the decoded result of a response or raise ApiError.

    Args:
        response: A completed (read) httpx response.

    Returns:
        Decoded JSON value, or a synthetic mapping for empty bodies.

    Raises:
        ApiError: If the status is not a success status, or a success
            body is not valid JSON.
    """
    status = response.status_code
    body = response.text

    if status in EMPTY_BODY_RESULTS:
        if not body.strip():
            return dict(EMPTY_BODY_RESULTS[status])
        try:
            return json.loads(body)
        except ValueError:
            msg = "Response body is not valid JSON"
            raise ApiError(
                status,
                msg,
                reason=response.reason_phrase,
                body=body,
            ) from None

    raise error_from_response(response)


def error_from_response(response: httpx.Response) -> ApiError:
    """Build the ApiError for a failed response, best message first."""
    status = response.status_code
    body = response.text
    reason = response.reason_phrase

    if not body.strip():
        return ApiError(status, reason or f"HTTP {status}", reason=reason)

    try:
        payload = json.loads(body)
    except ValueError:
        payload = None

    description, error_code = extract_error(payload)
    if description is None:
        return ApiError(status, body, reason=reason, body=body)
    return ApiError(
        status,
        description,
        reason=reason,
        error_code=error_code,
        body=body,
    )


def extract_error(payload: Any) -> tuple[str | None, str | None]:
    """Pull (description, code) out of a decoded error payload.

    Understands the OAuth shape ``{"error", "error_description"}`` and
    the REST shape ``[{"message", "errorCode"}, ...]``. Returns
    ``(None, None)`` if neither is present.
    """
    if isinstance(payload, dict):
        if "error_description" in payload or "error" in payload:
            code = payload.get("error")
            description = payload.get("error_description") or code
            return str(description), str(code) if code is not None else None
        return None, None

    if isinstance(payload, list):
        entries = [e for e in payload if isinstance(e, dict) and "message" in e]
        if not entries:
            return None, None
        description = "; ".join(str(e["message"]) for e in entries)
        code = entries[0].get("errorCode")
        return description, str(code) if code is not None else None

    return None, None
