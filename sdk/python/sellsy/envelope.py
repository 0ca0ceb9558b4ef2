# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
Request/response envelope codec.

Outbound, a call is wrapped into three multipart form fields:

    request=1
    io_mode=json
    do_in={"method": "...", "params": ...}

Inbound, the service answers with a JSON object:

    {"status": "success", "response": ...}
    {"status": "error", "error": {"code": ..., "message": ..., "more": ...}}
"""

import json
from typing import Any, List, Tuple, Union

from .errors import (
    ApiError,
    AuthenticationError,
    MalformedResponseError,
    UnknownApiError,
)


STATUS_SUCCESS = "success"
OAUTH_PROBLEM_MARKER = "oauth_problem"


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------

def serialize_do_in(method: str, params: Any) -> str:
    """Compact JSON of the {method, params} call descriptor."""
    return json.dumps({"method": method, "params": params}, separators=(",", ":"))


def encode_request(method: str, params: Any) -> List[Tuple[str, str]]:
    """
    Encode a call into multipart form fields.

    Args:
        method: API method name, e.g. "Client.getList"
        params: Any JSON-serializable value

    Returns:
        Ordered list of (field name, value) pairs
    """
    return [
        ("request", "1"),
        ("io_mode", "json"),
        ("do_in", serialize_do_in(method, params)),
    ]


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------

def decode_response(raw_body: Union[bytes, str]) -> Any:
    """
    Validate a response envelope and extract its payload.

    Args:
        raw_body: Response body as received from the transport

    Returns:
        The "response" field, untouched

    Raises:
        AuthenticationError: Body reports an OAuth problem
        MalformedResponseError: Body is not a JSON object or lacks
            "status" (or "response" on success)
        ApiError: Service reported a structured error
        UnknownApiError: Service reported failure without an error object
    """
    if isinstance(raw_body, bytes):
        body = raw_body.decode("utf-8", errors="replace")
    else:
        body = raw_body

    if OAUTH_PROBLEM_MARKER in body:
        raise AuthenticationError(body)

    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        data = None

    if not isinstance(data, dict):
        raise MalformedResponseError(f"Unable to decode JSON response ({body[:200]})", body=body)

    if "status" not in data:
        raise MalformedResponseError(f"status field missing in response ({body[:200]})", body=body)

    if data["status"] != STATUS_SUCCESS:
        error = data.get("error")
        if isinstance(error, dict) and "code" in error:
            raise ApiError(
                message=error.get("message") or "",
                code=error["code"],
                more=error.get("more"),
            )
        raise UnknownApiError(body)

    if "response" not in data:
        raise MalformedResponseError(f"response field missing in response ({body[:200]})", body=body)

    return data["response"]
