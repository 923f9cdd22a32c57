"""
Request parsing: turns the raw webhook body and query string into a CallDescriptor.

A body that is not valid JSON is not fatal: it is logged, recorded on the
descriptor as ``parse_error`` and treated as an empty object, so the function
name and service token can still come from the query string.
"""

import json
import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from restalexa.errors import MalformedInputError
from restalexa.models.envelope import CallDescriptor, ErrorDescriptor, InboundEnvelope, get_path

logger = logging.getLogger(__name__)

TOKEN_PARAM = "wstoken"
FUNCTION_PARAM = "wsfunction"
USER_TOKEN_PATH = ("context", "System", "user", "accessToken")


def _decode_body(raw_body: Union[bytes, str, None]) -> str:
    if raw_body is None:
        return ""
    if isinstance(raw_body, bytes):
        return raw_body.decode("utf-8", errors="replace")
    return raw_body


def _load_body(text: str) -> tuple[dict[str, Any], Optional[ErrorDescriptor]]:
    try:
        data = json.loads(text)
    except ValueError as e:
        err = MalformedInputError("Request body is not valid JSON", debug_detail=str(e))
        return {}, err.to_descriptor()
    if not isinstance(data, dict):
        err = MalformedInputError(
            "Request body is not a JSON object", debug_detail=f"top-level {type(data).__name__}",
        )
        return {}, err.to_descriptor()
    return data, None


def _as_param(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def parse_envelope(data: Mapping[str, Any]) -> Optional[InboundEnvelope]:
    """Validate a decoded body as an InboundEnvelope. Returns None if invalid."""
    try:
        return InboundEnvelope.model_validate(data)
    except ValidationError:
        return None


def parse_request(
    raw_body: Union[bytes, str, None],
    query_params: Optional[Mapping[str, str]] = None,
) -> CallDescriptor:
    """Build an unreconciled CallDescriptor from one inbound request."""
    text = _decode_body(raw_body)
    data, parse_error = _load_body(text)
    if parse_error is not None:
        logger.warning(f"Malformed request body, treating as empty: {parse_error.debug_detail}")

    # Body keys win over query-string keys.
    merged: dict[str, Any] = {**dict(query_params or {}), **data}
    service_token = _as_param(merged.pop(TOKEN_PARAM, None))
    function_name = _as_param(merged.pop(FUNCTION_PARAM, None))

    user_token = get_path(data, *USER_TOKEN_PATH)
    if not isinstance(user_token, str) or not user_token:
        user_token = None

    return CallDescriptor(
        function_name=function_name,
        service_token=service_token,
        user_token=user_token,
        raw_body=text,
        arguments=merged,
        parameters={"request": text, "token": ""},
        parse_error=parse_error,
    )
