"""
Response serialization: JSON or the tagged XML markup format.

XML layout for a result::

    <?xml version="1.0" encoding="UTF-8" ?>
    <RESPONSE>
    <SINGLE>
    <KEY name="a"><VALUE>1</VALUE>
    </KEY>
    </SINGLE>
    </RESPONSE>

Scalars become ``<VALUE>``, sequences ``<MULTIPLE>``, records ``<SINGLE>``
with one ``<KEY>`` per declared field. A missing schema, or a value that does
not fit its scalar schema, contributes nothing instead of failing.
"""

import json
import logging
from enum import Enum
from typing import Any, Mapping, Optional
from xml.sax.saxutils import escape

from restalexa.errors import SerializationError
from restalexa.models.envelope import ErrorDescriptor
from restalexa.models.schema import RecordSchema, ReturnSchema, ScalarSchema, SequenceSchema

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" ?>\n'
_QUOTE = {'"': "&quot;"}
_FALLBACK_JSON = b'{"exception": "SerializationError", "errorcode": "serializationfailed", "message": "Internal error"}'
_FALLBACK_XML = (
    XML_DECLARATION.encode("utf-8")
    + b'<EXCEPTION class="SerializationError">\n<ERRORCODE>serializationfailed</ERRORCODE>\n'
    + b"<MESSAGE>Internal error</MESSAGE>\n</EXCEPTION>\n"
)


class ResponseFormat(str, Enum):
    JSON = "json"
    XML = "xml"

    @property
    def content_type(self) -> str:
        if self is ResponseFormat.XML:
            return "application/xml; charset=utf-8"
        return "application/json"


def response_headers(fmt: ResponseFormat) -> dict[str, str]:
    """Headers sent with every response, success or error."""
    headers = {
        "Content-Type": fmt.content_type,
        "Cache-Control": "private, must-revalidate, pre-check=0, post-check=0, max-age=0",
        "Expires": "Thu, 01 Jan 1970 00:00:00 GMT",
        "Pragma": "no-cache",
        "Accept-Ranges": "none",
        "Access-Control-Allow-Origin": "*",
    }
    if fmt is ResponseFormat.XML:
        headers["Content-Disposition"] = 'inline; filename="response.xml"'
    return headers


def _escape(text: str) -> str:
    return escape(text, _QUOTE)


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def xmlize_result(value: Any, schema: Optional[ReturnSchema]) -> str:
    """Recursively render ``value`` as tagged markup, walking ``schema``."""
    if schema is None:
        return ""

    if isinstance(schema, ScalarSchema):
        if value is None:
            return '<VALUE null="null"/>\n'
        if isinstance(value, (Mapping, list, tuple)):
            return ""
        return f"<VALUE>{_escape(_scalar_text(value))}</VALUE>\n"

    if isinstance(schema, SequenceSchema):
        parts = ["<MULTIPLE>\n"]
        if isinstance(value, (list, tuple)):
            for item in value:
                parts.append(xmlize_result(item, schema.content))
        parts.append("</MULTIPLE>\n")
        return "".join(parts)

    if isinstance(schema, RecordSchema):
        parts = ["<SINGLE>\n"]
        for key, sub in schema.fields.items():
            item = value.get(key) if isinstance(value, Mapping) else None
            parts.append(f'<KEY name="{_escape(key)}">{xmlize_result(item, sub)}</KEY>\n')
        parts.append("</SINGLE>\n")
        return "".join(parts)

    return ""


def serialize(result: Any, schema: Optional[ReturnSchema], fmt: ResponseFormat) -> tuple[bytes, str]:
    """Encode a cleaned result. Returns ``(payload, content_type)``."""
    if fmt is ResponseFormat.XML:
        try:
            body = XML_DECLARATION + "<RESPONSE>\n" + xmlize_result(result, schema) + "</RESPONSE>\n"
            payload = body.encode("utf-8")
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError("Could not encode response", debug_detail=str(e))
        return payload, fmt.content_type

    try:
        body = json.dumps(result if schema is not None else None, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError("Could not encode response", debug_detail=str(e))
    return body.encode("utf-8"), fmt.content_type


def _error_json(err: ErrorDescriptor, debug: bool) -> str:
    payload: dict[str, Any] = {
        "exception": err.exception,
        "errorcode": err.code,
        "message": err.message,
    }
    if debug and err.debug_detail is not None:
        payload["debuginfo"] = err.debug_detail
    return json.dumps(payload)


def _error_xml(err: ErrorDescriptor, debug: bool) -> str:
    parts = [
        XML_DECLARATION,
        f'<EXCEPTION class="{_escape(err.exception)}">\n',
        f"<ERRORCODE>{_escape(err.code)}</ERRORCODE>\n",
        f"<MESSAGE>{_escape(err.message)}</MESSAGE>\n",
    ]
    if debug and err.debug_detail is not None:
        parts.append(f"<DEBUGINFO>{_escape(err.debug_detail)}</DEBUGINFO>\n")
    parts.append("</EXCEPTION>\n")
    return "".join(parts)


def serialize_error(err: ErrorDescriptor, fmt: ResponseFormat, debug: bool = False) -> bytes:
    """Encode an error as a flat record. Always returns a body."""
    try:
        if fmt is ResponseFormat.XML:
            return _error_xml(err, debug).encode("utf-8")
        return _error_json(err, debug).encode("utf-8")
    except Exception:
        logger.exception("Failed to encode error response")
        if fmt is ResponseFormat.XML:
            return _FALLBACK_XML
        return _FALLBACK_JSON
