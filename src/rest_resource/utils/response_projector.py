"""Project JSON response bodies onto flat string maps.

Generic consumers (state files, CLI output) want every top-level field
of a response as a string. Scalars are stringified, nested objects and
arrays are kept as compact JSON fragments, and a top-level string ``id``
is surfaced as the resource identifier.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from ..models import JsonKind, ProjectedResponse, is_whole_number, json_kind

logger = logging.getLogger(__name__)


def stringify_value(value: Any) -> str:
    """Render one decoded JSON value as a string.

    :param value: Decoded JSON value
    :type value: Any
    :return: ``"true"``/``"false"`` for booleans, integer formatting for
             whole numbers, compact JSON for objects and arrays, ``"null"``
             for null and strings unchanged
    :rtype: str
    """
    kind = json_kind(value)
    if kind is JsonKind.STRING:
        return value
    if kind is JsonKind.BOOL:
        return "true" if value else "false"
    if kind is JsonKind.NUMBER:
        if is_whole_number(value):
            return str(int(value))
        return repr(float(value))
    if kind is JsonKind.NULL:
        return "null"
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def extract_identifier(parsed: Any) -> Optional[str]:
    """Return the top-level string ``id`` of a parsed body, if any."""
    if isinstance(parsed, dict):
        value = parsed.get("id")
        if isinstance(value, str):
            return value
    return None


def project(raw_body: Union[str, bytes, None]) -> ProjectedResponse:
    """Project a raw response body.

    Bodies that are not JSON objects are not an error; they produce an
    empty map without an identifier.

    :param raw_body: Raw response body
    :type raw_body: Union[str, bytes, None]
    :return: Flat map, identifier and projection timestamp
    :rtype: ProjectedResponse
    """
    received_at = datetime.now(timezone.utc)
    if not raw_body:
        return ProjectedResponse(received_at=received_at)

    try:
        parsed = json.loads(raw_body)
    except ValueError:
        logger.debug("Response body is not JSON; skipping projection")
        return ProjectedResponse(received_at=received_at)

    if not isinstance(parsed, dict):
        logger.debug("Response body is JSON %s, not an object", json_kind(parsed).value)
        return ProjectedResponse(received_at=received_at)

    data: Dict[str, str] = {key: stringify_value(value) for key, value in parsed.items()}
    return ProjectedResponse(
        data=data,
        identifier=extract_identifier(parsed),
        is_json=True,
        received_at=received_at,
    )
