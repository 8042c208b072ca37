"""Drift detection between expected and observed resource bodies.

Drift detection is one-directional: every field of the expected body
must still hold in the observed body, while fields that only the server
returns are never reported. Server-managed metadata (identifiers,
timestamps, versions, audit fields, links) is ignored through a flat
set of field names that applies at every nesting depth.

Detection is advisory. Nothing in this module raises on malformed
input; callers log the report and carry on.
"""

import json
import logging
from typing import Any, Iterable, List, Mapping, Optional, Set, Union

from ..models import DiffKind, DriftReport, FieldDiff, JsonKind, json_kind

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FIELDS = frozenset(
    {
        # Identifiers
        "id",
        "uuid",
        "guid",
        # Timestamps
        "created",
        "created_at",
        "created_on",
        "creation_time",
        "updated",
        "updated_at",
        "updated_on",
        "modified",
        "modified_at",
        "last_modified",
        "timestamp",
        # camelCase timestamp variants
        "createdAt",
        "updatedAt",
        "modifiedAt",
        "lastModified",
        "creationTimestamp",
        # Versioning
        "etag",
        "version",
        "revision",
        "resource_version",
        "resourceVersion",
        # Audit fields
        "created_by",
        "updated_by",
        "modified_by",
        "owner_id",
        "createdBy",
        "updatedBy",
        "modifiedBy",
        # Underscore-prefixed metadata
        "_id",
        "_version",
        "_rev",
        "_etag",
        "_created",
        "_updated",
        "_links",
        "_meta",
        "_embedded",
        # Links and metadata
        "links",
        "self",
        "href",
        "meta",
    }
)

JsonBody = Union[str, bytes, None]


def effective_ignore_fields(user_fields: Optional[Iterable[str]] = None) -> Set[str]:
    """Return the default ignore set merged with ``user_fields``."""
    fields = set(DEFAULT_IGNORE_FIELDS)
    if user_fields:
        fields.update(f for f in user_fields if f)
    return fields


def values_equal(expected: Any, observed: Any) -> bool:
    """Compare two decoded JSON values.

    Numbers compare by value, so ``1`` equals ``1.0``. Booleans never
    equal numbers. Objects and arrays compare element-wise with the same
    rules; any other kind mismatch is inequality.

    :param expected: Expected value
    :type expected: Any
    :param observed: Observed value
    :type observed: Any
    :return: Whether both values are equivalent
    :rtype: bool
    """
    try:
        kind = json_kind(expected)
        other = json_kind(observed)
    except TypeError:
        return expected == observed
    if kind is not other:
        return False

    if kind is JsonKind.NUMBER:
        # Large integers lose precision as floats
        if isinstance(expected, int) and isinstance(observed, int):
            return expected == observed
        return float(expected) == float(observed)
    if kind is JsonKind.OBJECT:
        if expected.keys() != observed.keys():
            return False
        return all(values_equal(v, observed[k]) for k, v in expected.items())
    if kind is JsonKind.ARRAY:
        if len(expected) != len(observed):
            return False
        return all(values_equal(a, b) for a, b in zip(expected, observed))
    return expected == observed


def _walk(
    expected: Mapping[str, Any],
    observed: Mapping[str, Any],
    ignore: Set[str],
    prefix: str,
    diffs: List[FieldDiff],
) -> None:
    for key, expected_value in expected.items():
        if key in ignore:
            continue
        path = f"{prefix}.{key}" if prefix else key

        if key not in observed:
            diffs.append(
                FieldDiff(path=path, kind=DiffKind.MISSING, expected=expected_value)
            )
            continue

        observed_value = observed[key]
        try:
            nested = json_kind(expected_value) is JsonKind.OBJECT
        except TypeError:
            nested = False
        if nested and isinstance(observed_value, dict):
            _walk(expected_value, observed_value, ignore, path, diffs)
        elif not values_equal(expected_value, observed_value):
            diffs.append(
                FieldDiff(
                    path=path,
                    kind=DiffKind.CHANGED,
                    expected=expected_value,
                    observed=observed_value,
                )
            )


def detect_drift(
    expected: Mapping[str, Any],
    observed: Mapping[str, Any],
    ignore_fields: Optional[Iterable[str]] = None,
) -> DriftReport:
    """Compare an expected object against an observed one.

    Keys listed in the default ignore set or in ``ignore_fields`` are
    skipped at every depth. Keys present only in ``observed`` are not
    drift.

    :param expected: Expected JSON object
    :type expected: Mapping[str, Any]
    :param observed: Observed JSON object
    :type observed: Mapping[str, Any]
    :param ignore_fields: Additional field names to ignore
    :type ignore_fields: Optional[Iterable[str]]
    :return: Drift report with one diff per drifted field
    :rtype: DriftReport

    Examples
    --------
    .. code-block:: python

        report = detect_drift({"name": "John"}, {"name": "Jane", "id": "1"})
        assert report.drift_detected
        assert report.paths == ["name"]
    """
    diffs: List[FieldDiff] = []
    _walk(expected, observed, effective_ignore_fields(ignore_fields), "", diffs)
    return DriftReport(drift_detected=bool(diffs), diffs=diffs)


def _as_text(body: JsonBody) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def _parse_object(body: JsonBody) -> Optional[dict]:
    text = _as_text(body)
    if not text.strip():
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def detect_body_drift(
    expected_body: JsonBody,
    observed_body: JsonBody,
    ignore_fields: Optional[Iterable[str]] = None,
) -> DriftReport:
    """Compare two raw bodies, structurally when the expected one is JSON.

    When the expected body is not a JSON object the bodies are compared
    as strings. When the expected body is an object but the observed one
    is not, the whole body is reported as drifted.

    :param expected_body: Expected body (configured payload)
    :type expected_body: Union[str, bytes, None]
    :param observed_body: Observed body (server response)
    :type observed_body: Union[str, bytes, None]
    :param ignore_fields: Additional field names to ignore
    :type ignore_fields: Optional[Iterable[str]]
    :return: Drift report
    :rtype: DriftReport
    """
    expected = _parse_object(expected_body)
    if expected is None:
        expected_text = _as_text(expected_body)
        observed_text = _as_text(observed_body)
        if expected_text == observed_text:
            return DriftReport()
        return DriftReport(
            drift_detected=True,
            diffs=[
                FieldDiff(
                    path="",
                    kind=DiffKind.BODY,
                    expected=expected_text,
                    observed=observed_text,
                )
            ],
        )

    observed = _parse_object(observed_body)
    if observed is None:
        logger.debug("Observed body is not a JSON object; reporting whole-body drift")
        return DriftReport(
            drift_detected=True,
            diffs=[
                FieldDiff(
                    path="",
                    kind=DiffKind.BODY,
                    expected=expected,
                    observed=_as_text(observed_body),
                )
            ],
        )
    return detect_drift(expected, observed, ignore_fields)


class DriftPolicy:
    """Whether drift detection runs and which fields it ignores.

    :param enabled: Run detection at all
    :type enabled: bool
    :param ignore_fields: User-supplied field names, merged with the defaults
    :type ignore_fields: Optional[Iterable[str]]
    """

    def __init__(self, enabled: bool = True, ignore_fields: Optional[Iterable[str]] = None):
        self.enabled = enabled
        self.user_ignore_fields = frozenset(ignore_fields or ())

    @property
    def ignore_fields(self) -> Set[str]:
        return effective_ignore_fields(self.user_ignore_fields)

    def check(self, expected_body: JsonBody, observed_body: JsonBody) -> DriftReport:
        """Run detection for two raw bodies; disabled policies report no drift."""
        if not self.enabled:
            return DriftReport()
        report = detect_body_drift(expected_body, observed_body, self.user_ignore_fields)
        if report.drift_detected:
            logger.warning(
                "Drift detected in %d field(s): %s",
                len(report.diffs),
                ", ".join(p or "<body>" for p in report.paths),
            )
        return report
