"""HTTP method and status-code policies for resource operations.

Each CRUD operation has a hardcoded default method. A resource may
override it per operation, or through the legacy shared ``method`` field
when that method makes sense for the operation. Status handling is kept
separate from the executor: the executor returns every non-retryable
response, and :class:`StatusPolicy` decides which ones are failures.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from ..exceptions import APIError, ValidationError
from ..models import HTTP_METHODS


class Operation(str, Enum):
    """Resource lifecycle operations."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


DEFAULT_METHODS: Dict[Operation, str] = {
    Operation.CREATE: "POST",
    Operation.READ: "GET",
    Operation.UPDATE: "PUT",
    Operation.DELETE: "DELETE",
}

# Methods the legacy shared field may select for each operation
LEGACY_METHODS: Dict[Operation, FrozenSet[str]] = {
    Operation.CREATE: frozenset({"POST", "PUT", "PATCH"}),
    Operation.READ: frozenset({"GET"}),
    Operation.UPDATE: frozenset({"PUT", "PATCH", "POST"}),
    Operation.DELETE: frozenset({"DELETE", "POST"}),
}

DEFAULT_EXPECTED_STATUS: Dict[Operation, FrozenSet[int]] = {
    Operation.CREATE: frozenset({200, 201, 202}),
    Operation.READ: frozenset({200}),
    Operation.UPDATE: frozenset({200, 201, 202, 204}),
    Operation.DELETE: frozenset({200, 202, 204}),
}


def _normalize(method: Optional[str]) -> Optional[str]:
    if method is None or not method.strip():
        return None
    return method.strip().upper()


def resolve_method(
    operation: Operation,
    explicit: Optional[str] = None,
    legacy: Optional[str] = None,
    default: Optional[str] = None,
) -> str:
    """Pick the HTTP method for ``operation``.

    Precedence is the explicit per-operation override, then the legacy
    shared method if it is valid for this operation, then ``default``
    (or the operation's hardcoded default). A legacy method that does not
    fit the operation is ignored rather than rejected.

    :param operation: Operation being performed
    :type operation: Operation
    :param explicit: Per-operation method override
    :type explicit: Optional[str]
    :param legacy: Legacy shared method field
    :type legacy: Optional[str]
    :param default: Fallback method
    :type default: Optional[str]
    :return: Upper-case HTTP method
    :rtype: str
    :raises ValidationError: If the explicit override is not an HTTP method

    Examples
    --------
    .. code-block:: python

        resolve_method(Operation.UPDATE, explicit="patch")   # "PATCH"
        resolve_method(Operation.UPDATE, legacy="POST")      # "POST"
        resolve_method(Operation.READ, legacy="POST")        # "GET"
    """
    method = _normalize(explicit)
    if method is not None:
        if method not in HTTP_METHODS:
            raise ValidationError(
                f"Unsupported HTTP method for {operation.value}",
                field=f"{operation.value}_method",
                value=explicit,
            )
        return method

    method = _normalize(legacy)
    if method is not None and method in LEGACY_METHODS[operation]:
        return method

    return _normalize(default) or DEFAULT_METHODS[operation]


class StatusPolicy:
    """Which status codes count as success for each operation.

    :param expected: Per-operation expected status codes, replacing the
                     defaults for the operations it names
    :type expected: Optional[Dict[Operation, Iterable[int]]]
    :param fail_on_status: Codes that always fail, even when expected
    :type fail_on_status: Iterable[int]
    :param retry_on_status: Extra retryable codes passed to the executor
    :type retry_on_status: Iterable[int]
    """

    def __init__(
        self,
        expected: Optional[Dict[Operation, Iterable[int]]] = None,
        fail_on_status: Iterable[int] = (),
        retry_on_status: Iterable[int] = (),
    ):
        self.expected: Dict[Operation, FrozenSet[int]] = dict(DEFAULT_EXPECTED_STATUS)
        for operation, codes in (expected or {}).items():
            self.expected[Operation(operation)] = frozenset(codes)
        self.fail_on_status = frozenset(fail_on_status)
        self.retry_on_status = frozenset(retry_on_status)

    def is_acceptable(self, operation: Operation, status_code: int) -> bool:
        if status_code in self.fail_on_status:
            return False
        return status_code in self.expected[operation]

    def check(self, operation: Operation, status_code: int, body: str = "") -> None:
        """Raise :class:`APIError` when ``status_code`` is not acceptable."""
        if self.is_acceptable(operation, status_code):
            return
        if status_code in self.fail_on_status:
            message = f"{operation.value} received fail-on status code {status_code}"
        else:
            expected = ", ".join(str(c) for c in sorted(self.expected[operation]))
            message = (
                f"{operation.value} received unexpected status code {status_code} "
                f"(expected {expected})"
            )
        raise APIError(message, status_code=status_code, response_body=body)


def parse_import_id(import_id: str) -> Tuple[str, str]:
    """Split an ``endpoint/name`` import identifier.

    The identifier is split on its last ``/``; the endpoint always gets a
    leading slash.

    :param import_id: Identifier such as ``/api/users/john``
    :type import_id: str
    :return: ``(endpoint, name)``, e.g. ``("/api/users", "john")``
    :rtype: Tuple[str, str]
    :raises ValidationError: If either part is empty
    """
    value = (import_id or "").strip()
    endpoint, sep, name = value.rpartition("/")
    endpoint = endpoint.strip("/")
    if not sep or not endpoint or not name:
        raise ValidationError(
            "Import ID must have the form 'endpoint/name'",
            field="import_id",
            value=import_id,
        )
    return f"/{endpoint}", name
