"""REST resource client models package.

This package contains the Pydantic models and JSON value classification
used throughout the client.
"""

from .base_models import (
    DEFAULT_TOKEN_HEADER,
    DEFAULT_USER_AGENT,
    HTTP_METHODS,
    ClientConfig,
    DiffKind,
    DriftReport,
    FieldDiff,
    ProjectedResponse,
    QueryResult,
    RequestSpec,
    ResourceState,
)
from .json_values import JsonKind, is_whole_number, json_kind

__all__ = [
    "DEFAULT_TOKEN_HEADER",
    "DEFAULT_USER_AGENT",
    "HTTP_METHODS",
    # Client models
    "ClientConfig",
    "RequestSpec",
    # Drift models
    "DiffKind",
    "DriftReport",
    "FieldDiff",
    # Response models
    "ProjectedResponse",
    "QueryResult",
    # Resource models
    "ResourceState",
    # JSON values
    "JsonKind",
    "json_kind",
    "is_whole_number",
]
