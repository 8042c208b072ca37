"""Resource lifecycle adapter built on the REST client.

:var __all__: List of public exports from this module
:type __all__: List[str]
"""

from .manager import ResourceManager
from .methods import (
    DEFAULT_EXPECTED_STATUS,
    DEFAULT_METHODS,
    Operation,
    StatusPolicy,
    parse_import_id,
    resolve_method,
)

__all__ = [
    "ResourceManager",
    "DEFAULT_EXPECTED_STATUS",
    "DEFAULT_METHODS",
    "Operation",
    "StatusPolicy",
    "parse_import_id",
    "resolve_method",
]
