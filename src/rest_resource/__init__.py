"""REST resource client package.

This package provides a generic client for managing resources behind
arbitrary REST endpoints. It includes TLS/credential assembly, an HTTP
executor with retry and exponential backoff, JSON response projection,
and drift detection between expected and observed resource bodies.

:var __version__: Current package version
:type __version__: str
"""

__version__ = "0.1.0"
