"""Youth Employment Platform API server.

Exposes the package version; the ASGI app lives in ``youth_api.main`` and the
process entrypoint in ``youth_api.bootstrap``.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("youth-employment-platform")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
