"""
chatbridge - Multi-platform chat bot gateway

Normalizes updates from chat platforms into one domain model and republishes
them as platform-agnostic events for downstream processing.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("chatbridge")
except PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "__version__",
]
