"""Multi-platform messaging integration for chatbridge.

Architecture:
    BotClient (native SDK) → PlatformAdapter → EventBridge → subscribers

Key Components:
    - BotClient: Narrow capability interface over a platform SDK
    - PlatformAdapter: Lifecycle, normalization, access control and sends
    - PlatformManager: Starts and stops the configured adapters
"""

from chatbridge.platforms.client import BotClient, BotCommand, DeliveryMode, UpdateKind
from chatbridge.platforms.manager import ADAPTER_REGISTRY, PlatformManager
from chatbridge.platforms.protocol import AdapterState, PlatformAdapter

__all__ = [
    "ADAPTER_REGISTRY",
    "AdapterState",
    "BotClient",
    "BotCommand",
    "DeliveryMode",
    "PlatformAdapter",
    "PlatformManager",
    "UpdateKind",
]
