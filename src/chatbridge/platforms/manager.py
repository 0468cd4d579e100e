"""Platform manager: owns the configured adapters and their lifecycle."""

import logging
from typing import Optional

from chatbridge.audit.logger import AuditLogger
from chatbridge.config.schema import Config, PlatformAdapterConfig
from chatbridge.core.events import EventBridge
from chatbridge.platforms.adapters.telegram import TelegramAdapter
from chatbridge.platforms.protocol import ClientFactory, PlatformAdapter

logger = logging.getLogger(__name__)

# Configuration section name -> adapter class
ADAPTER_REGISTRY: dict[str, type[PlatformAdapter]] = {
    "telegram": TelegramAdapter,
}


class PlatformManager:
    """Starts and stops a set of platform adapters sharing one event bridge.

    A failing adapter never takes the others down: initialization and start
    errors are logged and that platform is skipped.
    """

    def __init__(self, bridge: EventBridge, audit_logger: Optional[AuditLogger] = None) -> None:
        """Initialize the manager.

        Args:
            bridge: Event bridge shared by all adapters
            audit_logger: Optional audit log for system start/stop events
        """
        self.bridge = bridge
        self._audit = audit_logger
        self._adapters: dict[str, PlatformAdapter] = {}
        self._running = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        bridge: EventBridge,
        audit_logger: Optional[AuditLogger] = None,
        platforms: Optional[list[str]] = None,
        client_factories: Optional[dict[str, ClientFactory]] = None,
    ) -> "PlatformManager":
        """Build a manager with one adapter per enabled platform.

        Args:
            config: Root configuration
            bridge: Event bridge shared by all adapters
            audit_logger: Optional audit log passed to every adapter
            platforms: Restrict to these platform names
            client_factories: Per-platform native client factories

        Returns:
            Manager with the adapters registered (not yet started)
        """
        manager = cls(bridge, audit_logger=audit_logger)
        client_factories = client_factories or {}

        for name in config.platforms.enabled_platforms():
            if platforms is not None and name not in platforms:
                continue

            adapter_cls = ADAPTER_REGISTRY.get(name)
            if adapter_cls is None:
                logger.warning(f"No adapter available for platform: {name}")
                continue

            platform_config: PlatformAdapterConfig = getattr(config.platforms, name)
            manager.register_adapter(
                adapter_cls(
                    platform_config,
                    bridge,
                    client_factory=client_factories.get(name),
                    audit_logger=audit_logger,
                )
            )

        return manager

    def register_adapter(self, adapter: PlatformAdapter) -> None:
        """Register a platform adapter.

        Raises:
            ValueError: If an adapter for this platform is already registered
        """
        platform_name = adapter.platform.value
        if platform_name in self._adapters:
            raise ValueError(f"Adapter for {platform_name} already registered")

        self._adapters[platform_name] = adapter
        logger.info(f"Registered adapter for platform: {platform_name}")

    def get_adapter(self, platform_name: str) -> Optional[PlatformAdapter]:
        """Get an adapter by platform name, or None if not registered."""
        return self._adapters.get(platform_name)

    @property
    def adapters(self) -> dict[str, PlatformAdapter]:
        return dict(self._adapters)

    @property
    def is_running(self) -> bool:
        """Check if the manager has been started."""
        return self._running

    @property
    def active_platforms(self) -> list[str]:
        """Names of platforms whose adapter is currently running."""
        return [name for name, adapter in self._adapters.items() if adapter.is_running]

    async def start(self) -> None:
        """Initialize and start every registered adapter."""
        if self._running:
            logger.warning("Platform manager is already running")
            return

        self._running = True
        for platform_name, adapter in self._adapters.items():
            try:
                await adapter.initialize()
                await adapter.start()
                logger.info(f"Started adapter for {platform_name}")
            except Exception as e:
                logger.error(f"Failed to start adapter for {platform_name}: {e}")

        active = self.active_platforms
        if self._audit:
            self._audit.log_system_start(active)
        logger.info(f"Platform manager started with {len(active)} of {len(self._adapters)} adapters")

    async def stop(self) -> None:
        """Stop every running adapter."""
        if not self._running:
            logger.warning("Platform manager is not running")
            return

        for platform_name, adapter in self._adapters.items():
            try:
                await adapter.stop()
            except Exception as e:
                logger.error(f"Failed to stop adapter for {platform_name}: {e}")

        self._running = False
        if self._audit:
            self._audit.log_system_stop()
            self._audit.flush()
        logger.info("Platform manager stopped")
