"""Unit tests for the platform manager."""

from unittest.mock import Mock

import pytest

from chatbridge.audit.logger import AuditLogger
from chatbridge.config.schema import Config, TelegramConfig
from chatbridge.core.events import EventBridge
from chatbridge.platforms.adapters.telegram import TelegramAdapter
from chatbridge.platforms.manager import PlatformManager
from chatbridge.platforms.protocol import AdapterState


def enabled_config(**telegram) -> Config:
    settings = {"enable": True, "bot_token": "123:ABC", **telegram}
    return Config.model_validate({"platforms": {"telegram": settings}})


class TestPlatformManager:
    """Test PlatformManager functionality."""

    def test_from_config_skips_disabled(self, bridge: EventBridge) -> None:
        manager = PlatformManager.from_config(Config(), bridge)
        assert manager.adapters == {}

    def test_from_config_builds_enabled(self, bridge: EventBridge) -> None:
        manager = PlatformManager.from_config(enabled_config(), bridge)

        adapter = manager.get_adapter("telegram")
        assert isinstance(adapter, TelegramAdapter)
        assert adapter.state == AdapterState.UNINITIALIZED
        assert manager.get_adapter("discord") is None

    def test_from_config_platform_filter(self, bridge: EventBridge) -> None:
        manager = PlatformManager.from_config(enabled_config(), bridge, platforms=["discord"])
        assert manager.adapters == {}

    def test_register_duplicate(self, bridge: EventBridge, telegram_config: TelegramConfig) -> None:
        manager = PlatformManager(bridge)
        manager.register_adapter(TelegramAdapter(telegram_config, bridge))

        with pytest.raises(ValueError, match="already registered"):
            manager.register_adapter(TelegramAdapter(telegram_config, bridge))

    @pytest.mark.asyncio
    async def test_start_and_stop(self, bridge: EventBridge, fake_client) -> None:
        audit = Mock(spec=AuditLogger)
        manager = PlatformManager.from_config(
            enabled_config(),
            bridge,
            audit_logger=audit,
            client_factories={"telegram": lambda config: fake_client},
        )

        await manager.start()

        assert manager.is_running
        assert manager.active_platforms == ["telegram"]
        assert fake_client.launched is not None
        audit.log_system_start.assert_called_once_with(["telegram"])

        await manager.stop()

        assert not manager.is_running
        assert manager.active_platforms == []
        assert fake_client.stopped
        audit.log_system_stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_adapter_is_skipped(self, bridge: EventBridge, fake_client) -> None:
        fake_client.fail_launch = RuntimeError("Unauthorized")
        manager = PlatformManager.from_config(
            enabled_config(),
            bridge,
            client_factories={"telegram": lambda config: fake_client},
        )

        await manager.start()

        assert manager.is_running
        assert manager.active_platforms == []
        assert manager.get_adapter("telegram").state == AdapterState.INITIALIZED

    @pytest.mark.asyncio
    async def test_start_twice_and_stop_unstarted(self, bridge: EventBridge, fake_client) -> None:
        manager = PlatformManager.from_config(
            enabled_config(),
            bridge,
            client_factories={"telegram": lambda config: fake_client},
        )

        await manager.stop()
        assert not manager.is_running

        await manager.start()
        await manager.start()
        assert manager.active_platforms == ["telegram"]
        await manager.stop()
