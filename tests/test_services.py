"""
Tests for the ServiceRunner base class.
"""

import pytest

from intelligent_alerts.services import ServiceRunner


class IdleService(ServiceRunner):
    """Runner whose body returns immediately."""

    @property
    def service_name(self) -> str:
        return "idle-service"

    async def _run(self) -> None:
        return None


class TestServiceRunner:
    """Test cases for ServiceRunner."""

    @pytest.mark.asyncio
    async def test_connect_storage_without_config_raises(self):
        runner = IdleService()

        with pytest.raises(RuntimeError, match="Configuration not loaded"):
            await runner._connect_storage()

        assert runner.postgres_client is None
        assert runner.redis_client is None

    def test_request_shutdown_sets_event(self):
        runner = IdleService()

        runner.request_shutdown()
        runner.request_shutdown()

        assert runner.shutdown_event.is_set()
