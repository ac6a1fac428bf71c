"""
Tests for the device authorization polling loop.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from graph_client.errors import (
    DeviceTokenDeniedError,
    DeviceTokenExpiredError,
    DeviceTokenPendingError,
    DeviceTokenSlowdownError,
    InvalidArgumentError,
)
from graph_client.recovery import DevicePollingPolicy, PollingAttemptsExceeded, poll_device_access_token
from graph_client.types import AccessToken, DeviceCode


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def outcomes(*results):
    """Polling factory returning each result (or raising each error) in turn."""
    results = list(results)

    async def poll():
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    return Mock(side_effect=poll)


TOKEN = AccessToken(access_token="device-token")


class TestDevicePollingPolicy:
    """Test polling policy behavior."""

    @pytest.mark.asyncio
    async def test_immediate_token(self):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=5, sleep=clock.sleep, clock=clock)

        assert await policy.execute(outcomes(TOKEN)) is TOKEN
        assert clock.sleeps == []
        assert policy.total_attempts == 1

    @pytest.mark.asyncio
    async def test_pending_waits_interval(self):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=5, sleep=clock.sleep, clock=clock)
        poll = outcomes(DeviceTokenPendingError("pending"), DeviceTokenPendingError("pending"), TOKEN)

        assert await policy.execute(poll) is TOKEN
        assert clock.sleeps == [5, 5]
        assert poll.call_count == 3
        assert policy.get_stats()["total_pending"] == 2

    @pytest.mark.asyncio
    async def test_slowdown_widens_interval(self):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=5, slowdown_increment=5, sleep=clock.sleep, clock=clock)
        poll = outcomes(
            DeviceTokenSlowdownError("slow down"),
            DeviceTokenPendingError("pending"),
            TOKEN,
        )

        await policy.execute(poll)

        assert clock.sleeps == [10, 10]
        assert policy.total_slowdowns == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        DeviceTokenExpiredError("expired"),
        DeviceTokenDeniedError("denied"),
        ValueError("unexpected"),
    ])
    async def test_terminal_errors_propagate(self, error):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=5, sleep=clock.sleep, clock=clock)

        with pytest.raises(type(error)):
            await policy.execute(outcomes(DeviceTokenPendingError("pending"), error))

        assert clock.sleeps == [5]

    @pytest.mark.asyncio
    async def test_local_expiry(self):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=5, expires_in=12, sleep=clock.sleep, clock=clock)
        poll = outcomes(*[DeviceTokenPendingError("pending") for _ in range(5)])

        with pytest.raises(DeviceTokenExpiredError) as exc_info:
            await policy.execute(poll)

        assert clock.sleeps == [5, 5]
        assert poll.call_count == 3
        assert isinstance(exc_info.value.cause, DeviceTokenPendingError)

    @pytest.mark.asyncio
    async def test_max_attempts(self):
        clock = FakeClock()
        policy = DevicePollingPolicy(interval=1, max_attempts=2, sleep=clock.sleep, clock=clock)

        with pytest.raises(PollingAttemptsExceeded) as exc_info:
            await policy.execute(outcomes(DeviceTokenPendingError("p"), DeviceTokenPendingError("p")))

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.last_error, DeviceTokenPendingError)

    @pytest.mark.parametrize("kwargs", [
        {"interval": -1},
        {"slowdown_increment": -1},
        {"max_attempts": 0},
    ])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(InvalidArgumentError):
            DevicePollingPolicy(**kwargs)

    def test_for_device_code(self):
        device_code = DeviceCode(code="c", user_code="u", verification_uri="https://v", expires_in=420, interval=7)

        policy = DevicePollingPolicy.for_device_code(device_code)

        assert policy.interval == 7.0
        assert policy.expires_in == 420.0


class TestPollDeviceAccessToken:
    """Test the client-level polling helper."""

    @pytest.mark.asyncio
    async def test_polls_with_device_code(self):
        clock = FakeClock()
        client = Mock()
        client.obtain_device_access_token = Mock(side_effect=[
            AsyncMock(side_effect=DeviceTokenPendingError("pending"))(),
            AsyncMock(return_value=TOKEN)(),
        ])
        device_code = DeviceCode(code="c0de", user_code="u", verification_uri="https://v", expires_in=60, interval=3)

        token = await poll_device_access_token(client, device_code, sleep=clock.sleep, clock=clock)

        assert token is TOKEN
        assert clock.sleeps == [3.0]
        client.obtain_device_access_token.assert_called_with("c0de")
        assert client.obtain_device_access_token.call_count == 2

    @pytest.mark.asyncio
    async def test_end_to_end_with_stub_transport(self, client, transport):
        clock = FakeClock()
        pending = {"error": {"message": "pending", "type": "OAuthException", "code": 31, "error_subcode": 1349174}}
        transport.queue(400, pending)
        transport.queue(400, pending)
        transport.queue(200, {"access_token": "device-token"})
        device_code = DeviceCode(code="c0de", user_code="u", verification_uri="https://v", expires_in=60, interval=5)

        token = await poll_device_access_token(client, device_code, sleep=clock.sleep, clock=clock)

        assert token.access_token == "device-token"
        assert len(transport.requests) == 3
        assert clock.sleeps == [5.0, 5.0]
