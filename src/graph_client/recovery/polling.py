"""
Device authorization polling.

`obtain_device_access_token` polls the login status exactly once. This
module provides the caller-side loop: wait the device code's interval while
authorization is pending, back off further when the remote asks to slow
down, and stop on a token, a terminal error, or local expiry of the code.
"""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from ..errors import (
    DeviceTokenExpiredError,
    DeviceTokenPendingError,
    DeviceTokenSlowdownError,
    GraphClientError,
    InvalidArgumentError,
)
from ..types import AccessToken, DeviceCode

if TYPE_CHECKING:
    from ..client import GraphClient


logger = logging.getLogger(__name__)


class PollingAttemptsExceeded(GraphClientError):
    """Maximum polling attempts reached while authorization was still pending."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Device authorization still pending after {attempts} attempts", cause=last_error)


@dataclass
class PollingAttempt:
    """Information about one polling call."""
    attempt: int
    interval: float
    outcome: str = ""


class DevicePollingPolicy:
    """
    Polling policy for the device authorization flow.

    Pending errors are retried after `interval` seconds; slow-down errors
    widen the interval by `slowdown_increment` first. Every other error
    propagates unchanged.
    """

    def __init__(
        self,
        interval: float = 5.0,
        expires_in: Optional[float] = None,
        slowdown_increment: float = 5.0,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize polling policy.

        Args:
            interval: Seconds between polling calls
            expires_in: Lifetime of the device code in seconds, None for no local deadline
            slowdown_increment: Seconds added to the interval on each slow-down response
            max_attempts: Maximum number of polling calls, None for no limit
            sleep: Coroutine used to wait between calls
            clock: Monotonic clock used for the local deadline
        """
        if interval < 0:
            raise InvalidArgumentError("interval must not be negative")
        if slowdown_increment < 0:
            raise InvalidArgumentError("slowdown_increment must not be negative")
        if max_attempts is not None and max_attempts < 1:
            raise InvalidArgumentError("max_attempts must be at least 1")

        self.interval = interval
        self.expires_in = expires_in
        self.slowdown_increment = slowdown_increment
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._clock = clock

        # Statistics
        self.total_attempts = 0
        self.total_pending = 0
        self.total_slowdowns = 0
        self.attempts = []

    @classmethod
    def for_device_code(cls, device_code: DeviceCode, **kwargs: Any) -> DevicePollingPolicy:
        """Build a policy from the interval and lifetime of a device code."""
        kwargs.setdefault("interval", float(device_code.interval))
        kwargs.setdefault("expires_in", float(device_code.expires_in))
        return cls(**kwargs)

    async def execute(self, poll: Callable[[], Awaitable[AccessToken]]) -> AccessToken:
        """
        Call `poll` until it yields a token.

        Args:
            poll: Factory returning a fresh polling awaitable per call

        Returns:
            The issued access token

        Raises:
            DeviceTokenExpiredError: If the code expires locally or remotely
            PollingAttemptsExceeded: If max_attempts is reached while pending
        """
        interval = self.interval
        deadline = None if self.expires_in is None else self._clock() + self.expires_in
        attempt = 0

        while True:
            attempt += 1
            self.total_attempts += 1
            record = PollingAttempt(attempt=attempt, interval=interval)
            self.attempts.append(record)

            try:
                token = await poll()
            except DeviceTokenSlowdownError as e:
                interval += self.slowdown_increment
                self.total_slowdowns += 1
                record.outcome = "slowdown"
                last_error: Exception = e
                logger.info(f"Device polling asked to slow down, interval now {interval:.1f}s")
            except DeviceTokenPendingError as e:
                self.total_pending += 1
                record.outcome = "pending"
                last_error = e
                logger.debug(f"Device authorization pending (attempt {attempt})")
            else:
                record.outcome = "token"
                if attempt > 1:
                    logger.info(f"Device authorization completed on attempt {attempt}")
                return token

            if self.max_attempts is not None and attempt >= self.max_attempts:
                raise PollingAttemptsExceeded(attempt, last_error)

            if deadline is not None and self._clock() + interval >= deadline:
                raise DeviceTokenExpiredError(
                    "Device code expired before authorization completed", cause=last_error
                )

            await self._sleep(interval)

    def get_stats(self) -> Dict[str, Any]:
        """Get polling statistics."""
        return {
            "total_attempts": self.total_attempts,
            "total_pending": self.total_pending,
            "total_slowdowns": self.total_slowdowns,
            "interval": self.interval,
        }


async def poll_device_access_token(client: GraphClient, device_code: DeviceCode,
                                   **kwargs: Any) -> AccessToken:
    """
    Poll for the access token of a device code until authorization completes.

    Args:
        client: Client configured with an access token
        device_code: Result of `fetch_device_code`
        **kwargs: DevicePollingPolicy overrides

    Returns:
        The issued access token
    """
    policy = DevicePollingPolicy.for_device_code(device_code, **kwargs)
    return await policy.execute(lambda: client.obtain_device_access_token(device_code.code))


__all__ = [
    "DevicePollingPolicy",
    "PollingAttempt",
    "PollingAttemptsExceeded",
    "poll_device_access_token",
]
