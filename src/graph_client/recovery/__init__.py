"""
Caller-side recovery helpers for the Graph API client.

Provides the polling loop for the device authorization flow.
"""

from .polling import DevicePollingPolicy, PollingAttempt, PollingAttemptsExceeded, poll_device_access_token

__all__ = [
    "DevicePollingPolicy",
    "PollingAttempt",
    "PollingAttemptsExceeded",
    "poll_device_access_token",
]
