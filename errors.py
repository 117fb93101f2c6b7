"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

CREDENTIAL_ERROR = "CREDENTIAL_ERROR"
DEVICE_ERROR = "DEVICE_ERROR"
CONNECTION_ERROR = "CONNECTION_ERROR"
STREAM_ERROR = "STREAM_ERROR"
ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"

ERROR_MESSAGES = {
    CREDENTIAL_ERROR: "Could not obtain a speech access token.",
    DEVICE_ERROR: "Microphone is unavailable or permission was denied.",
    CONNECTION_ERROR: "Could not connect to the speech service, please retry.",
    STREAM_ERROR: "Speech service stopped unexpectedly.",
    ELEMENT_NOT_FOUND: "Highlight target is not on the page.",
}

# Codes that mean the session never started (as opposed to a runtime stop).
START_FAILURES = frozenset({CREDENTIAL_ERROR, DEVICE_ERROR, CONNECTION_ERROR})


class VoiceSessionError(Exception):
    code = STREAM_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES[self.code])


class CredentialError(VoiceSessionError):
    code = CREDENTIAL_ERROR


class DeviceError(VoiceSessionError):
    code = DEVICE_ERROR


class StreamConnectionError(VoiceSessionError, ConnectionError):
    code = CONNECTION_ERROR


class ElementNotFound(VoiceSessionError, LookupError):
    code = ELEMENT_NOT_FOUND
