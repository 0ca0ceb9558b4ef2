# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""Exception hierarchy for the Sellsy API client."""

from typing import Any, Optional


class SellsyError(Exception):
    """Base exception for Sellsy client errors"""
    pass


class ConfigError(SellsyError):
    """Configuration or credentials could not be loaded"""
    pass


class TransportError(SellsyError):
    """Network or HTTP failure below the API envelope."""
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AuthenticationError(SellsyError):
    """OAuth rejection reported by the service (oauth_problem=...)"""
    def __init__(self, body: str):
        self.body = body
        super().__init__(f"OAuth authentication failed: {body}")


class MalformedResponseError(SellsyError):
    """Response is not a valid API envelope"""
    def __init__(self, message: str, body: Optional[str] = None):
        self.body = body
        super().__init__(message)


class ApiError(SellsyError):
    """Application-level error reported by the service."""
    def __init__(self, message: str, code: Any, more: Any = None):
        self.message = message
        self.code = code
        self.more = more
        super().__init__(f"Sellsy error {code}: {message}" if message else f"Sellsy error {code}")


class UnknownApiError(SellsyError):
    """Failure status without a usable error object"""
    def __init__(self, body: Optional[str] = None):
        self.body = body
        super().__init__("Unknown Sellsy error")
