# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
Sellsy Python SDK - OAuth-signed calls to the Sellsy API

Data directory: ~/.sellsy (override with SELLSY_DATA)

Usage:
    from sellsy import SellsyClient

    with SellsyClient.from_env() as client:
        infos = client.call("Infos.getInfos")
        future = client.call_async("Client.getList", {"pagination": {"nbperpage": 10}})
        clients = future.result()
"""

from .client import (
    # Main client
    SellsyClient,

    # Configuration
    ClientConfig,
    load_config,
    load_credentials,
    DEFAULT_ENDPOINT,
)
from .oauth import Credentials, build_auth_header, build_headers
from .envelope import encode_request, decode_response
from .transport import Transport, RequestsTransport, CallFuture, CallState
from .activity import (
    ActivityLogger,
    NullActivityLogger,
    StreamActivityLogger,
    FileActivityLogger,
    LoguruActivityLogger,
)
from .errors import (
    SellsyError,
    ConfigError,
    TransportError,
    AuthenticationError,
    MalformedResponseError,
    ApiError,
    UnknownApiError,
)

__version__ = "0.1.0"
__all__ = [
    # Main client
    "SellsyClient",

    # Configuration
    "ClientConfig",
    "load_config",
    "load_credentials",
    "DEFAULT_ENDPOINT",

    # Signing and envelope
    "Credentials",
    "build_auth_header",
    "build_headers",
    "encode_request",
    "decode_response",

    # Transport
    "Transport",
    "RequestsTransport",
    "CallFuture",
    "CallState",

    # Activity log
    "ActivityLogger",
    "NullActivityLogger",
    "StreamActivityLogger",
    "FileActivityLogger",
    "LoguruActivityLogger",

    # Exceptions
    "SellsyError",
    "ConfigError",
    "TransportError",
    "AuthenticationError",
    "MalformedResponseError",
    "ApiError",
    "UnknownApiError",
]
