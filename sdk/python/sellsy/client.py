# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
Sellsy API client.

Data directory (default: ~/.sellsy):
    ~/.sellsy/
    └── config.yaml          # Connection settings and (optionally) tokens

Example config.yaml:
    endpoint: https://apifeed.sellsy.com/0/
    timeout: 90
    max_workers: 4
    activity_log: loguru      # loguru | stdout | off | /path/to/file.log
    credentials:
      user_token: ...
      user_secret: ...
      consumer_token: ...
      consumer_secret: ...

Environment variables SELLSY_USER_TOKEN, SELLSY_USER_SECRET,
SELLSY_CONSUMER_TOKEN, SELLSY_CONSUMER_SECRET and SELLSY_ENDPOINT take
precedence over the file.

Usage:
    from sellsy import SellsyClient

    with SellsyClient.from_env() as client:
        infos = client.call("Infos.getInfos")

        future = client.call_async("Client.getList", {"pagination": {"nbperpage": 10}})
        clients = future.result()
"""

import json
import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from .activity import ActivityLogger, LoguruActivityLogger, activity_logger_for
from .envelope import decode_response, encode_request, serialize_do_in
from .errors import ConfigError, SellsyError
from .oauth import Credentials, build_headers
from .transport import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_TIMEOUT,
    CallFuture,
    RequestsTransport,
    Transport,
)


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

DEFAULT_ENDPOINT = "https://apifeed.sellsy.com/0/"

# Default data directory (like ~/.aws, ~/.docker, ~/.kube)
DEFAULT_DATA_DIR = "~/.sellsy"

ENV_PREFIX = "SELLSY_"

CREDENTIAL_FIELDS = ("user_token", "user_secret", "consumer_token", "consumer_secret")


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

@dataclass
class ClientConfig:
    """Client configuration loaded from config.yaml"""
    endpoint: str = DEFAULT_ENDPOINT
    timeout: Optional[float] = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    activity_log: Optional[str] = None
    credentials: Optional[Dict[str, str]] = None


def _coerce(value, kind, name: str, allow_none: bool = False):
    if value is None and allow_none:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def load_config(data_dir: str) -> ClientConfig:
    """
    Load client configuration from data_dir/config.yaml.

    Args:
        data_dir: Path to data directory

    Returns:
        ClientConfig with values from file, defaults for missing fields

    Raises:
        ConfigError: If the file exists but cannot be read or parsed
    """
    import yaml

    config_path = os.path.join(data_dir, "config.yaml")
    config = ClientConfig()

    if not os.path.exists(config_path):
        return config

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    if data.get("endpoint"):
        config.endpoint = data["endpoint"]
    if "timeout" in data:
        config.timeout = _coerce(data["timeout"], float, "timeout", allow_none=True)
    if "max_workers" in data:
        config.max_workers = _coerce(data["max_workers"], int, "max_workers")
        if config.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {config.max_workers}")
    if "activity_log" in data:
        config.activity_log = data["activity_log"]

    if data.get("credentials"):
        creds = data["credentials"]
        if not isinstance(creds, dict):
            raise ConfigError("credentials must be a mapping")
        config.credentials = {k: str(v) for k, v in creds.items() if k in CREDENTIAL_FIELDS}

    return config


def load_credentials(config: Optional[ClientConfig] = None) -> Credentials:
    """
    Resolve OAuth tokens: environment variables first, then config.yaml.

    Raises:
        ConfigError: If any of the four tokens is missing
    """
    from_file = (config.credentials if config else None) or {}
    values = {}
    for name in CREDENTIAL_FIELDS:
        value = os.environ.get(ENV_PREFIX + name.upper()) or from_file.get(name)
        if not value:
            raise ConfigError(
                f"Missing credential {name} (set {ENV_PREFIX}{name.upper()} or credentials.{name} in config.yaml)"
            )
        values[name] = value
    return Credentials(**values)


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------

def new_call_id() -> str:
    return uuid.uuid4().hex


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class SellsyClient:
    """
    Client for the Sellsy API.

    Every call is signed, posted to the endpoint and its response envelope
    validated. call() blocks; call_async() returns a CallFuture.

        client = SellsyClient(user_token, user_secret, consumer_token, consumer_secret)
        infos = client.call("Infos.getInfos")
        client.close()

    Or use as context manager:
        with SellsyClient.from_env() as client:
            future = client.call_async("Client.getOne", {"clientid": 42})
            print(future.result())
    """

    def __init__(
        self,
        user_token: str,
        user_secret: str,
        consumer_token: str,
        consumer_secret: str,
        endpoint: Optional[str] = None,
        transport: Optional[Transport] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        """
        Args:
            user_token: OAuth user (access) token
            user_secret: OAuth user (access) secret
            consumer_token: OAuth consumer key
            consumer_secret: OAuth consumer secret
            endpoint: API URL, used verbatim (default: DEFAULT_ENDPOINT)
            transport: HTTP transport (default: RequestsTransport, owned by the client)
            activity_logger: Traffic log sink (default: LoguruActivityLogger)
        """
        self.credentials = Credentials(
            user_token=user_token,
            user_secret=user_secret,
            consumer_token=consumer_token,
            consumer_secret=consumer_secret,
        )
        self.endpoint = endpoint or DEFAULT_ENDPOINT
        self._owns_transport = transport is None
        self.transport = transport or RequestsTransport()
        self.activity_logger = activity_logger or LoguruActivityLogger()

    @classmethod
    def from_env(
        cls,
        data_dir: Optional[str] = None,
        transport: Optional[Transport] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ) -> "SellsyClient":
        """
        Build a client from the data directory and environment.

        Args:
            data_dir: Override default (or set SELLSY_DATA env var)
            transport: Optional transport; otherwise built from config.yaml
            activity_logger: Optional sink; otherwise from activity_log setting

        Returns:
            SellsyClient instance

        Raises:
            ConfigError: If config.yaml is invalid or credentials are missing
        """
        # Resolve data directory: param > env var > default
        data_dir = data_dir or os.environ.get(ENV_PREFIX + "DATA") or DEFAULT_DATA_DIR
        data_dir = os.path.expanduser(data_dir)

        config = load_config(data_dir)
        credentials = load_credentials(config)
        endpoint = os.environ.get(ENV_PREFIX + "ENDPOINT") or config.endpoint

        client = cls(
            user_token=credentials.user_token,
            user_secret=credentials.user_secret,
            consumer_token=credentials.consumer_token,
            consumer_secret=credentials.consumer_secret,
            endpoint=endpoint,
            transport=transport or RequestsTransport(
                timeout=config.timeout,
                max_workers=config.max_workers,
            ),
            activity_logger=activity_logger or activity_logger_for(config.activity_log),
        )
        # the transport was built here, so the client releases it
        client._owns_transport = transport is None
        return client

    @property
    def verify_tls(self) -> bool:
        """Certificate verification is only enabled for https endpoints."""
        return self.endpoint.lower().startswith("https://")

    def close(self):
        """Release the transport if this client created it."""
        if self._owns_transport and self.transport is not None:
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # -------------------------------------------------------------------------
    # Calls
    # -------------------------------------------------------------------------

    def call(self, method: str, params: Any = None) -> Any:
        """
        Perform a blocking API call.

        Args:
            method: API method, e.g. "Client.getList"
            params: JSON-serializable parameters (None is sent as {})

        Returns:
            The envelope's "response" value

        Raises:
            TransportError: Network or HTTP failure
            AuthenticationError: OAuth rejection
            MalformedResponseError: Invalid response envelope
            ApiError: Service-reported error
            UnknownApiError: Failure without error details
        """
        call_id = new_call_id()
        headers, fields = self._prepare_call(call_id, method, params)

        try:
            body = self.transport.post(self.endpoint, headers, fields, self.verify_tls)
            payload = decode_response(body)
        except Exception as e:
            self._log_inbound(call_id, str(e))
            raise

        self._log_inbound(call_id, _compact_json(payload))
        return payload

    def call_async(self, method: str, params: Any = None) -> CallFuture:
        """
        Start a non-blocking API call.

        Args:
            method: API method, e.g. "Client.getList"
            params: JSON-serializable parameters (None is sent as {})

        Returns:
            CallFuture resolving to the "response" value, or rejected with
            the same errors call() raises. Cancelling it cancels the
            underlying transport request.
        """
        call_id = new_call_id()
        headers, fields = self._prepare_call(call_id, method, params)

        future = CallFuture(call_id)
        future.add_done_callback(self._log_settled)

        try:
            transport_future = self.transport.post_async(self.endpoint, headers, fields, self.verify_tls)
        except SellsyError as e:
            future._settle(error=e)
            return future

        future._attach(transport_future)
        transport_future.add_done_callback(
            lambda tf: self._on_transport_done(future, tf)
        )
        return future

    def _prepare_call(self, call_id: str, method: str, params: Any) -> Tuple[Dict[str, str], List[Tuple[str, str]]]:
        if params is None:
            params = {}
        headers = build_headers(self.credentials)
        fields = encode_request(method, params)
        self._log_outbound(call_id, serialize_do_in(method, params))
        return headers, fields

    @staticmethod
    def _on_transport_done(future: CallFuture, transport_future) -> None:
        if transport_future.cancelled():
            future.cancel()
            return

        error = transport_future.exception()
        if error is not None:
            future._settle(error=error)
            return

        try:
            payload = decode_response(transport_future.result())
        except Exception as e:
            # settle on any decode failure so the future never stays pending
            future._settle(error=e)
            return
        future._settle(result=payload)

    def _log_settled(self, future: CallFuture) -> None:
        if future.cancelled():
            self._log_inbound(future.call_id, "cancelled")
            return
        error = future.exception()
        if error is not None:
            self._log_inbound(future.call_id, str(error))
        else:
            self._log_inbound(future.call_id, _compact_json(future.result()))

    # Activity logging must never change a call's outcome.

    def _log_outbound(self, call_id: str, message: str) -> None:
        try:
            self.activity_logger.log_outbound(call_id, message)
        except Exception as e:
            logger.warning(f"Activity logger failed for call {call_id}: {e}")

    def _log_inbound(self, call_id: str, message: str) -> None:
        try:
            self.activity_logger.log_inbound(call_id, message)
        except Exception as e:
            logger.warning(f"Activity logger failed for call {call_id}: {e}")
