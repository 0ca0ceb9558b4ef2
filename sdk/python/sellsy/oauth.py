# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
OAuth 1.0 PLAINTEXT request signing.

Every API call carries a freshly built Authorization header:

    OAuth oauth_consumer_key="...", oauth_token="...", oauth_nonce="...",
          oauth_timestamp="...", oauth_signature_method="PLAINTEXT",
          oauth_version="1.0", oauth_signature="..."

The signature is the consumer secret and the user secret, each percent-encoded
and joined with "&". Like every other value it is percent-encoded again when
placed in the header.
"""

import hashlib
import random
import time
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import quote


SIGNATURE_METHOD = "PLAINTEXT"
OAUTH_VERSION = "1.0"


@dataclass(frozen=True)
class Credentials:
    """Long-lived OAuth tokens shared by every call"""
    user_token: str
    user_secret: str = field(repr=False)
    consumer_token: str
    consumer_secret: str = field(repr=False)


def percent_encode(value) -> str:
    """
    Percent-encode a value using RFC 3986 raw rules.

    Only unreserved characters (letters, digits, "-", "_", ".", "~") are kept;
    a space becomes "%20", never "+".
    """
    return quote(str(value), safe="")


def make_nonce(now: int) -> str:
    """Single-use nonce derived from the clock plus a random offset."""
    return hashlib.md5(str(now + random.randint(0, 1000)).encode()).hexdigest()


def signing_key(credentials: Credentials) -> str:
    return percent_encode(credentials.consumer_secret) + "&" + percent_encode(credentials.user_secret)


def oauth_params(credentials: Credentials) -> List[Tuple[str, str]]:
    """
    Build the ordered OAuth parameter list for one request.

    Returns:
        List of (name, value) pairs in header order (values not yet encoded)
    """
    now = int(time.time())
    return [
        ("oauth_consumer_key", credentials.consumer_token),
        ("oauth_token", credentials.user_token),
        ("oauth_nonce", make_nonce(now)),
        ("oauth_timestamp", str(now)),
        ("oauth_signature_method", SIGNATURE_METHOD),
        ("oauth_version", OAUTH_VERSION),
        ("oauth_signature", signing_key(credentials)),
    ]


def build_auth_header(credentials: Credentials) -> str:
    """
    Build the Authorization header value for one request.

    Args:
        credentials: OAuth tokens

    Returns:
        'OAuth k1="v1", k2="v2", ...' with every value percent-encoded
    """
    values = [f'{key}="{percent_encode(value)}"' for key, value in oauth_params(credentials)]
    return "OAuth " + ", ".join(values)


def build_headers(credentials: Credentials) -> Dict[str, str]:
    """
    HTTP headers for a signed call.

    Expect is sent empty so multipart uploads do not wait on 100-continue.
    """
    return {"Authorization": build_auth_header(credentials), "Expect": ""}
