"""OAuth 1.0a request signing (HMAC-SHA1).

Everything here is pure: given credentials, a method, a URL, the request
parameters and a timestamp, the same signature comes out every time.
"""

import base64
import hashlib
import hmac
import time
from dataclasses import dataclass, field, fields
from urllib.parse import quote

from errors import ConstructionError


SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

HEADER_KEYS = (
    "oauth_consumer_key",
    "oauth_nonce",
    "oauth_signature",
    "oauth_signature_method",
    "oauth_timestamp",
    "oauth_token",
    "oauth_version",
)

_UNSIGNED_TYPES = (bytes, bytearray, memoryview, list, tuple, dict)


@dataclass(frozen=True)
class Credentials:
    consumer_key: str
    consumer_secret: str = field(repr=False)
    access_token: str
    access_token_secret: str = field(repr=False)

    def __post_init__(self):
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, str) or not value:
                raise ConstructionError(item.name)


def _percent_encode(value):
    # RFC 3986: only ALPHA / DIGIT / "-" / "." / "_" / "~" stay literal.
    return quote(str(value), safe="~")


def build_base_string(method: str, url: str, params: dict) -> str:
    pairs = []
    for key in sorted(params):
        value = params[key]
        if isinstance(value, _UNSIGNED_TYPES):
            continue
        pairs.append(f"{_percent_encode(key)}={_percent_encode(value)}")

    return "&".join([
        method.upper(),
        _percent_encode(url),
        _percent_encode("&".join(pairs)),
    ])


def composite_key(consumer_secret: str, access_token_secret: str) -> str:
    return f"{_percent_encode(consumer_secret)}&{_percent_encode(access_token_secret)}"


def hmac_sha1_signature(base_string: str, key: str) -> str:
    digest = hmac.new(key.encode(), base_string.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def protocol_params(credentials: Credentials, timestamp: int, nonce=None) -> dict:
    return {
        "oauth_consumer_key": credentials.consumer_key,
        "oauth_nonce": str(timestamp if nonce is None else nonce),
        "oauth_signature_method": SIGNATURE_METHOD,
        "oauth_timestamp": str(timestamp),
        "oauth_token": credentials.access_token,
        "oauth_version": OAUTH_VERSION,
    }


def sign(credentials: Credentials, method: str, url: str, params=None, timestamp=None, nonce=None):
    """Sign a request and return ``(oauth_params, signature)``.

    ``params`` are the request's own GET or POST fields; binary and
    container values are left out of the base string. The nonce defaults to
    the timestamp, which keeps signatures reproducible for a fixed clock but
    is weaker than a random nonce; pass ``nonce`` to override it.
    """
    if timestamp is None:
        timestamp = int(time.time())

    oauth_params = protocol_params(credentials, timestamp, nonce)
    merged = dict(oauth_params)
    merged.update(params or {})

    base_string = build_base_string(method, url, merged)
    key = composite_key(credentials.consumer_secret, credentials.access_token_secret)
    return oauth_params, hmac_sha1_signature(base_string, key)


def authorization_header(oauth_params: dict) -> str:
    """Render ``OAuth k="v", ...`` from a parameter set that includes the signature."""
    header = ", ".join(
        f'{key}="{_percent_encode(oauth_params[key])}"'
        for key in HEADER_KEYS
    )
    return f"OAuth {header}"
