import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Optional, Union
from urllib.parse import unquote_plus, urlencode

import config
from errors import (
    EmptyTextError,
    InvalidMethodError,
    MalformedQueryError,
    MutualExclusionError,
    TransportError,
    TwitterAPIError,
)
from http_client import send_request
from observability import log_event
from oauth import OAUTH_VERSION, SIGNATURE_METHOD, Credentials, authorization_header
from oauth import sign as sign_request


TWITTER_STATUS_UPDATE_URL = "https://api.twitter.com/1.1/statuses/update.json"
TWITTER_MEDIA_UPLOAD_URL = "https://upload.twitter.com/1.1/media/upload.json"

ALLOWED_METHODS = ("get", "post")
MEDIA_FIELD = "media"


def parse_query_string(string: str) -> dict:
    if string.startswith("?"):
        string = string[1:]

    params = {}
    for segment in string.split("&"):
        if segment == "":
            continue
        if "=" not in segment:
            raise MalformedQueryError(segment)
        key, value = segment.split("=", 1)
        params[unquote_plus(key)] = unquote_plus(value)
    return params


@dataclass(frozen=True)
class Gets:
    fields: dict

    @property
    def query_string(self) -> str:
        if not self.fields:
            return ""
        return "?" + urlencode(self.fields)

    def signing_fields(self) -> dict:
        return dict(self.fields)


@dataclass(frozen=True)
class Posts:
    fields: dict

    @property
    def media(self) -> Optional[bytes]:
        return self.fields.get(MEDIA_FIELD)

    @property
    def form_fields(self) -> dict:
        return {key: value for key, value in self.fields.items() if key != MEDIA_FIELD}

    def signing_fields(self) -> dict:
        # Multipart body parts are not part of the OAuth base string.
        if self.media is not None:
            return {}
        return {
            key: value
            for key, value in self.fields.items()
            if not isinstance(value, (bytes, bytearray))
        }


ParameterSet = Union[Gets, Posts]


@dataclass(frozen=True)
class OAuthContext:
    consumer_key: str
    token: str
    nonce: str
    timestamp: str
    signature: str
    url: str
    method: str
    signature_method: str = SIGNATURE_METHOD
    version: str = OAUTH_VERSION

    def params(self) -> dict:
        return {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": self.nonce,
            "oauth_signature": self.signature,
            "oauth_signature_method": self.signature_method,
            "oauth_timestamp": self.timestamp,
            "oauth_token": self.token,
            "oauth_version": self.version,
        }

    def authorization_header(self) -> str:
        return authorization_header(self.params())


@dataclass
class PendingRequest:
    method: Optional[str] = None
    url: Optional[str] = None
    params: Optional[ParameterSet] = None
    oauth: Optional[OAuthContext] = None
    status_code: Optional[int] = None


def _decode_json(body):
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


class RequestBuilder:
    """Builds, signs and sends OAuth 1.0a requests for one account.

    A builder carries a single request in flight. ``post_update``,
    ``upload_media`` and ``request`` each start from a fresh
    ``PendingRequest``; the credentials are the only state that outlives a
    call. Use one builder per thread.
    """

    def __init__(self, credentials: Credentials, transport=None, clock=None):
        self.credentials = credentials
        self._transport = transport or send_request
        self._clock = clock or time.time
        self.pending = PendingRequest()

    @classmethod
    def from_keys(cls, consumer_key, consumer_secret, access_token, access_token_secret, **kwargs):
        credentials = Credentials(
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            access_token=access_token,
            access_token_secret=access_token_secret,
        )
        return cls(credentials, **kwargs)

    @property
    def http_status_code(self) -> Optional[int]:
        return self.pending.status_code

    def reset(self):
        self.pending = PendingRequest()
        return self

    def set_post_fields(self, fields: dict):
        if isinstance(self.pending.params, Gets):
            raise MutualExclusionError()

        posts = {}
        for key, value in fields.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            posts[key] = value

        # A leading "@" would turn the update into a reply.
        status = posts.get("status")
        if isinstance(status, str) and status.startswith("@"):
            posts["status"] = f"\0{status}"

        self.pending.params = Posts(posts)
        self._resign()
        return self

    def set_get_fields(self, query: str):
        if isinstance(self.pending.params, Posts):
            raise MutualExclusionError()

        self.pending.params = Gets(parse_query_string(query))
        self._resign()
        return self

    def _resign(self):
        if self.pending.oauth is not None:
            self.sign(self.pending.url, self.pending.method)

    def sign(self, url: str, method: str):
        if not isinstance(method, str) or method.lower() not in ALLOWED_METHODS:
            raise InvalidMethodError(method)

        method = method.upper()
        params = self.pending.params.signing_fields() if self.pending.params is not None else {}
        oauth_params, signature = sign_request(
            self.credentials,
            method,
            url,
            params,
            timestamp=int(self._clock()),
        )

        self.pending.oauth = OAuthContext(
            consumer_key=oauth_params["oauth_consumer_key"],
            token=oauth_params["oauth_token"],
            nonce=oauth_params["oauth_nonce"],
            timestamp=oauth_params["oauth_timestamp"],
            signature=signature,
            url=url,
            method=method,
        )
        self.pending.url = url
        self.pending.method = method
        log_event("twitter.request.signed", method=method, url=url)
        return self

    def _build_request(self):
        pending = self.pending
        headers = {
            "Authorization": pending.oauth.authorization_header(),
            "Expect": "",
        }
        url = pending.url
        data = None
        files = None
        params = pending.params

        if isinstance(params, Posts) and params.media is None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            data = urlencode(params.fields)
        elif isinstance(params, Posts):
            # requests writes the multipart boundary and Content-Type itself.
            files = {MEDIA_FIELD: (MEDIA_FIELD, bytes(params.media), "application/octet-stream")}
            data = params.form_fields or None
        elif isinstance(params, Gets):
            url += params.query_string

        return url, headers, data, files

    def send(self, timeout=None, **options) -> str:
        """Send the signed request and return the raw response body.

        Any HTTP status is a normal return; it is kept on
        ``http_status_code``. Raises ``TransportError`` when the call
        itself fails.
        """
        pending = self.pending
        if pending.oauth is None:
            raise TwitterAPIError("Request must be signed before it is sent.")
        if timeout is None:
            timeout = config.HTTP_TIMEOUT

        url, headers, data, files = self._build_request()

        t0 = perf_counter()
        try:
            status_code, body = self._transport(
                pending.method,
                url,
                headers=headers,
                data=data,
                files=files,
                timeout=timeout,
                **options,
            )
        except TransportError as err:
            log_event("twitter.request.failed", method=pending.method, url=pending.url, error=err.detail)
            raise

        elapsed = round(perf_counter() - t0, 3)
        pending.status_code = status_code
        log_event(
            "twitter.request.sent",
            method=pending.method,
            url=pending.url,
            status=status_code,
            elapsed_sec=elapsed,
        )
        return body or ""

    def request(self, url: str, method: str = "get", data=None, **options) -> str:
        self.reset()
        if isinstance(method, str) and method.lower() == "get":
            self.set_get_fields(data or "")
        else:
            self.set_post_fields(data or {})

        return self.sign(url, method).send(**options)

    def post_update(self, text: str, media_id="") -> bool:
        if not text:
            raise EmptyTextError()

        self.reset()
        fields = {"status": text}
        if media_id:
            fields["media_ids"] = str(media_id)

        body = self.set_post_fields(fields).sign(TWITTER_STATUS_UPDATE_URL, "POST").send()
        response = _decode_json(body)
        if isinstance(response, dict) and "created_at" in response:
            return True

        log_event("twitter.update.rejected", status=self.http_status_code)
        return False

    def upload_media(self, text: str, file_path) -> bool:
        if not text:
            raise EmptyTextError()

        path = Path(file_path)
        if not path.is_file() or not os.access(path, os.R_OK):
            raise FileNotFoundError(f"Media file could not be found: {file_path}")

        self.reset()
        media = path.read_bytes()

        body = self.set_post_fields({MEDIA_FIELD: media}).sign(TWITTER_MEDIA_UPLOAD_URL, "POST").send()
        response = _decode_json(body)
        if isinstance(response, dict) and response.get("media_id") is not None:
            return self.post_update(text, response["media_id"])

        log_event("twitter.media.rejected", status=self.http_status_code)
        return False


def credentials_from_env() -> Credentials:
    return Credentials(
        consumer_key=config.TWITTER_API_KEY or "",
        consumer_secret=config.TWITTER_API_SECRET or "",
        access_token=config.TWITTER_ACCESS_TOKEN or "",
        access_token_secret=config.TWITTER_ACCESS_TOKEN_SECRET or "",
    )


def post_tweet(text, api_key, api_secret, access_token, access_token_secret, transport=None):
    builder = RequestBuilder.from_keys(
        api_key,
        api_secret,
        access_token,
        access_token_secret,
        transport=transport,
    )
    return builder.post_update(text)


def tweet_image(text, image_path, api_key, api_secret, access_token, access_token_secret, transport=None):
    builder = RequestBuilder.from_keys(
        api_key,
        api_secret,
        access_token,
        access_token_secret,
        transport=transport,
    )
    return builder.upload_media(text, image_path)
