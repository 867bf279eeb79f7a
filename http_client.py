import requests

from config import HTTP_TIMEOUT
from errors import TransportError


def send_request(method: str, url: str, headers=None, data=None, files=None, timeout=None, **options):
    """Issue a single HTTP request and return ``(status_code, body_text)``.

    Non-2xx responses are returned, not raised. Only failures of the call
    itself surface, as ``TransportError``.
    """
    if timeout is None:
        timeout = HTTP_TIMEOUT

    try:
        response = requests.request(
            method,
            url,
            headers=headers,
            data=data,
            files=files,
            timeout=timeout,
            **options,
        )
    except requests.RequestException as err:
        raise TransportError(str(err)) from err

    return response.status_code, response.text
