# downloader.py

import logging

import requests

from stream_errors import BadStatusError, MissingContentLengthError, StreamConnectionError

logger = logging.getLogger(__name__)


def parse_content_length(headers):
    """
    Expected body size from the response headers.
    Missing, non-numeric and negative values are all fatal.
    """
    raw = headers.get("Content-Length")
    if raw is None or not str(raw).strip():
        raise MissingContentLengthError("Response has no Content-Length header")
    try:
        size = int(str(raw).strip())
    except ValueError:
        raise MissingContentLengthError(f"Content-Length is not a number: {raw!r}") from None
    if size < 0:
        raise MissingContentLengthError(f"Content-Length is negative: {size}")
    return size


def open_video_response(url, username=None, password=None, timeout=None):
    """
    Issue the GET for `url` and return (response, expected_size).

    The body is left unread (stream=True); the caller owns the response and
    must close it. On any failure here the response is closed before raising.
    """
    auth = (username, password or "") if username else None
    # identity keeps the body byte-for-byte equal to the remote file and to Content-Length
    headers = {"Accept-Encoding": "identity"}

    logger.debug(f"GET {url} (auth={'yes' if auth else 'no'}, timeout={timeout})")
    try:
        resp = requests.get(url, stream=True, timeout=timeout, auth=auth, headers=headers)
    except requests.RequestException as e:
        raise StreamConnectionError(f"Could not reach {url}: {e}") from e

    try:
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise BadStatusError(resp.status_code, url) from e
        size = parse_content_length(resp.headers)
    except Exception:
        resp.close()
        raise

    logger.debug(f"Response {resp.status_code}, Content-Length {size:,}")
    return resp, size
