"""
Image retrieval by location.

Resolves an image reference to raw bytes. Supported locations:
    - http:// and https:// URLs, fetched with requests and a hard timeout
    - data: URIs, base64 (what browser previews hand over) or percent-encoded
    - file:// URIs and plain filesystem paths

Every failure is raised as FetchError so callers only need to handle one
exception type per image. Decoding the bytes is not done here.
"""

import os
import base64
import binascii
import logging
from typing import Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

# Per-image network timeout (seconds), applied to connect and read.
FETCH_TIMEOUT = float(os.environ.get("PHOTO_SEARCH_FETCH_TIMEOUT", "10"))

# Largest accepted image payload. Matches the upload limit shown to users.
MAX_IMAGE_BYTES = int(os.environ.get("PHOTO_SEARCH_MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))

_CHUNK_SIZE = 64 * 1024


def fetch_image_bytes(location: str,
                      timeout: float = None,
                      session: Optional[requests.Session] = None,
                      max_bytes: int = None) -> bytes:
    """
    Retrieve the raw bytes behind an image location.

    Args:
        location: URL, data: URI, file:// URI or filesystem path.
        timeout: Network timeout in seconds. Defaults to FETCH_TIMEOUT.
        session: Optional requests session to reuse connections.
        max_bytes: Size cap. Defaults to MAX_IMAGE_BYTES.

    Returns:
        The image payload.

    Raises:
        FetchError: If the location is empty, unreachable, returns a
            non-2xx status, times out, or exceeds the size cap.
    """
    if not location:
        raise FetchError("Empty image location", location)

    timeout = FETCH_TIMEOUT if timeout is None else timeout
    max_bytes = MAX_IMAGE_BYTES if max_bytes is None else max_bytes

    scheme = urlparse(location).scheme.lower()
    if scheme in ("http", "https"):
        data = _fetch_http(location, timeout, session, max_bytes)
    elif scheme == "data":
        data = _decode_data_uri(location)
    elif scheme == "file":
        data = _read_file(unquote(urlparse(location).path), location)
    elif scheme == "" or (len(scheme) == 1 and os.name == "nt"):
        # Bare path, or a Windows drive letter parsed as a scheme
        data = _read_file(location, location)
    else:
        raise FetchError(f"Unsupported image location scheme: {scheme}", location)

    if len(data) > max_bytes:
        raise FetchError(f"Image exceeds {max_bytes} bytes ({len(data)})", location)
    return data


def _fetch_http(url: str,
                timeout: float,
                session: Optional[requests.Session],
                max_bytes: int) -> bytes:
    http = session or requests.Session()
    try:
        resp = http.get(url, timeout=timeout, stream=True)
        try:
            if resp.status_code < 200 or resp.status_code >= 300:
                raise FetchError(f"HTTP {resp.status_code} fetching image", url)

            declared = str(resp.headers.get("Content-Length") or "")
            if declared.isdigit() and int(declared) > max_bytes:
                raise FetchError(f"Image exceeds {max_bytes} bytes ({declared})", url)

            chunks = []
            received = 0
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                received += len(chunk)
                if received > max_bytes:
                    raise FetchError(f"Image exceeds {max_bytes} bytes", url)
                chunks.append(chunk)
            return b"".join(chunks)
        finally:
            resp.close()

    except requests.exceptions.Timeout as e:
        raise FetchError(f"Timed out after {timeout}s: {e}", url) from e
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Request failed: {e}", url) from e
    finally:
        if session is None:
            http.close()


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep:
        raise FetchError("Malformed data URI", uri[:64])
    if not header.endswith(";base64"):
        return unquote_to_bytes(payload)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FetchError(f"Invalid base64 payload in data URI: {e}", uri[:64]) from e


def _read_file(path: str, location: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FetchError(f"Could not read image file: {e}", location) from e
