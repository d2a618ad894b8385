import base64
import binascii
import re
from urllib.parse import parse_qs, quote_plus, urlsplit

from animeproxy.errors import InvalidTokenError

ROUTE_PREFIX = "/anime/"
HEADERS_PARAM = "headers"

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")


def encode_token(url, headers_blob=""):
    """Turn an absolute URL (and the client's headers blob) into a proxy path."""
    encoded = base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii")
    token = f"{ROUTE_PREFIX}{encoded}"
    if headers_blob:
        token += f"?{HEADERS_PARAM}={quote_plus(headers_blob)}"
    return token


def _segment(token):
    path = token.split("?", 1)[0]
    if path.startswith(ROUTE_PREFIX):
        segment = path[len(ROUTE_PREFIX):]
    elif path.startswith(ROUTE_PREFIX.lstrip("/")):
        segment = path[len(ROUTE_PREFIX) - 1:]
    else:
        raise InvalidTokenError("Missing URL parameter", f"no {ROUTE_PREFIX} prefix in {token!r}")
    if not segment:
        raise InvalidTokenError("Missing URL parameter")
    return segment


def decode_segment(segment):
    """Decode a bare base64url path segment back to the target URL.

    Padding is optional; anything outside the URL-safe alphabet is rejected
    rather than silently dropped.
    """
    if not segment or not _SEGMENT_RE.match(segment):
        raise InvalidTokenError(detail=f"bad characters in {segment!r}")
    stripped = segment.rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise InvalidTokenError(detail=str(e)) from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidTokenError(detail=str(e)) from e


def decode_token(token):
    """Reverse of encode_token: returns the absolute URL, ignoring any query."""
    return decode_segment(_segment(token))


def token_headers_blob(token):
    query = urlsplit(token).query
    values = parse_qs(query, keep_blank_values=True).get(HEADERS_PARAM)
    return values[0] if values else ""
