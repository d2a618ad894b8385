import logging
import re
from urllib.parse import urljoin, urlsplit

from animeproxy.attributes import AttributeListError, parse_attribute_list, split_directive
from animeproxy.codec import encode_token
from animeproxy.errors import PlaylistScanError, URLParseError

logger = logging.getLogger(__name__)

M3U8_TYPES = (
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
    "audio/x-mpegurl",
    "audio/mpegurl",
    "video/x-mpegurl",
    "application/mpegurl",
    "application/x-hls",
    "application/x-apple-hls",
)
M3U8_SUFFIX = ".m3u8"

DIRECTIVE_MARKER = "#"
# Tags whose URI attribute points at something the player will fetch.
URI_TAGS = frozenset((
    "#EXT-X-KEY",
    "#EXT-X-MAP",
    "#EXT-X-SESSION-KEY",
    "#EXT-X-MEDIA",
    "#EXT-X-I-FRAME-STREAM-INF",
    "#EXT-X-PART",
    "#EXT-X-PRELOAD-HINT",
    "#EXT-X-RENDITION-REPORT",
    "#EXT-X-SESSION-DATA",
))

MAX_LINE_LENGTH = 64 * 1024

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def is_playlist(content_type):
    content_type = (content_type or "").lower()
    if any(m3u8_type in content_type for m3u8_type in M3U8_TYPES):
        return True
    return content_type.endswith(M3U8_SUFFIX)


def resolve_url(base_url, ref):
    """Resolve ``ref`` against ``base_url``; absolute refs come back as they are."""
    for value in (base_url, ref):
        if _CONTROL_CHARS.search(value):
            raise URLParseError(detail=f"control character in {value!r}")
    try:
        urlsplit(base_url)
        urlsplit(ref)
        return urljoin(base_url, ref)
    except ValueError as e:
        raise URLParseError(detail=str(e)) from e


def _scan_lines(content):
    if isinstance(content, (bytes, bytearray)):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise PlaylistScanError(detail=str(e)) from e

    if content.startswith("\ufeff"):
        content = content[1:]
    for line in content.split("\n"):
        if len(line) > MAX_LINE_LENGTH:
            raise PlaylistScanError(detail=f"line longer than {MAX_LINE_LENGTH} characters")
        if line.endswith("\r"):
            yield line[:-1], "\r"
        else:
            yield line, ""


def rewrite_directive(line, base_url, headers_blob=""):
    tag, offset = split_directive(line)
    if tag not in URI_TAGS or offset == -1:
        return line

    try:
        uri = parse_attribute_list(line, offset).get("URI")
    except AttributeListError as e:
        logger.debug(f"Leaving malformed directive as is: {e}")
        return line
    if uri is None or not uri.quoted:
        return line

    try:
        resolved = resolve_url(base_url, uri.value)
    except URLParseError as e:
        logger.debug(f"Could not resolve {uri.value!r} against {base_url}: {e}")
        return line

    return line[:uri.start] + encode_token(resolved, headers_blob) + line[uri.end:]


def rewrite_reference(line, base_url, headers_blob=""):
    try:
        resolved = resolve_url(base_url, line.strip())
    except URLParseError as e:
        logger.debug(f"Could not resolve {line!r} against {base_url}: {e}")
        return line
    return encode_token(resolved, headers_blob)


def rewrite_playlist(content, base_url, headers_blob=""):
    """Rewrite every reference in an HLS playlist so it routes back through the proxy.

    Line order, blank lines and CRLF endings are preserved, the output has
    exactly as many lines as the input. A line that can't be resolved is
    passed through; only a failure to read the text itself raises
    PlaylistScanError, in which case nothing is returned.
    """
    processed = []
    for line, ending in _scan_lines(content):
        if line.startswith(DIRECTIVE_MARKER):
            line = rewrite_directive(line, base_url, headers_blob)
        elif line.strip():
            line = rewrite_reference(line, base_url, headers_blob)
        processed.append(line + ending)
    return "\n".join(processed)
