"""Error types raised by the proxy core.

Each per-request error carries the HTTP status and the short plain-text
message the dispatcher answers with.
"""


class ProxyError(Exception):
    status_code = 500
    message = "Proxy error"

    def __init__(self, message=None, detail=None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")


class ConfigLoadError(ProxyError):
    message = "Error loading domain templates"


class PatternCompileError(ProxyError):
    message = "Invalid domain pattern"

    def __init__(self, pattern, detail=None):
        self.pattern = pattern
        super().__init__(f"Invalid domain pattern {pattern!r}", detail)


class InvalidTokenError(ProxyError):
    status_code = 400
    message = "Invalid base64 URL"


class URLParseError(ProxyError):
    status_code = 400
    message = "Error parsing URL"


class UpstreamFetchError(ProxyError):
    message = "Error fetching content"


class PlaylistScanError(ProxyError):
    message = "Error processing M3U8 content"
