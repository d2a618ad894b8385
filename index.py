from flask import Flask, request, Response, stream_with_context
import requests
import logging
import os
from http.cookiejar import DefaultCookiePolicy
from urllib.parse import urlsplit

from animeproxy.codec import HEADERS_PARAM, ROUTE_PREFIX, decode_token
from animeproxy.config import FileConfigProvider
from animeproxy.domains import DomainMatcher
from animeproxy.errors import ProxyError, UpstreamFetchError, URLParseError
from animeproxy.headers import cache_validators, synthesize_headers
from animeproxy.playlist import is_playlist, rewrite_playlist

# Logging configuration
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", 30))
CHUNK_SIZE = 32 * 1024
PLAYLIST_CONTENT_TYPE = 'application/vnd.apple.mpegurl'

# Upstream headers handed back to the client; everything else is dropped
PASSTHROUGH_HEADERS = (
    'Content-Length',
    'Content-Type',
    'Content-Range',
    'Accept-Ranges',
    'Cache-Control',
    'Last-Modified',
    'ETag',
)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization, Range',
    'Access-Control-Expose-Headers': 'Content-Length, Content-Range, Accept-Ranges',
    'Access-Control-Max-Age': '86400',
}


def check_target(url):
    """Reject decoded targets that requests could not fetch anyway."""
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise URLParseError(detail=str(e)) from e
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise URLParseError("Invalid target URL", url)
    return url


def response_headers(upstream):
    headers = {}
    encoded = 'Content-Encoding' in upstream.headers
    for name in PASSTHROUGH_HEADERS:
        # requests decodes gzip/br bodies, so the upstream length no longer applies
        if name == 'Content-Length' and encoded:
            continue
        value = upstream.headers.get(name)
        if value is not None:
            headers[name] = value
    return headers


def make_session():
    """Upstream session shared for connection pooling; it never keeps cookies."""
    session = requests.Session()
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return session


def create_app(config_provider=None, session=None):
    """Build the proxy app around an injected config provider and upstream session.

    The config is loaded exactly once here; a ConfigLoadError propagates so the
    process never starts without templates.
    """
    config_provider = config_provider or FileConfigProvider()
    config = config_provider.load()
    matcher = DomainMatcher(config)
    session = session or make_session()

    app = Flask(__name__)

    @app.after_request
    def after_request(response):
        """Add the CORS headers to every response"""
        response.headers.update(CORS_HEADERS)
        return response

    @app.errorhandler(ProxyError)
    def handle_proxy_error(e):
        logger.error(f"{request.path}: {e}")
        return Response(e.message, status=e.status_code, mimetype='text/plain')

    def fetch(target_url):
        template = matcher.match(target_url)
        headers = synthesize_headers(
            template,
            config.default_headers,
            range_header=request.headers.get('Range'),
            conditional_headers=cache_validators(request.headers),
        )
        logger.info(f"Proxying request to: {target_url} (template: {'yes' if template else 'none'})")
        try:
            return session.get(
                target_url,
                headers=headers,
                stream=True,
                allow_redirects=True,
                timeout=PROXY_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamFetchError(detail=str(e)) from e

    def playlist_response(upstream, target_url):
        try:
            body = upstream.content
        except requests.exceptions.RequestException as e:
            raise UpstreamFetchError("Error reading M3U8 content", str(e)) from e
        finally:
            upstream.close()

        processed = rewrite_playlist(body, target_url, request.args.get(HEADERS_PARAM, ''))
        payload = processed.encode('utf-8')

        headers = response_headers(upstream)
        headers['Content-Type'] = PLAYLIST_CONTENT_TYPE
        headers['Content-Length'] = str(len(payload))
        logger.info(f"Rewrote M3U8 playlist from {target_url}")
        return Response(payload, status=upstream.status_code, headers=headers)

    def stream_response(upstream, target_url):
        def generate():
            try:
                for chunk in upstream.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        yield chunk
            except requests.exceptions.RequestException as e:
                logger.error(f"Error streaming response from {target_url}: {e}")

        response = Response(
            stream_with_context(generate()),
            status=upstream.status_code,
            headers=response_headers(upstream),
        )
        response.call_on_close(upstream.close)
        return response

    @app.route(f'{ROUTE_PREFIX}<path:token>', methods=['GET', 'OPTIONS'])
    def proxy(token):
        """Main proxy route"""
        if request.method == 'OPTIONS':
            return Response(status=204)

        target_url = check_target(decode_token(ROUTE_PREFIX + token))
        upstream = fetch(target_url)

        if is_playlist(upstream.headers.get('Content-Type', '')):
            return playlist_response(upstream, target_url)
        return stream_response(upstream, target_url)

    @app.route(ROUTE_PREFIX, methods=['GET', 'OPTIONS'])
    def proxy_missing():
        if request.method == 'OPTIONS':
            return Response(status=204)
        return Response('Missing URL parameter', status=400, mimetype='text/plain')

    @app.route('/health')
    def health():
        """Health endpoint"""
        return {"status": "ok", "templates": len(matcher.templates)}

    return app


_app = None


def get_app():
    """Lazily built app for WSGI servers (``gunicorn 'index:get_app()'``)."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    app = create_app()
    logger.info(f"Starting server on port {port}...")
    app.run(
        host='0.0.0.0',
        port=port,
        threaded=True
    )
