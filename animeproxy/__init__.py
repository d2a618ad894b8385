"""Rewriting and addressing core of the anime streaming proxy."""

from animeproxy.codec import decode_token, encode_token
from animeproxy.config import Config, DomainTemplate
from animeproxy.domains import DomainMatcher
from animeproxy.headers import synthesize_headers
from animeproxy.playlist import is_playlist, rewrite_playlist

__all__ = [
    "Config",
    "DomainMatcher",
    "DomainTemplate",
    "decode_token",
    "encode_token",
    "is_playlist",
    "rewrite_playlist",
    "synthesize_headers",
]
