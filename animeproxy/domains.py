import logging
import re
from types import MappingProxyType
from typing import NamedTuple
from urllib.parse import urlsplit

from animeproxy.errors import PatternCompileError

logger = logging.getLogger(__name__)


def compile_pattern(pattern):
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternCompileError(pattern, str(e)) from e


def build_pattern_cache(templates):
    """Compile every distinct pattern once; broken patterns are left out."""
    cache = {}
    for template in templates:
        for pattern in template.patterns:
            if pattern in cache:
                continue
            try:
                cache[pattern] = compile_pattern(pattern)
            except PatternCompileError as e:
                logger.warning(f"Skipping domain pattern: {e}")
    return MappingProxyType(cache)


class TemplateSnapshot(NamedTuple):
    templates: tuple
    patterns: MappingProxyType


def hostname(url):
    """Raw host of ``url`` as written (no lowercasing), or None if unparsable."""
    try:
        netloc = urlsplit(url).netloc
    except ValueError:
        return None
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        end = host.find("]")
        if end == -1:
            return None
        return host[1:end]
    return host.partition(":")[0]


class DomainMatcher:
    """Resolves a target URL to the first configured template whose pattern matches its host.

    The snapshot is immutable; ``reload`` replaces it wholesale so lookups
    never need a lock.
    """

    def __init__(self, config):
        self._snapshot = self._build(config)

    @staticmethod
    def _build(config):
        templates = tuple(config.domain_templates)
        return TemplateSnapshot(templates, build_pattern_cache(templates))

    @property
    def templates(self):
        return self._snapshot.templates

    def reload(self, config):
        self._snapshot = self._build(config)
        logger.info(f"Domain templates reloaded ({len(self._snapshot.templates)} templates)")

    def match(self, url):
        host = hostname(url)
        if host is None:
            return None

        snapshot = self._snapshot
        for template in snapshot.templates:
            for pattern in template.patterns:
                compiled = snapshot.patterns.get(pattern)
                if compiled is not None and compiled.search(host):
                    return template
        return None
