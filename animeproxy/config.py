"""Domain template configuration.

The template file is plain JSON::

    {
        "default_headers": {"User-Agent": "..."},
        "domain_templates": [
            {"patterns": ["(^|\\.)example\\.com$"], "origin": "https://example.com",
             "referer": "https://example.com/", "sec_fetch_site": "same-site",
             "use_cache_headers": false}
        ]
    }

Providers hand a validated, read-only ``Config`` to the app at construction
time; nothing in the core reads the filesystem on its own.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from animeproxy.errors import ConfigLoadError

logger = logging.getLogger(__name__)

TEMPLATES_ENV = "TEMPLATES_PATH"
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


@dataclass(frozen=True)
class DomainTemplate:
    patterns: Tuple[str, ...] = ()
    origin: Optional[str] = None
    referer: Optional[str] = None
    sec_fetch_site: Optional[str] = None
    use_cache_headers: bool = False

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigLoadError(detail=f"domain template must be an object, got {type(data).__name__}")
        patterns = data.get("patterns") or []
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            raise ConfigLoadError(detail="'patterns' must be a list of strings")
        for key in ("origin", "referer", "sec_fetch_site"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ConfigLoadError(detail=f"'{key}' must be a string")
        use_cache_headers = data.get("use_cache_headers", False)
        if not isinstance(use_cache_headers, bool):
            raise ConfigLoadError(detail="'use_cache_headers' must be a boolean")
        return cls(
            patterns=tuple(patterns),
            origin=data.get("origin") or None,
            referer=data.get("referer") or None,
            sec_fetch_site=data.get("sec_fetch_site") or None,
            use_cache_headers=use_cache_headers,
        )


@dataclass(frozen=True)
class Config:
    default_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    domain_templates: Tuple[DomainTemplate, ...] = ()

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigLoadError(detail="top level must be an object")
        defaults = data.get("default_headers") or {}
        if not isinstance(defaults, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in defaults.items()
        ):
            raise ConfigLoadError(detail="'default_headers' must map strings to strings")
        templates = data.get("domain_templates") or []
        if not isinstance(templates, list):
            raise ConfigLoadError(detail="'domain_templates' must be a list")
        return cls(
            default_headers=MappingProxyType(dict(defaults)),
            domain_templates=tuple(DomainTemplate.from_dict(t) for t in templates),
        )


class StaticConfigProvider:
    """Serves a config built in memory (tests, embedding)."""

    def __init__(self, config):
        if isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config

    def load(self):
        return self.config


def default_template_paths():
    paths = []
    env_path = os.environ.get(TEMPLATES_ENV)
    if env_path:
        paths.append(env_path)
    paths.extend([
        os.path.join("src", "domains", "templates.json"),
        os.path.join(os.path.dirname(_PACKAGE_DIR), "domains", "templates.json"),
        os.path.join("..", "src", "domains", "templates.json"),
        os.path.join("domains", "templates.json"),
        "templates.json",
    ])
    return paths


class FileConfigProvider:
    """Probes candidate locations for the template file; the first readable one wins."""

    def __init__(self, paths=None):
        self.paths = list(paths) if paths is not None else default_template_paths()

    def load(self):
        data = None
        for path in self.paths:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = f.read()
            except OSError as e:
                logger.debug(f"Template candidate {path} not readable: {e}")
                continue
            logger.info(f"Loaded templates from: {path}")
            break

        if data is None:
            raise ConfigLoadError(detail=f"no readable templates file in {self.paths}")

        try:
            parsed = json.loads(data)
        except ValueError as e:
            raise ConfigLoadError("Error parsing config", str(e)) from e
        return Config.from_dict(parsed)
