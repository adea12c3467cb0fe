"""
Configuration management for the mirroring crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields
from urllib.parse import urlparse

from ..errors import ConfigError


DEFAULT_USER_AGENT = "site-mirror/1.0"


@dataclass(frozen=True)
class CrawlConfig:
    """Configuration for a single crawl. Immutable once the crawl starts."""
    seed_url: str
    max_depth: int = 1
    workers: int = 5
    output_dir: str = "./mirror"
    same_domain: bool = True
    request_timeout: float = 30
    user_agent: str = DEFAULT_USER_AGENT
    queue_size: int = 1000
    max_content_size: int = 10 * 1024 * 1024
    write_manifest: bool = False

    @property
    def seed_host(self) -> str:
        return (urlparse(self.seed_url).hostname or "").lower()


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class VisitedConfig:
    """Configuration for the visited-set backend."""
    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key: str = "mirror:visited"


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    crawl: CrawlConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    visited: VisitedConfig = field(default_factory=VisitedConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _section(cls, data: Optional[Dict[str, Any]], name: str):
    """Build a config section, rejecting unknown keys."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}' section: {', '.join(sorted(unknown))}")

    for f in fields(cls):
        # Optional[...] fields are not plain classes and are left to the caller
        if f.name not in data or not isinstance(f.type, type):
            continue
        accepted = (int, float) if f.type is float else f.type
        value = data[f.name]
        if not isinstance(value, accepted) or (isinstance(value, bool) and f.type is not bool):
            raise ConfigError(f"'{name}.{f.name}' must be of type {f.type.__name__}, "
                              f"got {type(value).__name__}")
    return cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def _read_file(self) -> Dict[str, Any]:
        if self.config_path is None:
            return {}
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {self.config_path}")
        return config_data

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
        """
        Load configuration from the YAML file and apply overrides.

        Args:
            overrides: Per-section values (usually from command-line flags)
                that take precedence over the file. ``None`` values are ignored.

        Returns:
            Validated Config
        """
        config_data = self._read_file()

        for section, values in (overrides or {}).items():
            merged = dict(config_data.get(section) or {})
            merged.update({k: v for k, v in values.items() if v is not None})
            config_data[section] = merged

        crawl_data = config_data.get('crawl') or {}
        if not crawl_data.get('seed_url'):
            raise ConfigError("A seed URL must be provided")

        try:
            self._config = Config(
                crawl=_section(CrawlConfig, crawl_data, 'crawl'),
                logging=_section(LoggingConfig, config_data.get('logging'), 'logging'),
                visited=_section(VisitedConfig, config_data.get('visited'), 'visited'),
                monitoring=_section(MonitoringConfig, config_data.get('monitoring'), 'monitoring'),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        crawl = self._config.crawl

        # Validate seed URL
        try:
            parsed = urlparse(crawl.seed_url)
            host = parsed.hostname
        except ValueError as e:
            raise ConfigError(f"Cannot parse seed URL '{crawl.seed_url}': {e}") from e
        if parsed.scheme not in ('http', 'https') or not host:
            raise ConfigError(f"Seed URL must be an absolute http(s) URL: {crawl.seed_url}")

        # Validate numeric values
        if crawl.max_depth < 0:
            raise ConfigError("max_depth must be non-negative")

        if crawl.workers < 1:
            raise ConfigError("workers must be at least 1")

        if crawl.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

        if crawl.queue_size < 1:
            raise ConfigError("queue_size must be at least 1")

        if crawl.max_content_size < 1:
            raise ConfigError("max_content_size must be at least 1")

        # Validate visited backend
        if self._config.visited.backend not in ('memory', 'redis'):
            raise ConfigError("Visited backend must be 'memory' or 'redis'")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: Optional[str] = None,
                overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """Load configuration from file and command-line overrides."""
    return ConfigManager(config_path).load_config(overrides)

