"""
Configuration management for the link checker.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import yaml


DEFAULT_USER_AGENT = "brokenlinks/1.0"
LOG_LEVELS = ('TRACE', 'DEBUG', 'INFO', 'WARN', 'WARNING', 'ERROR')


class ConfigError(ValueError):
    """Raised when the configuration is invalid."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    base_url: Optional[str] = None
    seed_urls: List[str] = field(default_factory=list)
    url_list: Optional[str] = None
    stop_after: Optional[int] = None
    ignore_regex: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: int = 30
    max_concurrent_requests: int = 10
    max_content_size: int = 10 * 1024 * 1024
    respect_robots_txt: bool = True
    drop_fragments: bool = False
    # Join each child link before starting the next instead of all at once
    serial_fanout: bool = False


@dataclass
class OutputConfig:
    """Configuration for result output."""
    file: Optional[str] = None
    print_result: bool = True
    pretty_print: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: Optional[str] = None
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json_format: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def seed_urls(self) -> List[str]:
        """Base URL followed by the extra seeds, without duplicates."""
        seeds = [self.crawler.base_url] + list(self.crawler.seed_urls)
        return list(dict.fromkeys(seeds))


def is_http_url(url: str) -> bool:
    """Check that ``url`` is an absolute http(s) URL with a host."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in ('http', 'https') and bool(parsed.hostname)


def read_url_list(path: str) -> List[str]:
    """Read newline-delimited URLs, skipping blank lines."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"URL list file not found: {path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]


class ConfigManager:
    """Manages configuration loading and validation."""

    SECTIONS = {
        'crawler': CrawlerConfig,
        'output': OutputConfig,
        'logging': LoggingConfig,
    }

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
        """
        Load configuration from the YAML file (if any) and apply overrides.

        Args:
            overrides: Per-section values that replace file values; None
                values are ignored so unset CLI flags keep the file's setting

        Returns:
            Validated configuration
        """
        config_data = self._read_file() if self.config_path else {}

        for section, values in (overrides or {}).items():
            section_data = config_data.get(section) or {}
            config_data[section] = section_data
            section_data.update({key: value for key, value in values.items() if value is not None})

        unknown = set(config_data) - set(self.SECTIONS)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        sections = {}
        for name, section_class in self.SECTIONS.items():
            try:
                sections[name] = section_class(**(config_data.get(name) or {}))
            except TypeError as e:
                raise ConfigError(f"Invalid '{name}' configuration: {e}") from e

        self._config = Config(**sections)

        if self._config.crawler.url_list:
            self._config.crawler.seed_urls = (
                list(self._config.crawler.seed_urls) + read_url_list(self._config.crawler.url_list)
            )

        self._validate_config()
        return self._config

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file) or {}

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {self.config_path}")
        return config_data

    def _validate_config(self):
        """Validate configuration values."""
        crawler = self._config.crawler

        if not crawler.base_url:
            raise ConfigError("A base URL must be provided")

        for url in [crawler.base_url] + list(crawler.seed_urls):
            if not is_http_url(url):
                raise ConfigError(f"Not an absolute http(s) URL: {url}")

        if crawler.stop_after is not None and crawler.stop_after < 0:
            raise ConfigError("stop_after must be non-negative")

        if crawler.ignore_regex is not None:
            try:
                re.compile(crawler.ignore_regex)
            except re.error as e:
                raise ConfigError(f"Invalid ignore regex '{crawler.ignore_regex}': {e}") from e

        if crawler.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

        if crawler.max_concurrent_requests < 1:
            raise ConfigError("max_concurrent_requests must be at least 1")

        if self._config.logging.level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self._config.logging.level}")

        logging.debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: Optional[str] = None,
                overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """Load configuration from file and command line overrides."""
    return ConfigManager(config_path).load_config(overrides)
