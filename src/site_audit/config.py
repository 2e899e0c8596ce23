from dotenv import load_dotenv
from dataclasses import dataclass
from typing import Optional
from pathlib import Path
import json
import os

from site_audit.constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_EXTERNAL_LINKS,
    DEFAULT_MAX_IMAGES_TO_CHECK,
    HEAD_TIMEOUT_SECONDS,
    GET_FALLBACK_TIMEOUT_SECONDS,
    PAGE_TIMEOUT_SECONDS,
    PROBE_TIMEOUT_SECONDS,
    CRAWL_DELAY_SECONDS,
    INTERNAL_LINK_DELAY_SECONDS,
    EXTERNAL_LINK_DELAY_SECONDS,
    IMAGE_DELAY_SECONDS,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("SITE_AUDIT_USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")

    # HTTP transport
    HOST = os.getenv("SITE_AUDIT_HOST", "127.0.0.1")
    PORT = int(os.getenv("SITE_AUDIT_PORT", "8000"))


settings = Settings()


def _apply_env_overrides(instance, prefix: str) -> None:
    """Overwrite dataclass fields from prefixed environment variables.

    Values that fail to convert keep their defaults.
    """
    for field_name, field_def in instance.__dataclass_fields__.items():
        env_value = os.getenv(f"{prefix}{field_name.upper()}")
        if env_value is None:
            continue

        field_type = field_def.type
        try:
            if field_type in (int, "int"):
                setattr(instance, field_name, int(env_value))
            elif field_type in (float, "float"):
                setattr(instance, field_name, float(env_value))
            elif field_type in (str, "str"):
                setattr(instance, field_name, env_value)
        except ValueError:
            pass  # Keep default if conversion fails


@dataclass
class AuditConfig:
    """Crawl limits and network behaviour for one audit run."""
    max_pages: int = DEFAULT_MAX_PAGES
    max_external_links: int = DEFAULT_MAX_EXTERNAL_LINKS
    max_images_to_check: int = DEFAULT_MAX_IMAGES_TO_CHECK

    # Timeouts (seconds)
    head_timeout: float = HEAD_TIMEOUT_SECONDS
    get_timeout: float = GET_FALLBACK_TIMEOUT_SECONDS
    page_timeout: float = PAGE_TIMEOUT_SECONDS
    probe_timeout: float = PROBE_TIMEOUT_SECONDS

    # Delays between successive liveness checks (seconds)
    crawl_delay: float = CRAWL_DELAY_SECONDS
    internal_link_delay: float = INTERNAL_LINK_DELAY_SECONDS
    external_link_delay: float = EXTERNAL_LINK_DELAY_SECONDS
    image_delay: float = IMAGE_DELAY_SECONDS

    # 1 = sequential checking phase, >1 = bounded worker pool
    check_concurrency: int = 1

    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "AuditConfig":
        """Load configuration from environment variables.

        Environment variables should be prefixed with SITE_AUDIT_
        e.g., SITE_AUDIT_MAX_PAGES=20

        Returns:
            AuditConfig with values from environment
        """
        config = cls(user_agent=settings.USER_AGENT)
        _apply_env_overrides(config, "SITE_AUDIT_")
        return config

    def without_delays(self) -> "AuditConfig":
        """Return a copy with every courtesy delay set to zero."""
        data = self.to_dict()
        data.update(
            crawl_delay=0.0,
            internal_link_delay=0.0,
            external_link_delay=0.0,
            image_delay=0.0,
        )
        return AuditConfig(**data)

    def to_dict(self) -> dict:
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


@dataclass
class AuditThresholds:
    """Configurable thresholds for issue generation and deduplication."""

    # Performance
    max_js_files: int = 10
    max_css_files: int = 5
    max_webfonts: int = 3
    lazy_loading_alt_images: int = 5  # Alt-less images above this without lazy loading
    max_page_size_bytes: int = 500000

    # Config
    sitemap_max_age_days: int = 7
    min_og_tags: int = 3
    min_twitter_tags: int = 2

    # Report size
    element_sample_limit: int = 10

    # Deduplication
    dedup_page_ratio: float = 0.7
    dedup_min_pages: int = 2

    @classmethod
    def from_env(cls) -> "AuditThresholds":
        """Load thresholds from environment variables.

        Environment variables should be prefixed with SITE_AUDIT_THRESHOLD_
        e.g., SITE_AUDIT_THRESHOLD_MAX_JS_FILES=15

        Returns:
            AuditThresholds with values from environment
        """
        thresholds = cls()
        _apply_env_overrides(thresholds, "SITE_AUDIT_THRESHOLD_")
        return thresholds

    @classmethod
    def from_file(cls, path: str) -> "AuditThresholds":
        """Load thresholds from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            AuditThresholds with values from file
        """
        thresholds = cls()
        file_path = Path(path)

        if not file_path.exists():
            return thresholds

        with open(file_path, 'r') as f:
            config = json.load(f)

        threshold_config = config.get('thresholds', config)

        for field_name in thresholds.__dataclass_fields__:
            if field_name in threshold_config:
                setattr(thresholds, field_name, threshold_config[field_name])

        return thresholds

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary.

        Returns:
            Dictionary of all threshold values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current thresholds to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'thresholds': self.to_dict()}, f, indent=2)


# Global default thresholds instance
default_thresholds = AuditThresholds()
