"""
Configuration dataclasses for the resumable harvester.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class RateLimitConfig:
    """Configuration for pacing between requests."""
    base_delay: float = 2.0
    batch_delay_min: float = 2.0
    batch_delay_max: float = 5.0
    cooldown_threshold: int = 5
    cooldown_duration: float = 300.0


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 5.0
    max_delay: float = 60.0
    backoff_factor: float = 2.0


@dataclass
class CrawlConfig:
    """Sizing and checkpoint cadence for a crawl."""
    max_items: int = 175000
    results_per_page: int = 50
    start_page: int = 1
    pages_per_batch: int = 1
    batch_size: int = 50
    checkpoint_every: int = 10
    # Page provider deadlines (seconds)
    listing_timeout: float = 30.0
    detail_timeout: float = 10.0
    # Failed URLs are retried on every resume unless disabled
    retry_failed_on_resume: bool = True
    audit_payloads: bool = False


@dataclass
class MultiloginConfig:
    """Credentials and identifiers for the remote browser-profile provider."""
    email: Optional[str] = None
    password: Optional[str] = None
    folder_id: Optional[str] = None
    profile_id: Optional[str] = None
    use_local_docker: bool = False

    REQUIRED_ENV = ('MULTILOGIN_EMAIL', 'MULTILOGIN_PASSWORD', 'FOLDER_ID', 'PROFILE_ID')

    @classmethod
    def from_env(cls) -> "MultiloginConfig":
        """Build config from environment variables (call after load_dotenv)."""
        return cls(
            email=os.getenv('MULTILOGIN_EMAIL'),
            password=os.getenv('MULTILOGIN_PASSWORD'),
            folder_id=os.getenv('FOLDER_ID'),
            profile_id=os.getenv('PROFILE_ID'),
            use_local_docker=_env_flag('USE_LOCAL_DOCKER', False),
        )

    def missing(self) -> List[str]:
        values = {
            'MULTILOGIN_EMAIL': self.email,
            'MULTILOGIN_PASSWORD': self.password,
            'FOLDER_ID': self.folder_id,
            'PROFILE_ID': self.profile_id,
        }
        return [name for name in self.REQUIRED_ENV if not values[name]]

    def validate(self):
        """
        Fail fast when required settings are absent.

        Raises:
            ConfigError: naming every missing environment variable
        """
        missing = self.missing()
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


@dataclass
class HarvesterConfig:
    """Main configuration for the harvester."""
    target: str = "profiles"
    data_dir: Path = Path("data")

    # Browser settings
    headless: bool = False
    local_browser: bool = False

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    multilogin: MultiloginConfig = field(default_factory=MultiloginConfig)

    @property
    def target_dir(self) -> Path:
        return Path(self.data_dir) / self.target

    @property
    def state_dir(self) -> Path:
        return self.target_dir / "state"

    @property
    def batch_dir(self) -> Path:
        return self.target_dir / "batches"

    @property
    def output_file(self) -> Path:
        return self.target_dir / f"{self.target}.csv"

    def validate(self):
        """Validate settings needed before any session is opened."""
        if self.crawl.max_items <= 0:
            raise ConfigError("max_items must be positive")
        if self.crawl.results_per_page <= 0:
            raise ConfigError("results_per_page must be positive")
        if self.crawl.start_page < 1:
            raise ConfigError("start_page must be >= 1")
        if self.retry.max_retries < 1:
            raise ConfigError("max_retries must be >= 1")
        if self.retry.backoff_factor < 1:
            raise ConfigError("backoff_factor must be >= 1")
        if self.crawl.checkpoint_every < 1:
            raise ConfigError("checkpoint_every must be >= 1")
        if self.rate_limit.batch_delay_min > self.rate_limit.batch_delay_max:
            raise ConfigError("batch_delay_min cannot exceed batch_delay_max")
        if not self.local_browser:
            self.multilogin.validate()


def default_headless() -> bool:
    """Headless default from the HEADLESS environment variable."""
    return _env_flag('HEADLESS', False)


def default_data_dir() -> Path:
    return Path(os.getenv('HARVESTER_DATA_DIR', 'data'))


def default_retry_failed_on_resume() -> bool:
    return _env_flag('RETRY_FAILED_ON_RESUME', True)
