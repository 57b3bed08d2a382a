"""Static configuration shared by the scraper, fetcher and downloader."""

from dataclasses import dataclass, fields
from typing import Any, Optional

from omegaconf import DictConfig, OmegaConf

from .errors import ConfigError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class ExtractorConfig:
    """
    Allow-lists, timeouts and concurrency caps.

    Built once at startup and passed explicitly to every component.
    """

    # Allow-lists
    post_host: str = "www.linkedin.com"
    post_path_prefixes: tuple[str, ...] = ("/posts/", "/feed/update/")
    media_host_suffix: str = "licdn.com"
    default_referers: tuple[str, ...] = (
        "https://www.linkedin.com/",
        "https://ae.linkedin.com/",
    )

    # Network
    fetch_timeout: float = 12.0
    max_redirects: int = 2
    retry_count: int = 2
    retry_base_delay: float = 0.4
    user_agent: str = DEFAULT_USER_AGENT

    # Limits
    max_media_count: int = 40
    max_download_count: int = 40
    download_concurrency: int = 3
    embed_fetch_concurrency: int = 2
    max_embed_fetches: int = 3
    max_script_length: int = 2_000_000
    min_image_dimension: int = 140

    # Delivery hint: above this many files the caller should archive
    media_group_limit: int = 10

    def __post_init__(self) -> None:
        if self.fetch_timeout <= 0:
            raise ConfigError("fetch_timeout must be > 0")
        if self.max_redirects < 0:
            raise ConfigError("max_redirects must be >= 0")
        if self.retry_count < 0:
            raise ConfigError("retry_count must be >= 0")
        if self.download_concurrency < 1 or self.embed_fetch_concurrency < 1:
            raise ConfigError("concurrency limits must be >= 1")
        if not self.post_path_prefixes:
            raise ConfigError("post_path_prefixes must not be empty")

    @property
    def post_origin(self) -> str:
        return f"https://{self.post_host}"

    @classmethod
    def from_omegaconf(cls, cfg: Optional[DictConfig]) -> "ExtractorConfig":
        """
        Build a config from the ``extractor`` group of the hydra config.

        Args:
            cfg: DictConfig (or None for defaults)

        Returns:
            ExtractorConfig with unspecified fields left at their defaults
        """
        if cfg is None:
            return cls()

        values: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown extractor settings: {', '.join(unknown)}")

        # YAML lists arrive as lists; the dataclass is frozen, keep tuples
        for key in ("post_path_prefixes", "default_referers"):
            if key in values and values[key] is not None:
                values[key] = tuple(values[key])

        return cls(**values)
