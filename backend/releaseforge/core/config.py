"""
ReleaseForge — Backend Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from releaseforge.errors import ConfigurationError

_root = Path(__file__).resolve().parent.parent.parent.parent
load_dotenv(_root / ".env")


@dataclass(frozen=True)
class GeminiConfig:
    """Google Gemini credentials and model names (text + image)."""
    api_key: str
    text_model: str
    image_model: str
    image_size: str
    api_base: str


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub REST API settings for the compare fallback."""
    api_base: str
    token: str
    rate_limit_floor: int
    max_pull_requests: int
    max_compare_pages: int


@dataclass(frozen=True)
class PathsConfig:
    releases_path: Path
    prompts_dir: Path
    public_images_dir: Path
    public_images_url: str
    remediation_result_file: Path


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int
    base_delay: float
    compare_max_attempts: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""
    gemini: GeminiConfig
    github: GitHubConfig
    paths: PathsConfig
    retry: RetryConfig
    remediation_max_api_calls: int
    remediation_max_tokens: int
    site_footer: str
    site_tagline: str
    http_timeout: float


def _load_config() -> AppConfig:
    return AppConfig(
        gemini=GeminiConfig(
            api_key=os.getenv("GOOGLE_API_KEY", ""),
            text_model=os.getenv("GEMINI_TEXT_MODEL", "gemini-2.0-flash"),
            image_model=os.getenv("GEMINI_IMAGE_MODEL", "gemini-3-pro-image-preview"),
            image_size=os.getenv("GEMINI_IMAGE_SIZE", "2K"),
            api_base=os.getenv(
                "GEMINI_API_BASE",
                "https://generativelanguage.googleapis.com/v1beta",
            ),
        ),
        github=GitHubConfig(
            api_base=os.getenv("GITHUB_API_BASE", "https://api.github.com"),
            token=os.getenv("GITHUB_TOKEN", ""),
            rate_limit_floor=int(os.getenv("GITHUB_RATE_LIMIT_FLOOR", "5")),
            max_pull_requests=int(os.getenv("GITHUB_MAX_PULL_REQUESTS", "5")),
            max_compare_pages=int(os.getenv("GITHUB_MAX_COMPARE_PAGES", "3")),
        ),
        paths=PathsConfig(
            releases_path=Path(os.getenv(
                "RELEASES_PATH", str(_root / "public" / "data" / "releases.json"),
            )),
            prompts_dir=Path(os.getenv("PROMPTS_DIR", str(_root / "generated-prompts"))),
            public_images_dir=Path(os.getenv(
                "PUBLIC_IMAGES_DIR", str(_root / "public" / "images" / "infographics"),
            )),
            public_images_url=os.getenv("PUBLIC_IMAGES_URL", "/images/infographics"),
            remediation_result_file=Path(os.getenv(
                "REMEDIATION_RESULT_FILE", "remediation-result.json",
            )),
        ),
        retry=RetryConfig(
            max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", "3")),
            base_delay=float(os.getenv("RETRY_BASE_DELAY", "1.0")),
            compare_max_attempts=int(os.getenv("RETRY_COMPARE_MAX_ATTEMPTS", "2")),
        ),
        remediation_max_api_calls=int(os.getenv("REMEDIATION_MAX_API_CALLS", "3")),
        remediation_max_tokens=int(os.getenv("REMEDIATION_MAX_TOKENS", "4000")),
        site_footer=os.getenv("SITE_FOOTER", "havoptic.com"),
        site_tagline=os.getenv("SITE_TAGLINE", "Track AI Tool Releases"),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "30.0")),
    )


def require_api_key(cfg: AppConfig) -> str:
    """Fail fast if the Gemini key is missing. Called before any network activity."""
    if not cfg.gemini.api_key:
        raise ConfigurationError(["GOOGLE_API_KEY"])
    return cfg.gemini.api_key


settings = _load_config()
