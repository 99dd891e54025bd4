"""Configuration helpers for the roster churn scraper."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

EMAIL_ENV = "ROSTER_EMAIL"
PASSWORD_ENV = "ROSTER_PASSWORD"
TARGET_URL_ENV = "ROSTER_TARGET_URL"
BASE_URL_ENV = "ROSTER_BASE_URL"
OUTPUT_DIR_ENV = "ROSTER_OUTPUT_DIR"

DEFAULT_BASE_URL = "https://www.skool.com"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"


@dataclass(frozen=True)
class ScrapeInputs:
    """The three required run inputs plus the resolved roster identifier."""

    email: str
    password: str
    target_url: str
    community: str
    base_url: str = DEFAULT_BASE_URL

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/login"

    @property
    def community_url(self) -> str:
        return f"{self.base_url}/{self.community}"

    @property
    def roster_url(self) -> str:
        return f"{self.base_url}/{self.community}/-/members"

    def __repr__(self) -> str:
        return (
            f"ScrapeInputs(email={self.email!r}, password='***', "
            f"community={self.community!r}, base_url={self.base_url!r})"
        )


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def community_from_url(target_url: str) -> Optional[str]:
    """Return the roster identifier (first path segment) of ``target_url``.

    Accepts full URLs (``https://www.skool.com/my-group?tab=x``) as well as a
    bare identifier (``my-group``).
    """

    if not target_url or not target_url.strip():
        return None
    raw = target_url.strip()
    if "://" not in raw:
        bare = raw.lstrip("/")
        # "www.skool.com/my-group" carries a host; "my-group" is the identifier itself.
        host_like = "." in bare.split("/")[0]
        raw = f"https://{bare}" if host_like else f"https://placeholder/{bare}"
    parsed = urlparse(raw)
    segments = [segment for segment in parsed.path.split("/") if segment]
    if not segments:
        return None
    return segments[0]


def get_scrape_inputs(target_url: Optional[str] = None) -> ScrapeInputs:
    """Return the required run inputs or raise a descriptive error.

    ``target_url`` overrides ``ROSTER_TARGET_URL`` when provided (CLI flag).
    """

    email = _get_env(EMAIL_ENV)
    password = _get_env(PASSWORD_ENV)
    target = (target_url or "").strip() or _get_env(TARGET_URL_ENV)

    missing = [
        name
        for name, value in ((EMAIL_ENV, email), (PASSWORD_ENV, password), (TARGET_URL_ENV, target))
        if not value
    ]
    if missing:
        raise RuntimeError(
            f"Missing required input: {', '.join(missing)}. Set it in .env or export the variable before running."
        )

    community = community_from_url(target)
    if not community:
        raise RuntimeError(f"Could not derive a roster identifier from target URL '{target}'.")

    base_url = (_get_env(BASE_URL_ENV, DEFAULT_BASE_URL) or DEFAULT_BASE_URL).rstrip("/")
    return ScrapeInputs(
        email=email,
        password=password,
        target_url=target,
        community=community,
        base_url=base_url,
    )


def get_output_dir() -> Path:
    """Resolve the directory that receives snapshots and result files."""

    raw_path = _get_env(OUTPUT_DIR_ENV, str(DEFAULT_OUTPUT_DIR))
    return Path(raw_path).expanduser().resolve()
