"""
Runtime configuration for the marketing preferences service.

Values are read once at startup from the environment (main.py loads a
.env file first) and passed around as an immutable Settings object.
"""

import os
from dataclasses import dataclass

DEFAULT_PORT = 3000
DEFAULT_API_VERSION = "2024-10"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class Settings:
    shop: str
    access_token: str
    port: int = DEFAULT_PORT
    api_version: str = DEFAULT_API_VERSION
    timeout: int = DEFAULT_TIMEOUT

    @property
    def base_url(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}"

    def missing(self) -> list[str]:
        """Names of required settings that are empty."""
        names = []
        if not self.shop:
            names.append("SHOPIFY_SHOP")
        if not self.access_token:
            names.append("SHOPIFY_ADMIN_API_TOKEN")
        return names


def _normalize_shop(value: str) -> str:
    shop = value.strip()
    for prefix in ("https://", "http://"):
        if shop.lower().startswith(prefix):
            shop = shop[len(prefix):]
    return shop.rstrip("/")


def _int_setting(environ, name: str, default: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(environ=None) -> Settings:
    """Build Settings from environment variables."""
    if environ is None:
        environ = os.environ

    return Settings(
        shop=_normalize_shop(environ.get("SHOPIFY_SHOP", "")),
        access_token=environ.get("SHOPIFY_ADMIN_API_TOKEN", "").strip(),
        port=_int_setting(environ, "PORT", DEFAULT_PORT),
        api_version=environ.get("SHOPIFY_API_VERSION", "").strip() or DEFAULT_API_VERSION,
        timeout=_int_setting(environ, "SHOPIFY_TIMEOUT", DEFAULT_TIMEOUT),
    )
