"""
Referrer domain extraction and categorization.
"""

from typing import Optional, Tuple
from urllib.parse import urlparse

CATEGORY_DIRECT = "Direct"
CATEGORY_SEARCH = "Search"
CATEGORY_SOCIAL = "Social"
CATEGORY_EXTERNAL = "External"

SEARCH_ENGINES = (
    "google.com",
    "bing.com",
    "duckduckgo.com",
    "yahoo.com",
    "baidu.com",
    "yandex.com",
)

SOCIAL_NETWORKS = (
    "facebook.com",
    "twitter.com",
    "linkedin.com",
    "instagram.com",
    "pinterest.com",
    "reddit.com",
    "tiktok.com",
    "youtube.com",
)


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Return the hostname of ``url`` without a leading ``www.``.

    Empty, malformed or scheme-less values return None.
    """
    if not url or not isinstance(url, str) or not url.strip():
        return None

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return None

    if not parsed.scheme or not hostname:
        return None

    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname or None


def categorize(domain: Optional[str]) -> str:
    """Classify a referrer domain as Direct, Search, Social or External."""
    if not domain or not domain.strip():
        return CATEGORY_DIRECT

    # Substring match so regional and mobile subdomains are covered
    if any(engine in domain for engine in SEARCH_ENGINES):
        return CATEGORY_SEARCH
    if any(network in domain for network in SOCIAL_NETWORKS):
        return CATEGORY_SOCIAL
    return CATEGORY_EXTERNAL


def classify_referrer(url: Optional[str]) -> Tuple[Optional[str], str]:
    """Return ``(domain, category)`` for a raw referrer URL."""
    domain = extract_domain(url)
    return domain, categorize(domain)
