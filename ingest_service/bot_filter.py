"""
Automated-traffic classification by user-agent.
"""

from typing import Iterable, Optional

# Lower-case substrings; order does not matter
BOT_PATTERNS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "slurp",
    "crawl",
    "headlesschrome",
    "phantomjs",
    "puppeteer",
    "playwright",
    "selenium",
    "lighthouse",
    "pingdom",
    "uptimerobot",
    "statuscake",
    "facebookexternalhit",
    "embedly",
    "quora link preview",
    "whatsapp",
    "python-requests",
    "python-urllib",
    "aiohttp",
    "httpx",
    "go-http-client",
    "okhttp",
    "java/",
    "libwww",
    "httpclient",
    "curl/",
    "wget",
    "postman",
    "insomnia",
    "scrapy",
    "gptbot",
    "chatgpt-user",
    "claudebot",
    "anthropic-ai",
    "perplexitybot",
    "ccbot",
    "bytespider",
    "petalbot",
    "semrush",
    "ahrefs",
    "mj12bot",
    "dotbot",
    "yandex",
    "baiduspider",
    "duckduckbot",
    "applebot",
)


def is_bot(user_agent: Optional[str], patterns: Iterable[str] = BOT_PATTERNS) -> bool:
    """Return True when the user-agent looks like automated traffic.

    A missing or empty user-agent is treated as human.
    """
    if not user_agent or not isinstance(user_agent, str):
        return False

    ua = user_agent.lower()
    return any(pattern in ua for pattern in patterns)
