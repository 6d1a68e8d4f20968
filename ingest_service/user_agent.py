"""
Server-side user-agent parsing.

Rules are checked in order: several browsers embed the tokens of the engines
they are built on (Edge and Opera carry "Chrome/", Chrome carries "Safari/"),
so the more specific token must win.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

# (display name, regex capturing the version)
_BROWSER_RULES: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("Microsoft Edge", re.compile(r"(?:Edg|Edge|EdgA|EdgiOS)/([\d.]+)")),
    ("Opera", re.compile(r"(?:OPR|Opera)/([\d.]+)")),
    ("Samsung Internet", re.compile(r"SamsungBrowser/([\d.]+)")),
    ("Vivaldi", re.compile(r"Vivaldi/([\d.]+)")),
    ("Firefox", re.compile(r"(?:Firefox|FxiOS)/([\d.]+)")),
    ("Google Chrome", re.compile(r"(?:Chrome|CriOS)/([\d.]+)")),
    ("Chromium", re.compile(r"Chromium/([\d.]+)")),
    ("Internet Explorer", re.compile(r"(?:MSIE |Trident/.*rv:)([\d.]+)")),
)

_SAFARI_VERSION = re.compile(r"Version/([\d.]+).*Safari/")

_OS_RULES: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("Windows", re.compile(r"Windows NT ([\d.]+)")),
    ("iOS", re.compile(r"(?:iPhone|iPad|iPod).*? OS ([\d_]+)")),
    ("Android", re.compile(r"Android ([\d.]+)")),
    ("Chrome OS", re.compile(r"CrOS \S+ ([\d.]+)")),
    ("Mac OS", re.compile(r"Mac OS X ([\d_.]+)")),
)

_WINDOWS_VERSIONS = {
    "10.0": "10",
    "6.3": "8.1",
    "6.2": "8",
    "6.1": "7",
    "6.0": "Vista",
    "5.1": "XP",
}

_MAJOR_VERSION = re.compile(r"^\d+$")


@dataclass
class ParsedUserAgent:
    """Browser and operating system extracted from a user-agent."""

    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None


def _parse_browser(user_agent: str) -> Tuple[Optional[str], Optional[str]]:
    for name, pattern in _BROWSER_RULES:
        match = pattern.search(user_agent)
        if match:
            return name, match.group(1)

    match = _SAFARI_VERSION.search(user_agent)
    if match:
        mobile = "Mobile/" in user_agent and ("iPhone" in user_agent or "iPad" in user_agent)
        return ("iOS Safari" if mobile else "Safari"), match.group(1)

    return None, None


def _parse_os(user_agent: str) -> Tuple[Optional[str], Optional[str]]:
    for name, pattern in _OS_RULES:
        match = pattern.search(user_agent)
        if not match:
            continue
        version = match.group(1).replace("_", ".")
        if name == "Windows":
            version = _WINDOWS_VERSIONS.get(version, version)
        return name, version

    if "Linux" in user_agent:
        return "Linux", None

    return None, None


def parse_user_agent(user_agent: Optional[str]) -> ParsedUserAgent:
    """Parse a user-agent into browser and OS fields.

    Unknown or empty input yields a ParsedUserAgent with None fields.
    """
    if not user_agent or not isinstance(user_agent, str):
        return ParsedUserAgent()

    browser_name, browser_version = _parse_browser(user_agent)
    os_name, os_version = _parse_os(user_agent)

    return ParsedUserAgent(
        browser_name=browser_name,
        browser_version=browser_version,
        os_name=os_name,
        os_version=os_version,
    )


def extract_major_version(browser_version: Optional[str]) -> Optional[str]:
    """Return the first dotted segment of a version when it is purely numeric.

    >>> extract_major_version("120.0.6099.109")
    '120'
    """
    if not browser_version or not isinstance(browser_version, str):
        return None

    first_segment = browser_version.strip().split(".")[0].strip()
    if not _MAJOR_VERSION.match(first_segment):
        return None
    return first_segment
