"""User-Agent rotation and matching browser-fingerprint headers."""

import random
import re
from typing import Dict, List, Optional


# Desktop browsers common among Canadian shoppers
USER_AGENTS: List[str] = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    # Firefox on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) Gecko/20100101 Firefox/133.0",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
    # Chrome on Linux
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
ACCEPT_JSON = "application/json, text/plain, */*"
ACCEPT_LANGUAGE = "en-CA,en-US;q=0.9,en;q=0.8,fr-CA;q=0.6"
DEFAULT_REFERER = "https://www.google.ca/"


def get_random_user_agent() -> str:
    """Get a random user-agent string from the pool.

    Returns:
        Random user-agent string
    """
    return random.choice(USER_AGENTS)


def _platform_for(user_agent: str) -> str:
    if "Windows" in user_agent:
        return '"Windows"'
    if "Macintosh" in user_agent:
        return '"macOS"'
    return '"Linux"'


def _client_hints(user_agent: str) -> Dict[str, str]:
    """sec-ch-ua headers, only sent by Chromium-based browsers."""
    match = re.search(r"Chrome/(\d+)", user_agent)
    if not match:
        return {}

    major = match.group(1)
    if "Edg/" in user_agent:
        brand = f'"Microsoft Edge";v="{major}"'
    else:
        brand = f'"Google Chrome";v="{major}"'
    return {
        "sec-ch-ua": f'"Chromium";v="{major}", {brand}, "Not_A Brand";v="24"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": _platform_for(user_agent),
    }


def build_browser_headers(
    user_agent: Optional[str] = None,
    referer: Optional[str] = None,
    accept_json: bool = False,
) -> Dict[str, str]:
    """Build a coherent header set for one request attempt.

    The companion headers are chosen to match the User-Agent so the
    fingerprint does not contradict itself (no client hints on Firefox).

    Args:
        user_agent: Specific UA to use, random from the pool if None
        referer: Referer to send, defaults to a Google Canada search
        accept_json: Ask for JSON instead of HTML

    Returns:
        Header dict ready for httpx
    """
    user_agent = user_agent or get_random_user_agent()

    headers = {
        "User-Agent": user_agent,
        "Accept": ACCEPT_JSON if accept_json else ACCEPT_HTML,
        "Accept-Language": ACCEPT_LANGUAGE,
        "Accept-Encoding": "gzip, deflate",
        "Referer": referer or DEFAULT_REFERER,
        "Connection": "keep-alive",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }

    if accept_json:
        headers["X-Requested-With"] = "XMLHttpRequest"
        headers["Sec-Fetch-Mode"] = "cors"
        headers["Sec-Fetch-Dest"] = "empty"
    else:
        headers["Upgrade-Insecure-Requests"] = "1"
        headers["Sec-Fetch-Mode"] = "navigate"
        headers["Sec-Fetch-Dest"] = "document"
        headers["Sec-Fetch-User"] = "?1"
    headers["Sec-Fetch-Site"] = "same-origin" if referer else "cross-site"

    headers.update(_client_hints(user_agent))
    return headers
