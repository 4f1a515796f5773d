"""Shared utilities for the listing scrapers."""

from __future__ import annotations

from typing import Any

# Fixed browser-like header profile; only the User-Agent rotates.
BROWSER_HEADER_PROFILE: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


def build_browser_headers(
    user_agent: str,
    overrides: dict[str, str] | None = None,
) -> dict[str, str]:
    """Build browser-like request headers.

    Args:
        user_agent: User-Agent value for this request
        overrides: Caller-supplied headers, applied last
    """
    headers: dict[str, str] = {"User-Agent": user_agent, **BROWSER_HEADER_PROFILE}
    if overrides:
        headers.update(overrides)
    return headers


def find_key(data: Any, key: str, max_depth: int = 12) -> Any | None:
    """Depth-first search for the first value stored under ``key``."""
    if max_depth < 0:
        return None
    if isinstance(data, dict):
        if key in data:
            return data[key]
        for value in data.values():
            found = find_key(value, key, max_depth - 1)
            if found is not None:
                return found
    elif isinstance(data, list):
        for item in data:
            found = find_key(item, key, max_depth - 1)
            if found is not None:
                return found
    return None


def dig(data: Any, *path: str) -> Any | None:
    """Walk nested dicts along ``path``, returning None at the first miss."""
    current = data
    for part in path:
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current
