"""
URL helpers shared by the renderer and the routes.
"""

from typing import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def origin_of(url: str) -> str:
    """
    Return scheme://host[:port] for a URL.

    Default ports are dropped so that "https://a.com:443/x" and
    "https://a.com/y" share an origin.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def is_same_origin(url: str, other: str) -> bool:
    try:
        return origin_of(url) == origin_of(other)
    except ValueError:
        # Malformed port
        return False


def with_query_param(url: str, name: str, value: str = "") -> str:
    """Set (or replace) a query parameter, keeping the rest of the URL intact."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    query.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


def build_page_url(origin: str, params: Mapping[str, str], keep: Iterable[str]) -> str:
    """
    Build the URL of the site root with only the page-affecting parameters.

    Anything not listed in `keep` (cache busting flags, render toggles)
    is dropped so that it does not become part of the cache key.
    """
    keep = list(keep)
    query = [(name, params[name]) for name in keep if name in params]
    url = origin.rstrip("/") + "/"
    if query:
        url += "?" + urlencode(query)
    return url


def strip_tracking_params(url: str) -> str:
    """Remove utm_* campaign parameters from a link."""
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.startswith("utm_")
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))
