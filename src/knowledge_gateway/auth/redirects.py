"""Redirect URI validation."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def is_absolute_url(uri: str) -> bool:
    """True for URLs with a scheme and a host."""
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.hostname)


def is_redirect_allowed(redirect_uri: str, allowed_uris: list[str]) -> bool:
    """Check ``redirect_uri`` against a client's allow-list.

    Loopback hosts are always accepted so that desktop clients can listen
    on an ephemeral port. Otherwise the URI must match an entry exactly, or
    its host must be a subdomain of a ``*.domain`` entry.
    """
    if not is_absolute_url(redirect_uri):
        return False

    hostname = (urlsplit(redirect_uri).hostname or "").lower()
    if hostname in LOOPBACK_HOSTS:
        return True

    for allowed in allowed_uris:
        if allowed == redirect_uri:
            return True
        if allowed.startswith("*."):
            domain = allowed[2:].lower()
            if domain and hostname.endswith(f".{domain}"):
                return True
    return False


def append_query(url: str, params: dict[str, str | None]) -> str:
    """Add query parameters to ``url``, keeping the ones already present."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, value) for key, value in params.items() if value is not None)
    return urlunsplit(parts._replace(query=urlencode(query)))
