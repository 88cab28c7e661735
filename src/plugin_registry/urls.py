"""Repository and homepage URL normalization.

Pure functions: no network access, and bad input degrades to ``None``.
"""

from __future__ import annotations

from urllib.parse import urlsplit


def extract_repository_url(raw: str | None) -> str | None:
    """Turn an npm ``repository.url`` into a browsable URL.

    Rewrites run in a fixed order so combined forms such as
    ``git+https://github.com/a/b.git`` normalize in one pass. Note that
    ``git+ssh://git@github.com/a/b.git`` becomes ``ssh://git@github.com/a/b``,
    which ``validate_url`` then rejects.
    """
    if not raw:
        return None

    url = raw
    if url.startswith("git+"):
        url = url[len("git+") :]
    if url.endswith(".git"):
        url = url[: -len(".git")]
    if url.startswith("git://"):
        url = "https://" + url[len("git://") :]
    if url.startswith("git@github.com:"):
        url = "https://github.com/" + url[len("git@github.com:") :]
    return url


def validate_url(raw: str | None) -> str | None:
    """Return ``raw`` unchanged if it is an absolute http(s) URL, else ``None``."""
    if not raw:
        return None
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    try:
        # Raises on malformed ports and bracketed hosts.
        parts.port  # noqa: B018
    except ValueError:
        return None
    return raw
