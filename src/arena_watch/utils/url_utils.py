from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

ARENA_BLOCK_BASE_URL = "https://www.are.na/block/"


def block_url(item_id: str | int) -> str:
    return f"{ARENA_BLOCK_BASE_URL}{str(item_id).strip()}"


def with_query_params(url: str, **params: str | int) -> str:
    """Return ``url`` with ``params`` set, replacing any existing values."""
    parsed = urlsplit((url or "").strip())

    overridden = {key for key in params}
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in overridden
    ]
    query.extend((key, str(value)) for key, value in params.items())

    return urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, urlencode(query, doseq=True), "")
    )


def join_path(base_url: str, path: str) -> str:
    base = (base_url or "").strip().rstrip("/")
    return f"{base}/{path.lstrip('/')}"
