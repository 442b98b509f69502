"""URL helpers."""

from urllib.parse import parse_qs, urlencode

CONVERSATION_QUERY_KEY = "conversation"


def absolute_url(path: str | None, origin: str) -> str | None:
    """Resolve a backend-relative image path against the API origin."""
    if not path or path.startswith(("http://", "https://", "data:")):
        return path
    if path.startswith("/"):
        return f"{origin}{path}"
    return f"{origin}/{path}"


def conversation_from_query(query: str | None) -> str | None:
    """Read the active conversation id from a ``?conversation=`` query string."""
    if not query:
        return None
    values = parse_qs(query.lstrip("?")).get(CONVERSATION_QUERY_KEY)
    if not values or not values[0]:
        return None
    return values[0]


def conversation_query(partner_id: str | None) -> str:
    """Build the query string that mirrors the active conversation."""
    if partner_id is None:
        return ""
    return "?" + urlencode({CONVERSATION_QUERY_KEY: partner_id})
