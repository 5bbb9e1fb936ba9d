"""Cookie header parsing."""


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers. Pairs without
    ``=`` are skipped; a repeated name keeps its first value, the way
    browsers order the more specific cookie first.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies.setdefault(key.strip(), value.strip())
    return cookies
