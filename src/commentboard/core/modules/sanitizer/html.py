"""Allow-list HTML sanitization for comment text."""

from collections.abc import Iterable
from urllib.parse import urlsplit

import structlog
from bs4 import BeautifulSoup
from bs4.element import Comment as HtmlComment

logger = structlog.get_logger(__name__)

ALLOWED_TAGS: frozenset[str] = frozenset({"a", "code", "i", "strong"})

# Attributes kept on allowed tags; everything else is stripped
ALLOWED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "title"}),
}

# Elements whose content is never text meant for readers
_DROPPED_WITH_CONTENT = frozenset({"script", "style", "iframe", "object", "embed", "template", "noscript", "textarea"})

_SAFE_URL_SCHEMES = frozenset({"http", "https", "mailto"})


def is_safe_url(url: str) -> bool:
    """Check that a link target uses an allowed scheme (or is relative). Unparseable URLs are unsafe."""
    try:
        scheme = urlsplit(url.strip()).scheme.lower()
    except ValueError:
        return False
    return scheme == "" or scheme in _SAFE_URL_SCHEMES


def sanitize_html(raw: str, allowed_tags: Iterable[str] = ALLOWED_TAGS) -> str:
    """Reduce an HTML fragment to the allowed tags.

    Disallowed tags are unwrapped (their text is kept and escaped), except for script-like
    elements which are removed together with their content. HTML comments are dropped.

    Args:
        raw: Untrusted HTML fragment
        allowed_tags: Tag names allowed to remain as markup

    Returns:
        Sanitized fragment. Never raises; on unexpected parser failure returns an empty string.
    """
    allowed = frozenset(tag.lower() for tag in allowed_tags)
    try:
        soup = BeautifulSoup(raw, "html.parser")

        for node in soup.find_all(string=lambda text: isinstance(text, HtmlComment)):
            node.extract()

        for tag in soup.find_all(list(_DROPPED_WITH_CONTENT - allowed)):
            if not tag.decomposed:
                tag.decompose()

        for tag in soup.find_all(True):
            if tag.name not in allowed:
                tag.unwrap()
                continue

            kept = ALLOWED_ATTRIBUTES.get(tag.name, frozenset())
            tag.attrs = {name: value for name, value in tag.attrs.items() if name in kept}
            href = tag.attrs.get("href")
            if isinstance(href, str) and not is_safe_url(href):
                del tag.attrs["href"]

        return str(soup)
    except Exception:
        logger.exception("sanitize_failed")
        return ""
