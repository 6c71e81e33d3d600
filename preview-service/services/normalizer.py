"""
Escaped-fragment URL rewriting.

Pages routed client-side with ``#!`` fragments expose a crawlable snapshot at
the same URL with the fragment moved into an ``_escaped_fragment_=`` query
parameter. Only a handful of characters are percent-encoded in that parameter;
everything else is copied as is.
"""
import re
from urllib.parse import quote, unquote_plus, urlsplit

from models.preview import TargetReference
from services.errors import InvalidURLError, NormalizationError

ESCAPED_FRAGMENT = "_escaped_fragment_="
HASHBANG = "#!"

_FRAGMENT_RE = re.compile(r"#!(.*)", re.DOTALL)
_BAD_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_AVOID_CHARS = frozenset(" \r\n")
_ESCAPE_CHARS = frozenset("&?=#%")


def needs_escaped_fragment(url: str) -> bool:
    return HASHBANG in url or ESCAPED_FRAGMENT in url


def _percent_decode(url: str) -> str:
    bad = _BAD_PERCENT_RE.search(url)
    if bad:
        raise NormalizationError(f"invalid percent escape at position {bad.start()} in {url!r}")
    # "+" becomes a space; bytes that are not UTF-8 become U+FFFD
    return unquote_plus(url, errors="replace")


def _escape_fragment_body(body: str) -> str:
    out = [ESCAPED_FRAGMENT]
    for ch in body:
        if ch in _AVOID_CHARS:
            continue
        if ch in _ESCAPE_CHARS:
            out.append(quote(ch, safe=""))
        else:
            out.append(ch)
    return "".join(out)


def _query_joiner(url: str) -> str:
    try:
        query = urlsplit(url).query
    except ValueError as exc:
        raise InvalidURLError(f"Invalid URL: {url}") from exc
    return "&" if query else "?"


def to_escaped_fragment_url(url: str) -> str:
    """
    Rewrite ``http://h/path#!state`` into ``http://h/path?_escaped_fragment_=state``.

    The first ``#!`` wins and the rest of the string, further ``#`` included,
    becomes the parameter value.
    """
    decoded = _percent_decode(url)
    joiner = _query_joiner(url)

    match = _FRAGMENT_RE.search(decoded)
    if match:
        replacement = joiner + _escape_fragment_body(match.group(1))
        rewritten = decoded[: match.start()] + replacement + decoded[match.end():]
    else:
        rewritten = decoded + joiner + ESCAPED_FRAGMENT

    try:
        urlsplit(rewritten)
    except ValueError as exc:
        raise InvalidURLError(f"Invalid URL after fragment rewrite: {rewritten}") from exc
    return rewritten


def resolve_target(url: str) -> TargetReference:
    if ESCAPED_FRAGMENT in url:
        return TargetReference(original=url, derived=url)
    if HASHBANG in url:
        return TargetReference(original=url, derived=to_escaped_fragment_url(url))
    return TargetReference(original=url)
