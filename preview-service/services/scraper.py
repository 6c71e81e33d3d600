import logging

from config import MAX_REDIRECTS
from models.preview import Document, TargetSource
from services.extractor import extract_preview
from services.fetcher import check_redirect_limit, fetch_body
from services.normalizer import resolve_target

logger = logging.getLogger(__name__)


def fetch_preview(url: str, max_redirects: int = MAX_REDIRECTS) -> Document:
    """
    Fetch a URL and return its body with the extracted preview.

    ``#!`` URLs are fetched through their escaped-fragment form, and that form
    is what ends up in ``preview.link``. Any failure raises a ``PreviewError``;
    there is no partial result.
    """
    check_redirect_limit(max_redirects)
    target = resolve_target(url)
    if target.source is TargetSource.ESCAPED_FRAGMENT:
        logger.debug("Using escaped fragment URL %s for %s", target.derived, url)

    body = fetch_body(target.active_url, max_redirects)
    preview = extract_preview(body, target.active_url)
    return Document(body=body, preview=preview)
