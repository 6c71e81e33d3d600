import logging
from urllib.parse import urlparse

import requests
from config import REQUEST_TIMEOUT
from services.errors import (
    BodyReadError,
    HTTPStatusError,
    InvalidRedirectLimitError,
    InvalidURLError,
    TooManyRedirectsError,
    TransportError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "link-preview-scraper"


def is_valid_url(url: str) -> bool:
    try:
        result = urlparse(url)
        return result.scheme in ("http", "https") and bool(result.netloc)
    except ValueError:
        return False


def check_redirect_limit(max_redirects) -> int:
    if isinstance(max_redirects, bool) or not isinstance(max_redirects, int) or max_redirects < 0:
        raise InvalidRedirectLimitError(f"max_redirects must be a non-negative integer, got {max_redirects!r}")
    return max_redirects


def _redirect_hops(exc: requests.TooManyRedirects, max_redirects: int) -> int:
    # requests raises on the hop after the last allowed one
    if exc.response is not None:
        return len(exc.response.history) + 1
    return max_redirects + 1


def fetch_body(url: str, max_redirects: int, timeout: float = REQUEST_TIMEOUT) -> bytes:
    """
    GET ``url`` and return the whole response body.

    Redirects are followed up to ``max_redirects`` hops. Only a final 200 counts
    as success.
    """
    check_redirect_limit(max_redirects)
    if not is_valid_url(url):
        raise InvalidURLError(f"Invalid URL: {url}")

    with requests.Session() as session:
        session.max_redirects = max_redirects
        try:
            response = session.get(
                url,
                timeout=timeout,
                headers={"User-Agent": USER_AGENT},
                allow_redirects=True,
                stream=True,
            )
        except requests.TooManyRedirects as exc:
            raise TooManyRedirectsError(_redirect_hops(exc, max_redirects)) from exc
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as exc:
            raise InvalidURLError(f"Invalid URL: {url}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc

        with response:
            if response.status_code != 200:
                raise HTTPStatusError(response.status_code)
            try:
                body = response.content
            except requests.RequestException as exc:
                raise BodyReadError(f"reading body of {url} failed: {exc}") from exc

    logger.debug("Fetched %d bytes from %s after %d redirects", len(body), url, len(response.history))
    return body
