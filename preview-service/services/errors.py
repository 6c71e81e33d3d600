class PreviewError(Exception):
    """Base class for every failure of the preview pipeline."""

    kind = "preview"


class InvalidURLError(PreviewError):
    kind = "invalid_url"


class InvalidRedirectLimitError(PreviewError):
    kind = "invalid_redirect_limit"


class NormalizationError(PreviewError):
    """Percent-decoding failed while rewriting a #! URL."""

    kind = "normalization"


class TooManyRedirectsError(PreviewError):
    kind = "too_many_redirects"

    def __init__(self, hops: int):
        super().__init__(f"exceeded max redirects: {hops}")
        self.hops = hops


class TransportError(PreviewError):
    kind = "transport"


class HTTPStatusError(PreviewError):
    kind = "http_status"

    def __init__(self, status_code: int):
        super().__init__(f"unexpected status code: {status_code}")
        self.status_code = status_code


class BodyReadError(PreviewError):
    kind = "body_read"


class ParseError(PreviewError):
    kind = "parse"
