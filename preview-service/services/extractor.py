import logging

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from models.preview import LinkPreview
from services.errors import ParseError

logger = logging.getLogger(__name__)

META_FIELDS = ("icon", "name", "title", "description")


def _keep_first_src(attrs, key, value):
    # a repeated attribute replaces the earlier one, except src
    if key != "src":
        attrs[key] = value


def parse_html(body: bytes) -> BeautifulSoup:
    try:
        # rel stays a plain string
        return BeautifulSoup(
            body,
            "html.parser",
            multi_valued_attributes=None,
            on_duplicate_attribute=_keep_first_src,
        )
    except ParserRejectedMarkup as exc:
        raise ParseError(f"could not parse document: {exc}") from exc


def extract_preview(body: bytes, link: str) -> LinkPreview:
    """
    Walk the document once, in document order, and collect preview fields.

    Later elements overwrite earlier ones for the single-valued fields, so the
    last icon-setting ``meta``/``link`` wins. ``link`` is the URL the body was
    fetched from.
    """
    soup = parse_html(body)

    fields = dict.fromkeys(META_FIELDS, "")
    images = []

    for node in soup.descendants:
        if not isinstance(node, Tag):
            continue

        match node.name:
            case "meta":
                name = node.get("name")
                if name in META_FIELDS:
                    fields[name] = node.get("content", "")
            case "link":
                if node.get("rel") == "icon":
                    fields["icon"] = node.get("href", "")
            case "img":
                src = node.get("src")
                if src is not None:
                    images.append(src)
            case "title":
                fields["title"] = node.get_text().strip()

    logger.debug("Extracted %d images from %s", len(images), link)
    return LinkPreview(images=images, link=link, **fields)
