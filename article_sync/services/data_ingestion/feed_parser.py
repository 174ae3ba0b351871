"""
RSS/Atom document parsing.

Turns one raw feed document into NormalizedArticle records. Structure
is read with ElementTree; text is then entity-decoded and image URLs
are resolved through a per-source fallback chain.
"""

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from itertools import islice
from types import MappingProxyType
from typing import Iterator, Optional
from xml.etree import ElementTree

from article_sync.models.domain import NormalizedArticle, utcnow
from article_sync.services.data_ingestion.base import SourceDescriptor

logger = logging.getLogger(__name__)

DEFAULT_ITEM_LIMIT = 100

# XML namespaces
ATOM_NS = "{http://www.w3.org/2005/Atom}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"
MEDIA_NS = "{http://search.yahoo.com/mrss/}"
DC_NS = "{http://purl.org/dc/elements/1.1/}"

# Logos
TECHCRUNCH_LOGO = (
    "https://upload.wikimedia.org/wikipedia/commons/thumb/b/b9/"
    "TechCrunch_logo.svg/2560px-TechCrunch_logo.svg.png"
)
ENGADGET_LOGO = (
    "https://static.tumblr.com/ea8828fc01b1c071a0dee325bea11572/s7zj4yw/FwVo10l6n/"
    "tumblr_static_tumblr_static_dyzju4tuhoo4kk8ckgogw4ggc_focused_v3.png"
)

# Used when an item carries no image of its own
SOURCE_FALLBACK_IMAGES = MappingProxyType({
    "techcrunch": TECHCRUNCH_LOGO,
    "engadget": ENGADGET_LOGO,
})

# Sources whose feeds attach non-image media; only medium="image" counts
MEDIUM_IMAGE_ONLY_SOURCES = frozenset({"engadget"})

_NAMED_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
)
_DECIMAL_REF = re.compile(r"&#(\d+);")
_HEX_REF = re.compile(r"&#x([\da-fA-F]+);")
_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>")
_IMG_SRC = re.compile(r"""<img[^>]*src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)

_XML_ENTITY_NAMES = frozenset({"amp", "lt", "gt", "quot", "apos"})
_CDATA_SECTION = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_BARE_AMPERSAND = re.compile(r"&(?!#\d+;|#x[\da-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)")
_NAMED_REF = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_ROOT_TAG = re.compile(r"<(?:rss|feed|rdf:RDF)\b[^>]*>")
_XMLNS_DECL = re.compile(r"""xmlns(?::[\w.-]+)?=(?:"[^"]*"|'[^']*')""")
_ITEM_BLOCK = re.compile(r"<(item|entry)\b[^>]*>.*?</\1>", re.DOTALL)


# =============================================================================
# Text helpers
# =============================================================================

def _char_ref(match: re.Match, base: int) -> str:
    try:
        return chr(int(match.group(1), base))
    except (ValueError, OverflowError):
        return match.group(0)


def decode_entities(text: str) -> str:
    """
    Decode the five XML named entities and numeric character references.

    Named entities are replaced first, in order, then decimal and
    hexadecimal references. References outside the Unicode range are
    left untouched.
    """
    if not text:
        return ""

    for entity, char in _NAMED_ENTITIES:
        text = text.replace(entity, char)
    text = _DECIMAL_REF.sub(lambda m: _char_ref(m, 10), text)
    text = _HEX_REF.sub(lambda m: _char_ref(m, 16), text)
    return text


def strip_cdata(text: str) -> str:
    """Remove literal CDATA wrappers left in already-extracted text."""
    return _CDATA.sub(r"\1", text).strip()


def first_inline_image(html: str) -> Optional[str]:
    match = _IMG_SRC.search(html)
    return match.group(1) if match else None


def parse_timestamp(value: Optional[str], fallback: datetime) -> datetime:
    """
    Parse an RFC 822 or ISO-8601 timestamp into an aware UTC datetime.

    Anything unparsable gives the fallback (normally fetch time).
    """
    if not isinstance(value, str) or not value.strip():
        return fallback

    value = value.strip()
    parsed: Optional[datetime] = None

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, OverflowError):
            logger.debug(f"Unparsable date {value!r}, using fetch time")
            return fallback

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # offsets that push the value outside the datetime range
        logger.debug(f"Out-of-range date {value!r}, using fetch time")
        return fallback


def _inner_markup(element: Optional[ElementTree.Element]) -> str:
    """
    Text of an element including any child markup.

    Feeds sometimes embed unescaped XHTML in description elements;
    re-serialising the children keeps it visible to image lookup.
    """
    if element is None:
        return ""
    parts = [element.text or ""]
    for child in element:
        parts.append(ElementTree.tostring(child, encoding="unicode"))
    return "".join(parts)


def apply_source_fallbacks(article: NormalizedArticle) -> NormalizedArticle:
    """
    Source-level cleanup applied to every article before enrichment.

    TechCrunch headlines arrive double-escaped from both the feed and
    the aggregator API, and articles without art get the site logo.
    """
    if article.source_id != "techcrunch":
        return article

    return article.model_copy(update={
        "title": decode_entities(article.title).strip() or article.title,
        "image_url": article.image_url or TECHCRUNCH_LOGO,
    })


# =============================================================================
# Parsed feed
# =============================================================================

class ParsedFeed:
    """
    Articles of one feed document.

    Iteration is lazy and can be repeated; each pass walks the parsed
    tree again and stops after `limit` accepted articles.
    """

    def __init__(
        self,
        root: Optional[ElementTree.Element],
        source: SourceDescriptor,
        limit: int = DEFAULT_ITEM_LIMIT,
        fetched_at: Optional[datetime] = None,
    ):
        self._root = root
        self.source = source
        self.limit = limit
        self.fetched_at = fetched_at or utcnow()

    @property
    def is_atom(self) -> bool:
        return self._root is not None and self._root.tag == f"{ATOM_NS}feed"

    def __iter__(self) -> Iterator[NormalizedArticle]:
        if self._root is None:
            return iter(())
        return islice(self._iter_articles(), self.limit)

    def _iter_articles(self) -> Iterator[NormalizedArticle]:
        if self.is_atom:
            elements = self._root.iter(f"{ATOM_NS}entry")
            build = self._parse_atom_entry
        else:
            elements = self._root.iter("item")
            build = self._parse_rss_item

        ordinal = 0
        for element in elements:
            try:
                article = build(element, ordinal)
            except Exception as e:
                logger.warning(f"Failed to parse item from {self.source.name}: {e}")
                continue

            if article is None:
                continue

            ordinal += 1
            yield article

    def _parse_rss_item(
        self,
        item: ElementTree.Element,
        ordinal: int,
    ) -> Optional[NormalizedArticle]:
        """Parse a single RSS item."""
        title = strip_cdata(decode_entities(item.findtext("title", "").strip()))
        if not title:
            return None

        link = strip_cdata(item.findtext("link", "").strip())

        description_raw = _inner_markup(item.find("description"))
        encoded_raw = _inner_markup(item.find(f"{CONTENT_NS}encoded"))

        # Full content wins over the teaser
        body = encoded_raw if item.find(f"{CONTENT_NS}encoded") is not None else description_raw

        pub_date = item.findtext("pubDate") or item.findtext(f"{DC_NS}date")

        return self._build_article(
            title=title,
            link=link,
            body=body,
            html=description_raw + encoded_raw,
            item=item,
            pub_date=pub_date,
            ordinal=ordinal,
        )

    def _parse_atom_entry(
        self,
        entry: ElementTree.Element,
        ordinal: int,
    ) -> Optional[NormalizedArticle]:
        """Parse a single Atom entry."""
        title = strip_cdata(decode_entities(entry.findtext(f"{ATOM_NS}title", "").strip()))
        if not title:
            return None

        link = ""
        for link_elem in entry.findall(f"{ATOM_NS}link"):
            if link_elem.get("rel", "alternate") == "alternate":
                link = (link_elem.get("href") or "").strip()
                break

        summary_raw = _inner_markup(entry.find(f"{ATOM_NS}summary"))
        content_raw = _inner_markup(entry.find(f"{ATOM_NS}content"))
        body = content_raw if entry.find(f"{ATOM_NS}content") is not None else summary_raw

        pub_date = entry.findtext(f"{ATOM_NS}published") or entry.findtext(f"{ATOM_NS}updated")

        return self._build_article(
            title=title,
            link=strip_cdata(link),
            body=body,
            html=summary_raw + content_raw,
            item=entry,
            pub_date=pub_date,
            ordinal=ordinal,
        )

    def _build_article(
        self,
        title: str,
        link: str,
        body: str,
        html: str,
        item: ElementTree.Element,
        pub_date: Optional[str],
        ordinal: int,
    ) -> NormalizedArticle:
        return NormalizedArticle(
            identity=link or f"{title}-{ordinal}",
            title=title,
            description=decode_entities(body.strip()),
            url=link or None,
            image_url=self._resolve_image(item, html),
            published_at=parse_timestamp(pub_date, self.fetched_at),
            source_id=self.source.id,
            source_name=self.source.name,
        )

    def _resolve_image(self, item: ElementTree.Element, html: str) -> Optional[str]:
        """
        Pick the item's image.

        Order: per-source media rule, media:content, media:thumbnail,
        first <img> in the description or encoded content, source logo.
        """
        source_id = self.source.id
        image_url = None

        if source_id in MEDIUM_IMAGE_ONLY_SOURCES:
            for media in item.iter(f"{MEDIA_NS}content"):
                if media.get("medium") == "image" and media.get("url"):
                    image_url = media.get("url")
                    break
        else:
            image_url = (
                _first_media_url(item, f"{MEDIA_NS}content")
                or _first_media_url(item, f"{MEDIA_NS}thumbnail")
                or first_inline_image(html)
            )

        return image_url or SOURCE_FALLBACK_IMAGES.get(source_id)


def _first_media_url(item: ElementTree.Element, tag: str) -> Optional[str]:
    for media in item.iter(tag):
        url = media.get("url")
        if url:
            return url
    return None


def normalize_markup(document: str) -> str:
    """
    Make feed markup acceptable to an XML parser without changing its text.

    Outside CDATA sections, bare ampersands and HTML-only named entities
    (`&nbsp;`, `&mdash;`, ...) are escaped so they survive parsing as
    literal text, exactly as they appear in the feed.
    """
    parts = _CDATA_SECTION.split(document)
    for i in range(0, len(parts), 2):  # odd indexes are CDATA sections
        parts[i] = _BARE_AMPERSAND.sub("&amp;", parts[i])
        parts[i] = _NAMED_REF.sub(_escape_unknown_entity, parts[i])
    return "".join(parts)


def _escape_unknown_entity(match: re.Match) -> str:
    if match.group(1) in _XML_ENTITY_NAMES:
        return match.group(0)
    return f"&amp;{match.group(1)};"


def _recover_items(document: str, source: SourceDescriptor) -> Optional[ElementTree.Element]:
    """
    Rebuild a feed from its item/entry blocks, parsing each one separately.

    Used when the document as a whole is not well-formed; blocks that
    still fail to parse are logged and dropped.
    """
    root_tag = _ROOT_TAG.search(document)
    declarations = " ".join(_XMLNS_DECL.findall(root_tag.group(0))) if root_tag else ""
    recovered: list[ElementTree.Element] = []
    is_atom = False

    for match in _ITEM_BLOCK.finditer(document):
        is_atom = is_atom or match.group(1) == "entry"
        try:
            wrapper = ElementTree.fromstring(f"<recovered {declarations}>{match.group(0)}</recovered>")
        except ElementTree.ParseError as e:
            logger.warning(f"Skipping malformed item from {source.name}: {e}")
            continue
        recovered.extend(wrapper)

    if not recovered:
        return None

    root = ElementTree.Element(f"{ATOM_NS}feed" if is_atom else "rss")
    root.extend(recovered)
    logger.warning(f"Recovered {len(recovered)} items from malformed feed {source.name}")
    return root


def parse_feed(
    document: str,
    source: SourceDescriptor,
    limit: int = DEFAULT_ITEM_LIMIT,
    fetched_at: Optional[datetime] = None,
) -> ParsedFeed:
    """
    Parse a raw RSS or Atom document.

    When the document is not well-formed, its items are recovered one by
    one; a document with nothing recoverable yields an empty feed rather
    than an exception.
    """
    root = None
    markup = normalize_markup(document.lstrip("\ufeff").strip())
    try:
        root = ElementTree.fromstring(markup)
    except ElementTree.ParseError as e:
        logger.error(f"Failed to parse feed from {source.name}: {e}")
        root = _recover_items(markup, source)
    except Exception as e:
        logger.error(f"Unexpected error parsing feed from {source.name}: {e}")

    return ParsedFeed(root, source, limit=limit, fetched_at=fetched_at)
