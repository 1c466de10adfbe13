"""Media type detection from file content.

Signatures are tried first, then a couple of narrow binary heuristics (MP3
frames without ID3 tag, ISO base media `ftyp` boxes), then an XML parse with
an HTML fallback, and finally extension/declared-type based guesses for CSS
and JavaScript. The detected type is then reconciled with the type declared
in the manifest.
"""

import gzip
import logging
import zlib
from dataclasses import dataclass, field

import lxml.html
from lxml import etree

from epub_pack.core.errors import FatalError
from epub_pack.core.reporter import Reporter
from epub_pack.core.xmltree import namespace, parse_xml
from epub_pack.models.media import (
    CONTAINER_NARROWING,
    CSS_TYPE,
    JAVASCRIPT_TYPE,
    MP4_TYPE,
    OGG_TYPE,
    OPENTYPE_TYPE,
    RELIABLY_SNIFFED_TYPES,
    ROOT_NAMESPACE_TYPES,
    WOFF_TYPE,
    XHTML_NS,
    XHTML_TYPE,
    XML_EXTENSIONS,
    XML_TYPE,
    SniffState,
)

log = logging.getLogger(__name__)

JAVASCRIPT_TYPES = frozenset({"text/javascript", "application/javascript"})


@dataclass(frozen=True)
class Signature:
    """A byte prefix and what it means.

    When `follow_ups` is non-empty the prefix alone is not conclusive: one of
    the follow-ups must match the bytes right after it.
    """

    prefix: bytes
    state: SniffState = SniffState.RESOLVED
    media_type: str | None = None
    follow_ups: tuple["Signature", ...] = ()


XML_DECLARATION = Signature(b"<?xml", SniffState.PENDING_XML_CHECK)
CSS_CHARSET = Signature(b'@charset "', SniffState.PENDING_TEXT_CHECK, CSS_TYPE)

# First bytes must be unique; see _build_dispatch()
MAGIC_NUMBERS = (
    Signature(
        b"GIF8",
        follow_ups=(
            Signature(b"7a", media_type="image/gif"),
            Signature(b"9a", media_type="image/gif"),
        ),
    ),
    Signature(b"\x89PNG\r\n\x1a\n", media_type="image/png"),
    Signature(b"\xff\xd8\xff", media_type="image/jpeg"),
    Signature(b"\x00\x01\x00\x00", media_type=OPENTYPE_TYPE),
    Signature(
        b"O",
        follow_ups=(
            Signature(b"TTO", media_type=OPENTYPE_TYPE),
            Signature(b"ggS\x00", media_type=OGG_TYPE),
        ),
    ),
    Signature(b"wOFF", media_type=WOFF_TYPE),
    Signature(b"ID3", media_type="audio/mpeg"),
    Signature(b"\x1a\x45\xdf\xa3", media_type="video/webm"),
    Signature(b"%PDF-", media_type="application/pdf"),
    XML_DECLARATION,
    Signature(b"\xef\xbb\xbf", follow_ups=(XML_DECLARATION, CSS_CHARSET)),
    Signature(b"\x1f\x8b\x08", SniffState.PENDING_GZIP_UNWRAP),
    CSS_CHARSET,
    Signature(b"\xfe\xff", SniffState.UTF16_SUSPECTED),
)


def _build_dispatch(signatures: tuple[Signature, ...]) -> dict[int, Signature]:
    dispatch: dict[int, Signature] = {}
    for signature in signatures:
        first = signature.prefix[0]
        if first in dispatch:
            raise ValueError(f"Ambiguous magic number first byte 0x{first:02X}")
        dispatch[first] = signature
    return dispatch


MAGIC_DISPATCH = _build_dispatch(MAGIC_NUMBERS)


@dataclass(frozen=True)
class Sniff:
    """Outcome of the byte-level checks."""

    state: SniffState = SniffState.UNDETERMINED
    media_type: str | None = None


UNDETERMINED = Sniff()


@dataclass
class Classification:
    """Result of classifying one file."""

    media_type: str | None
    tree: etree._ElementTree | None = field(default=None, repr=False)
    converted: bool = False


def _match(signature: Signature, data: bytes, offset: int) -> Sniff:
    end = offset + len(signature.prefix)
    if data[offset:end] != signature.prefix:
        return UNDETERMINED
    if not signature.follow_ups:
        return Sniff(signature.state, signature.media_type)
    for follow_up in signature.follow_ups:
        sniff = _match(follow_up, data, end)
        if sniff is not UNDETERMINED:
            return sniff
    return UNDETERMINED


def sniff_magic(data: bytes) -> Sniff:
    """Look the file up in the magic number table."""
    if not data:
        return UNDETERMINED
    signature = MAGIC_DISPATCH.get(data[0])
    if signature is None:
        return UNDETERMINED
    return _match(signature, data, 0)


def sniff_ff(data: bytes) -> Sniff:
    """Tell UTF-16LE text from an MPEG audio frame without ID3 tag."""
    if len(data) < 2 or data[0] != 0xFF:
        return UNDETERMINED
    second = data[1]
    if second == 0xFE:
        return Sniff(SniffState.UTF16_SUSPECTED)
    if second & 0xFE == 0xFA:
        return Sniff(SniffState.RESOLVED, "audio/mpeg")
    return UNDETERMINED


def sniff_mp4(data: bytes) -> str | None:
    """Recognize an ISO base media file whose ftyp box lists an mp4 brand."""
    length = len(data)
    if length < 12:
        return None
    box_size = int.from_bytes(data[0:4], "big")
    if box_size > length or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    if data[8:11] == b"mp4":
        return MP4_TYPE
    # Skip the rest of the major brand and the minor version
    offset = 16
    while offset < box_size:
        brand = data[offset : offset + 3]
        if len(brand) < 3:
            return None
        if brand == b"mp4":
            return MP4_TYPE
        offset += 4
    return None


def _confirm_text(sniff: Sniff, data: bytes) -> Sniff:
    """Accept a text signature only if the file is valid UTF-8."""
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return UNDETERMINED
    return Sniff(SniffState.RESOLVED, sniff.media_type)


def _try_parse(payload: bytes) -> tuple[etree._ElementTree | None, str | None]:
    try:
        return parse_xml(payload), None
    except etree.XMLSyntaxError as e:
        return None, str(e)


def recover_html(payload: bytes) -> etree._ElementTree | None:
    """Parse tag soup and rebuild it as an XHTML-namespaced tree."""
    try:
        document = lxml.html.document_fromstring(payload)
    except (etree.ParserError, ValueError):
        return None
    lxml.html.html_to_xhtml(document)
    root = etree.Element(f"{{{XHTML_NS}}}html", nsmap={None: XHTML_NS})
    for name, value in document.attrib.items():
        if name != "xmlns":
            root.set(name, value)
    root.text = document.text
    for child in list(document):
        root.append(child)
    return root.getroottree()


def type_for_root(tree: etree._ElementTree, declared_type: str | None) -> str:
    """Pick the media type from the namespace of the root element."""
    media_type = ROOT_NAMESPACE_TYPES.get(namespace(tree.getroot()))
    if media_type is not None:
        return media_type
    if declared_type is not None and declared_type.endswith("+xml"):
        return declared_type
    return XML_TYPE


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot + 1 :].lower()


def classify(
    data: bytes,
    path: str,
    declared_type: str | None = None,
    reporter: Reporter | None = None,
) -> Classification:
    """Determine the media type of `data`, stored in the archive at `path`.

    Returns a Classification whose media type is None when nothing could be
    determined and nothing was declared. Raises FatalError for empty files,
    ill-formed files that must be XML, UTF-16 stylesheets and scripts, and
    declared types the content clearly does not have.
    """
    reporter = reporter or Reporter()
    if not data:
        raise FatalError(f"File {path} is empty.")

    sniff = sniff_magic(data)
    if sniff.state == SniffState.UNDETERMINED:
        if data[0] == 0xFF:
            sniff = sniff_ff(data)
        else:
            mp4 = sniff_mp4(data)
            if mp4 is not None:
                sniff = Sniff(SniffState.RESOLVED, mp4)
    elif sniff.state == SniffState.PENDING_TEXT_CHECK:
        sniff = _confirm_text(sniff, data)

    media_type = sniff.media_type if sniff.state == SniffState.RESOLVED else None
    utf16 = sniff.state == SniffState.UTF16_SUSPECTED
    ext = _extension(path)
    tree = None
    converted = False

    if media_type is None:
        has_xml_ext = ext in XML_EXTENSIONS
        must_be_xml = (
            has_xml_ext
            or sniff.state == SniffState.PENDING_XML_CHECK
            or (declared_type is not None and declared_type.endswith("+xml"))
        )
        payload = data
        parser_error = None
        if sniff.state == SniffState.PENDING_GZIP_UNWRAP:
            try:
                payload = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as e:
                payload = None
                parser_error = f"gzip: {e}"
        if payload is not None:
            tree, parser_error = _try_parse(payload)

        wants_html = (declared_type == XHTML_TYPE and not has_xml_ext) or (
            declared_type is None and ext in ("html", "htm")
        )
        no_namespace = tree is None or namespace(tree.getroot()) is None
        if no_namespace and wants_html and payload is not None:
            recovered = recover_html(payload)
            if recovered is not None:
                tree = recovered
                converted = True
                reporter.info(f"Converted {path} from HTML to XHTML.")

        if tree is not None:
            media_type = type_for_root(tree, declared_type)
        elif must_be_xml:
            raise FatalError(f"Purported XML file {path} is not well-formed: {parser_error}")

    if media_type is None and (
        (ext == "css" and declared_type is None) or declared_type == CSS_TYPE
    ):
        if utf16:
            raise FatalError(
                f"CSS file {path} is UTF-16-encoded. EPUB requires UTF-8 and "
                "conversion is not supported."
            )
        media_type = CSS_TYPE

    if media_type is None and (
        (ext == "js" and declared_type is None) or declared_type in JAVASCRIPT_TYPES
    ):
        if utf16:
            raise FatalError(
                f"JavaScript file {path} is UTF-16-encoded. EPUB requires UTF-8 "
                "and conversion is not supported."
            )
        media_type = declared_type if declared_type in JAVASCRIPT_TYPES else JAVASCRIPT_TYPE

    return Classification(
        media_type=reconcile_declared(media_type, declared_type, path, reporter),
        tree=tree,
        converted=converted,
    )


def reconcile_declared(
    media_type: str | None,
    declared_type: str | None,
    path: str,
    reporter: Reporter,
) -> str | None:
    """Settle the sniffed type against the declared one."""
    if media_type is not None:
        if declared_type is None or declared_type == media_type:
            return media_type
        if declared_type in CONTAINER_NARROWING.get(media_type, ()):
            return declared_type
        reporter.err(
            f"File {path} was declared to be of type {declared_type} but is "
            f"actually of type {media_type}. Adjusting manifest accordingly."
        )
        return media_type

    if declared_type in RELIABLY_SNIFFED_TYPES:
        raise FatalError(
            f"File {path} was declared to be of type {declared_type}, but it "
            "is not of that type."
        )
    if declared_type is not None:
        log.debug(f"Trusting declared type {declared_type} of {path}")
    return declared_type
