"""Media types, XML namespaces and sniffing states."""

from enum import Enum

# Namespaces
XHTML_NS = "http://www.w3.org/1999/xhtml"
SVG_NS = "http://www.w3.org/2000/svg"
MATHML_NS = "http://www.w3.org/1998/Math/MathML"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
OPS_NS = "http://www.idpf.org/2007/ops"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
SMIL_NS = "http://www.w3.org/ns/SMIL"
PLS_NS = "http://www.w3.org/2005/01/pronunciation-lexicon"

# Media types
EPUB_MIMETYPE = "application/epub+zip"
OPF_TYPE = "application/oebps-package+xml"
XHTML_TYPE = "application/xhtml+xml"
SVG_TYPE = "image/svg+xml"
NCX_TYPE = "application/x-dtbncx+xml"
SMIL_TYPE = "application/smil+xml"
PLS_TYPE = "application/pls+xml"
XML_TYPE = "application/xml"
CSS_TYPE = "text/css"
JAVASCRIPT_TYPE = "text/javascript"
OPENTYPE_TYPE = "application/vnd.ms-opentype"
WOFF_TYPE = "application/font-woff"
OGG_TYPE = "application/ogg"
MP4_TYPE = "video/mp4"

ROOT_NAMESPACE_TYPES = {
    XHTML_NS: XHTML_TYPE,
    SVG_NS: SVG_TYPE,
    NCX_NS: NCX_TYPE,
    SMIL_NS: SMIL_TYPE,
    PLS_NS: PLS_TYPE,
}

# Extensions that must parse as XML
XML_EXTENSIONS = frozenset(
    {"ncx", "pls", "smil", "svg", "svgz", "xhtml", "xht", "xml"}
)

# Declaring one of these on a file that does not sniff as it is an error
RELIABLY_SNIFFED_TYPES = frozenset(
    {
        "application/font-woff",
        "application/ogg",
        "application/pdf",
        "application/vnd.ms-opentype",
        "application/xml",
        "audio/mp4",
        "audio/mpeg",
        "audio/ogg",
        "image/gif",
        "image/jpeg",
        "image/png",
        "video/mp4",
        "video/ogg",
        "video/webm",
    }
)

# Declared subtype allowed to narrow a generic sniffed container type
CONTAINER_NARROWING = {
    OGG_TYPE: frozenset({"audio/ogg", "video/ogg"}),
    MP4_TYPE: frozenset({"audio/mp4"}),
}


class SniffState(str, Enum):
    """Intermediate state of content sniffing."""

    UNDETERMINED = "undetermined"
    PENDING_XML_CHECK = "pending_xml_check"
    PENDING_GZIP_UNWRAP = "pending_gzip_unwrap"
    PENDING_TEXT_CHECK = "pending_text_check"
    UTF16_SUSPECTED = "utf16_suspected"
    RESOLVED = "resolved"
