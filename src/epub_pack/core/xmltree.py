"""Small helpers over lxml trees."""

import re
from typing import Iterator

from lxml import etree

from epub_pack.core.errors import FatalError

XML_WHITESPACE = re.compile(r"[ \t\r\n]+")

XML_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    load_dtd=False,
    huge_tree=True,
)


def parse_xml(data: bytes) -> etree._ElementTree:
    """Parse bytes as namespace-aware XML. Raises etree.XMLSyntaxError."""
    root = etree.fromstring(data, parser=XML_PARSER)
    return root.getroottree()


def serialize(tree: etree._ElementTree) -> bytes:
    return etree.tostring(tree, xml_declaration=True, encoding="utf-8")


def new_tree(ns: str, local: str) -> etree._ElementTree:
    """Create a document whose root element is in the default namespace `ns`."""
    root = etree.Element(qname(ns, local), nsmap={None: ns})
    return root.getroottree()


def qname(ns: str | None, local: str) -> str:
    return f"{{{ns}}}{local}" if ns else local


def is_element(node) -> bool:
    return isinstance(node.tag, str)


def namespace(element) -> str | None:
    return etree.QName(element).namespace


def local_name(element) -> str:
    return etree.QName(element).localname


def is_named(node, ns: str, local: str) -> bool:
    return is_element(node) and node.tag == qname(ns, local)


def iter_elements(root) -> Iterator:
    """Pre-order walk over the elements under (and including) `root`.

    Uses an explicit stack; elements are visited in document order.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if not is_element(node):
            continue
        yield node
        stack.extend(reversed(node))


def child_elements(parent) -> list:
    return [child for child in parent if is_element(child)]


def find_unique_child(
    parent,
    ns: str,
    local: str,
    not_found: str | None,
    multiple: str,
):
    """Find the only child `{ns}local` of `parent`.

    Raises FatalError with `multiple` when there are several, and with
    `not_found` when there are none and `not_found` is given.
    """
    found = None
    for child in parent:
        if is_named(child, ns, local):
            if found is not None:
                raise FatalError(multiple)
            found = child
    if found is None and not_found is not None:
        raise FatalError(not_found)
    return found


def get_element_by_id(root, element_id: str):
    """First element carrying a no-namespace `id` attribute equal to `element_id`."""
    for element in iter_elements(root):
        if element.get("id") == element_id:
            return element
    return None


def text_content(element) -> str:
    return "".join(element.itertext())


def normalize_space(text: str) -> str:
    return XML_WHITESPACE.sub(" ", text).strip(" ")


def has_stray_text(element) -> bool:
    """Whether `element` has non-whitespace text directly inside it."""
    chunks = [element.text] + [child.tail for child in element]
    return any(chunk and chunk.strip(" \t\r\n") for chunk in chunks)
