"""Manifest item `properties` computed from content."""

import logging
from dataclasses import dataclass, field

from lxml import etree

from epub_pack.core.errors import FatalError
from epub_pack.core.urls import is_absolute_url
from epub_pack.core.xmltree import iter_elements, local_name, namespace
from epub_pack.models.media import MATHML_NS, OPS_NS, SVG_NS, XHTML_NS

log = logging.getLogger(__name__)

# Always recomputed, whatever the manifest said
COMPUTED_PROPERTIES = ("nav", "mathml", "scripted", "svg", "switch")

SCRIPTING_ELEMENTS = frozenset({"script", "form", "input", "select", "textarea", "button"})

# element -> attribute that may load an embedded remote resource
REMOTE_ATTRIBUTES = {
    "img": "src",
    "audio": "src",
    "video": "src",
    "source": "src",
    "track": "src",
    "iframe": "src",
    "embed": "src",
    "script": "src",
    "object": "data",
}

EPUB_TYPE = f"{{{OPS_NS}}}type"


@dataclass
class PropertyScan:
    properties: list[str] = field(default_factory=list)
    modified: bool = False  # scripting was stripped from the tree

    def add(self, prop: str) -> None:
        if prop not in self.properties:
            self.properties.append(prop)

    def __contains__(self, prop: str) -> bool:
        return prop in self.properties


def has_event_handler(element) -> bool:
    return any(
        etree.QName(name).namespace is None and etree.QName(name).localname.startswith("on")
        for name in element.attrib
    )


def remove_event_handlers(element) -> bool:
    handlers = [
        name for name in element.attrib
        if etree.QName(name).namespace is None and etree.QName(name).localname.startswith("on")
    ]
    for name in handlers:
        del element.attrib[name]
    return bool(handlers)


def drop_element(element) -> None:
    """Remove `element` but keep the text that follows it."""
    parent = element.getparent()
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def _is_remote(url: str | None) -> bool:
    return bool(url) and is_absolute_url(url) and url.lower().startswith(("http:", "https:"))


def _loads_remote(element) -> bool:
    name = local_name(element)
    if name == "link":
        rel = (element.get("rel") or "").lower().split()
        return "stylesheet" in rel and _is_remote(element.get("href"))
    attribute = REMOTE_ATTRIBUTES.get(name)
    return attribute is not None and _is_remote(element.get(attribute))


def generate_properties(
    declared: str | None,
    media_type: str,
    tree,
    path: str,
    remove_scripting: bool = False,
) -> PropertyScan:
    """Recompute the properties of a manifest item.

    Declared tokens other than the computed ones survive, except that
    `cover-image` is only kept on images. With `remove_scripting`, scripting
    elements and event handler attributes are taken out of `tree` instead of
    marking it scripted.
    """
    scan = PropertyScan()
    for token in (declared or "").split():
        if token in COMPUTED_PROPERTIES:
            continue
        if token == "cover-image" and not media_type.startswith("image/"):
            continue
        scan.add(token)

    if tree is None:
        return scan

    root = tree.getroot()
    root_ns = namespace(root)
    xhtml = root_ns == XHTML_NS
    svg = root_ns == SVG_NS
    if not (xhtml or svg):
        return scan

    doomed = []
    for element in iter_elements(root):
        ns = namespace(element)
        name = local_name(element)
        scriptable = False

        if ns == XHTML_NS:
            scriptable = True
            if name in SCRIPTING_ELEMENTS:
                if remove_scripting:
                    doomed.append(element)
                else:
                    scan.add("scripted")
            elif name == "nav" and "toc" in (element.get(EPUB_TYPE) or "").split():
                if "nav" in scan:
                    raise FatalError(f"More than one table of contents in {path}.")
                scan.add("nav")
            if _loads_remote(element):
                scan.add("remote-resources")
        elif ns == SVG_NS:
            scriptable = True
            if xhtml:
                scan.add("svg")
            if name == "script":
                if remove_scripting:
                    doomed.append(element)
                else:
                    scan.add("scripted")
        elif ns == MATHML_NS:
            scriptable = True
            scan.add("mathml")
        elif ns == OPS_NS and xhtml and name == "switch":
            scan.add("switch")

        if scriptable:
            if remove_scripting:
                if remove_event_handlers(element):
                    scan.modified = True
            elif has_event_handler(element):
                scan.add("scripted")

    for element in doomed:
        # Nested doomed elements go with their ancestor
        if element.getparent() is not None and all(
            ancestor not in doomed for ancestor in element.iterancestors()
        ):
            drop_element(element)
    if doomed:
        scan.modified = True
        log.debug(f"Removed {len(doomed)} scripting elements from {path}")
    return scan
