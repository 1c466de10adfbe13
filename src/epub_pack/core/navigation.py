"""Reading, reconciling and regenerating NCX and EPUB3 navigation.

Both vocabularies are parsed into the same NavigationDocument model so that
the two files of a package can be compared structurally. After the model has
been settled, both files are rewritten from it.
"""

import logging
from dataclasses import dataclass
from typing import Any

from lxml import etree

from epub_pack.core.errors import FatalError
from epub_pack.core.urls import path_to_url, url_to_path
from epub_pack.core.xmltree import (
    child_elements,
    has_stray_text,
    is_named,
    iter_elements,
    local_name,
    namespace,
    normalize_space,
    qname,
    text_content,
)
from epub_pack.models.media import NCX_NS, OPS_NS, XHTML_NS
from epub_pack.models.navigation import (
    NavigationDocument,
    NavigationHierarchy,
    NavigationItem,
    NavigationSlot,
)

log = logging.getLogger(__name__)

HEADINGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "hgroup"})

EPUB_TYPE = qname(OPS_NS, "type")

# NCX container element -> item element
NCX_ITEM_NAMES = {
    "navMap": "navPoint",
    "pageList": "pageTarget",
    "navList": "navTarget",
}

NCX_SLOTS = {
    "navMap": NavigationSlot.TOC,
    "pageList": NavigationSlot.PAGE_LIST,
    "navList": NavigationSlot.LANDMARKS,
}

NCX_CONTAINERS = {slot: name for name, slot in NCX_SLOTS.items()}


# =============================================================================
# NCX vocabulary
# =============================================================================


def parse_nav_label(element) -> str | None:
    """Title from the first `navLabel/text` child, or None without navLabel."""
    for child in element:
        if is_named(child, NCX_NS, "navLabel"):
            for grandchild in child:
                if is_named(grandchild, NCX_NS, "text"):
                    return normalize_space(text_content(grandchild))
            raise FatalError("<navLabel> does not have a <text> child in NCX.")
    return None


def parse_content_src(element) -> str | None:
    for child in element:
        if is_named(child, NCX_NS, "content"):
            src = child.get("src")
            if src is None:
                raise FatalError("<content> does not have an src attribute in NCX.")
            return src
    return None


def parse_ncx_items(element, expected: str, doc_path: str) -> tuple[NavigationItem, ...]:
    return tuple(
        parse_ncx_item(child, doc_path)
        for child in element
        if is_named(child, NCX_NS, expected)
    )


def parse_ncx_item(element, doc_path: str) -> NavigationItem:
    title = parse_nav_label(element)
    href = url_to_path(parse_content_src(element), doc_path)
    children = parse_ncx_items(element, local_name(element), doc_path)
    if title is None:
        raise FatalError(f"No title in navigation item in {doc_path}.")
    if not title:
        raise FatalError(f"Empty title in navigation item in {doc_path}.")
    if href is None and not children:
        raise FatalError(
            f"Navigation item in {doc_path} has neither a URL nor a sublist."
        )
    return NavigationItem(title=title, href=href, children=children)


# =============================================================================
# XHTML vocabulary
# =============================================================================


def _check_text(element, doc_path: str) -> None:
    # Stray text is tolerated, but worth a look
    if has_stray_text(element):
        log.warning(
            f"Ignoring stray text inside <{local_name(element)}> in "
            f"navigation document {doc_path}."
        )


def parse_html_list(ol, doc_path: str) -> tuple[NavigationItem, ...]:
    items = []
    _check_text(ol, doc_path)
    for child in child_elements(ol):
        if not is_named(child, XHTML_NS, "li"):
            raise FatalError(
                f"Non-<li> element in <ol> in navigation document {doc_path}."
            )
        items.append(parse_html_item(child, doc_path))
    return tuple(items)


def parse_html_item(li, doc_path: str) -> NavigationItem:
    title = None
    href = None
    children = None
    _check_text(li, doc_path)
    for child in child_elements(li):
        if title is None and is_named(child, XHTML_NS, "a"):
            title = normalize_space(text_content(child))
            url = child.get("href")
            if url is None:
                raise FatalError(
                    "<a> element in navigation hierarchy does not have an href "
                    f"attribute in {doc_path}."
                )
            href = url_to_path(url, doc_path)
        elif title is None and is_named(child, XHTML_NS, "span"):
            title = normalize_space(text_content(child))
        elif title is not None and children is None and is_named(child, XHTML_NS, "ol"):
            children = parse_html_list(child, doc_path)
        else:
            raise FatalError(f"Invalid navigation <li> element in {doc_path}.")
    if title is None:
        raise FatalError(f"Navigation <li> element without a label in {doc_path}.")
    if not title:
        raise FatalError(f"Empty title in navigation item in {doc_path}.")
    if href is None and not children:
        raise FatalError(
            f"Navigation item {title!r} in {doc_path} has neither a link nor a sublist."
        )
    return NavigationItem(title=title, href=href, children=children or ())


# =============================================================================
# Hierarchies and documents
# =============================================================================


def parse_hierarchy(element, doc_path: str) -> NavigationHierarchy:
    """Parse a `nav` element or an NCX navMap/pageList/navList."""
    ns = namespace(element)
    if ns == XHTML_NS:
        title = None
        items = None
        for child in child_elements(element):
            if namespace(child) != XHTML_NS:
                continue
            name = local_name(child)
            if name in HEADINGS and title is None and items is None:
                title = normalize_space(text_content(child))
            elif name == "ol" and items is None:
                items = parse_html_list(child, doc_path)
            else:
                raise FatalError(
                    f"Stray element {name} in navigation document {doc_path}."
                )
        return NavigationHierarchy(title=title, items=items or ())

    if ns == NCX_NS and local_name(element) in NCX_ITEM_NAMES:
        expected = NCX_ITEM_NAMES[local_name(element)]
        return NavigationHierarchy(
            title=parse_nav_label(element),
            items=parse_ncx_items(element, expected, doc_path),
        )
    raise FatalError(f"Not a navigation hierarchy: <{local_name(element)}> in {doc_path}.")


def _nav_slot(element) -> NavigationSlot | None:
    if not is_named(element, XHTML_NS, "nav"):
        return None
    tokens = (element.get(EPUB_TYPE) or "").split()
    for slot in NavigationSlot:
        if slot.value in tokens:
            return slot
    return None


def parse_navigation_document(tree: etree._ElementTree, doc_path: str) -> NavigationDocument:
    """Read the toc, page list and landmarks of an NCX or EPUB3 nav document."""
    root = tree.getroot()
    ns = namespace(root)
    found: dict[NavigationSlot, NavigationHierarchy] = {}

    if ns == XHTML_NS:
        for element in iter_elements(root):
            slot = _nav_slot(element)
            if slot is None:
                continue
            if slot in found:
                raise FatalError(
                    f"Duplicate <nav epub:type='{slot.value}'> in the Navigation "
                    f"Document {doc_path}."
                )
            found[slot] = parse_hierarchy(element, doc_path)
    elif ns == NCX_NS:
        if local_name(root) != "ncx":
            raise FatalError(f"Purported NCX document {doc_path} has a bogus root element.")
        for child in child_elements(root):
            name = local_name(child)
            if namespace(child) != NCX_NS or name not in NCX_SLOTS:
                continue
            slot = NCX_SLOTS[name]
            if slot in found:
                raise FatalError(f"Duplicate <{name}> in NCX {doc_path}.")
            found[slot] = parse_hierarchy(child, doc_path)
    else:
        raise FatalError(
            f"Purported navigation document {doc_path} is neither an NCX nor an "
            "XHTML document."
        )
    return NavigationDocument(
        **{slot.field_name: hierarchy for slot, hierarchy in found.items()}
    )


# =============================================================================
# Reconciliation
# =============================================================================


@dataclass(frozen=True)
class Reconciled:
    """Accepted outcome of a reconciliation."""

    value: Any


@dataclass(frozen=True)
class Conflict:
    """The two sources disagree on real content."""

    slot: NavigationSlot
    reason: str


def reconcile_hierarchy(
    slot: NavigationSlot,
    ncx: NavigationHierarchy | None,
    html: NavigationHierarchy | None,
) -> Reconciled | Conflict:
    """Settle one slot. An empty list never overrides a populated one."""
    if ncx is None:
        return Reconciled(html)
    if html is None:
        return Reconciled(ncx)
    if ncx.is_empty and html.is_empty:
        if ncx.has_title and html.has_title:
            if ncx == html:
                return Reconciled(ncx)
            return Conflict(
                slot,
                f"The title of the {slot.label} differs between the NCX file and "
                "the EPUB3 Navigation Document.",
            )
        if html.has_title:
            return Reconciled(html)
        return Reconciled(ncx)
    if ncx.is_empty:
        return Reconciled(html)
    if html.is_empty:
        return Reconciled(ncx)
    if ncx == html:
        return Reconciled(ncx)
    return Conflict(
        slot,
        f"The {slot.label} differs between the NCX file and the EPUB3 Navigation "
        "Document.",
    )


def reconcile_documents(
    ncx: NavigationDocument, html: NavigationDocument
) -> Reconciled | Conflict:
    """Combine an NCX and an EPUB3 navigation document slot by slot."""
    merged = {}
    for slot in NavigationSlot:
        outcome = reconcile_hierarchy(slot, ncx.get(slot), html.get(slot))
        if isinstance(outcome, Conflict):
            return outcome
        merged[slot.field_name] = outcome.value
    return Reconciled(NavigationDocument(**merged))


# =============================================================================
# Regeneration
# =============================================================================


def _first_target(item: NavigationItem) -> str | None:
    for descendant in item.iter_items():
        if descendant.href is not None:
            return descendant.href
    return None


def _settle_item(item: NavigationItem) -> NavigationItem:
    children = tuple(_settle_item(child) for child in item.children)
    return NavigationItem(
        title=item.title, href=item.href or _first_target(item), children=children
    )


def settle_navigation(navigation: NavigationDocument) -> NavigationDocument:
    """Fill in what the NCX needs so both files render the same model.

    An NCX navPoint always points somewhere, so an item without a target
    takes the first target below it. An untitled landmarks list is named
    "Landmarks".
    """
    settled = {}
    for slot in NavigationSlot:
        hierarchy = navigation.get(slot)
        if hierarchy is not None:
            title = hierarchy.title
            if title is None and slot == NavigationSlot.LANDMARKS:
                title = "Landmarks"
            hierarchy = NavigationHierarchy(
                title=title, items=tuple(_settle_item(item) for item in hierarchy.items)
            )
        settled[slot.field_name] = hierarchy
    return NavigationDocument(**settled)


def _ncx_label(title: str):
    label = etree.Element(qname(NCX_NS, "navLabel"))
    text = etree.SubElement(label, qname(NCX_NS, "text"))
    text.text = title
    return label


class NcxRenderer:
    """Writes hierarchies into an NCX tree."""

    def __init__(self, ncx_path: str):
        self.ncx_path = ncx_path
        self.play_order = 0
        self.counters: dict[str, int] = {}

    def render_item(self, parent, item: NavigationItem, name: str) -> None:
        self.play_order += 1
        self.counters[name] = self.counters.get(name, 0) + 1
        element = etree.SubElement(parent, qname(NCX_NS, name))
        element.set("id", f"{name}-{self.counters[name]}")
        if name == "pageTarget":
            element.set("type", "normal")
            element.set("value", item.title)
        element.set("playOrder", str(self.play_order))
        element.append(_ncx_label(item.title))
        if item.href is not None:
            content = etree.SubElement(element, qname(NCX_NS, "content"))
            content.set("src", path_to_url(item.href, self.ncx_path))
        for child in item.children:
            self.render_item(element, child, name)

    def render(self, container, hierarchy: NavigationHierarchy) -> None:
        """Replace the label and the items of an NCX container element."""
        name = NCX_ITEM_NAMES[local_name(container)]
        for child in list(container):
            if is_named(child, NCX_NS, "navLabel") or is_named(child, NCX_NS, name):
                container.remove(child)
        if hierarchy.title is not None:
            container.insert(0, _ncx_label(hierarchy.title))
        for item in hierarchy.items:
            self.render_item(container, item, name)


def render_ncx(tree: etree._ElementTree, navigation: NavigationDocument, ncx_path: str) -> None:
    """Rewrite navMap, pageList and navList of an NCX from `navigation`.

    navMap is always present; pageList and navList only when the model has
    them.
    """
    root = tree.getroot()
    navigation = settle_navigation(navigation)
    renderer = NcxRenderer(ncx_path)
    previous = None
    for slot in NavigationSlot:
        name = NCX_CONTAINERS[slot]
        hierarchy = navigation.get(slot)
        if slot == NavigationSlot.TOC and hierarchy is None:
            hierarchy = NavigationHierarchy()
        existing = [c for c in root if is_named(c, NCX_NS, name)]
        if len(existing) > 1:
            raise FatalError(f"Multiple <{name}> elements in NCX.")
        container = existing[0] if existing else None
        if container is None and hierarchy is not None:
            container = etree.Element(qname(NCX_NS, name))
            if previous is not None:
                previous.addnext(container)
            else:
                root.append(container)
        if container is None:
            continue
        if hierarchy is not None:
            renderer.render(container, hierarchy)
        previous = container


def _render_html_item(parent, item: NavigationItem, nav_path: str) -> None:
    li = etree.SubElement(parent, qname(XHTML_NS, "li"))
    if item.href is None:
        label = etree.SubElement(li, qname(XHTML_NS, "span"))
    else:
        label = etree.SubElement(li, qname(XHTML_NS, "a"))
        label.set("href", path_to_url(item.href, nav_path))
    label.text = item.title
    if item.children:
        ol = etree.SubElement(li, qname(XHTML_NS, "ol"))
        for child in item.children:
            _render_html_item(ol, child, nav_path)


def render_html_nav(nav, hierarchy: NavigationHierarchy, nav_path: str) -> None:
    """Replace the contents of a `nav` element with `hierarchy`."""
    for child in list(nav):
        nav.remove(child)
    nav.text = None
    if hierarchy.title is not None:
        heading = etree.SubElement(nav, qname(XHTML_NS, "h2"))
        heading.text = hierarchy.title
    ol = etree.SubElement(nav, qname(XHTML_NS, "ol"))
    for item in hierarchy.items:
        _render_html_item(ol, item, nav_path)


def render_html(tree: etree._ElementTree, navigation: NavigationDocument, nav_path: str) -> None:
    """Rewrite the toc, page-list and landmarks `nav` elements of a document."""
    root = tree.getroot()
    navigation = settle_navigation(navigation)
    navs: dict[NavigationSlot, Any] = {}
    for element in iter_elements(root):
        slot = _nav_slot(element)
        if slot is not None and slot not in navs:
            navs[slot] = element

    body = None
    for child in reversed(root):
        if is_named(child, XHTML_NS, "body"):
            body = child
            break
    if body is None:
        body = etree.SubElement(root, qname(XHTML_NS, "body"))

    for slot in NavigationSlot:
        hierarchy = navigation.get(slot)
        if slot == NavigationSlot.TOC and hierarchy is None:
            hierarchy = NavigationHierarchy()
        if hierarchy is None:
            continue
        nav = navs.get(slot)
        if nav is None:
            nav = etree.SubElement(body, qname(XHTML_NS, "nav"))
            nav.set(EPUB_TYPE, slot.value)
            if slot != NavigationSlot.TOC:
                nav.set("hidden", "hidden")
        render_html_nav(nav, hierarchy, nav_path)
