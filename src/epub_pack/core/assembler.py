"""Turn a directory of publication files into a resolved EPUB package.

The assembler owns every file of a run. It settles the container, the OPF
manifest, the spine and both navigation files in memory, and only then hands
the resolved resources to the writer.
"""

import logging
import string
import uuid
import warnings
from datetime import datetime, timezone
from pathlib import Path

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from lxml import etree

from epub_pack.core.errors import FatalError
from epub_pack.core.navigation import (
    Conflict,
    parse_navigation_document,
    reconcile_documents,
    render_html,
    render_ncx,
    settle_navigation,
)
from epub_pack.core.properties import generate_properties
from epub_pack.core.reporter import Reporter
from epub_pack.core.scanner import scan_directory
from epub_pack.core.sniffer import JAVASCRIPT_TYPES, classify
from epub_pack.core.spine import synthesize_spine
from epub_pack.core.urls import chop_hash, is_absolute_url, path_to_url, url_to_path
from epub_pack.core.writer import EpubWriter
from epub_pack.core.xmltree import (
    child_elements,
    find_unique_child,
    get_element_by_id,
    is_named,
    iter_elements,
    local_name,
    namespace,
    normalize_space,
    parse_xml,
    qname,
    serialize,
    text_content,
)
from epub_pack.models.media import (
    CONTAINER_NS,
    CSS_TYPE,
    DC_NS,
    EPUB_MIMETYPE,
    NCX_NS,
    NCX_TYPE,
    OPF_NS,
    OPF_TYPE,
    OPS_NS,
    XHTML_NS,
    XHTML_TYPE,
)
from epub_pack.models.navigation import NavigationDocument
from epub_pack.models.package import (
    BuildOptions,
    BuildResult,
    FileEntry,
    ManifestItem,
    Resource,
)

log = logging.getLogger(__name__)

# EPUB content documents are XHTML; let BeautifulSoup read them anyway
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

CONTAINER_PATH = "META-INF/container.xml"

NCNAME_START = frozenset(string.ascii_letters + "_")
NCNAME_CHARS = NCNAME_START | frozenset(string.digits + "-.")


def generate_id(name: str, ids: set[str]) -> str:
    """Derive an XML id from a file name, unique among `ids`."""
    if name and name[0] in NCNAME_START:
        candidate = name[0]
    elif name and name[0] in NCNAME_CHARS:
        candidate = "i" + name[0]
    else:
        candidate = "i"
    candidate += "".join(c for c in name[1:] if c in NCNAME_CHARS)
    while candidate in ids:
        candidate += "_"
    return candidate


def default_output(directory: Path) -> Path:
    directory = directory.resolve()
    return directory.parent / f"{directory.name}.epub"


class PackageAssembler:
    """Resolve a publication directory into a complete EPUB package."""

    def __init__(
        self,
        directory: Path,
        options: BuildOptions | None = None,
        reporter: Reporter | None = None,
    ):
        """Initialize assembler.

        Args:
            directory: Root directory of the publication
            options: Build options; defaults apply when omitted
            reporter: Collector for diagnostics
        """
        self.directory = Path(directory)
        self.options = options or BuildOptions()
        self.reporter = reporter or Reporter()

        self.entries: dict[str, FileEntry] = {}
        self.inputs: dict[str, FileEntry] = {}
        self.outputs: dict[str, Resource] = {}
        self.container: Resource | None = None
        self.opf: Resource | None = None
        self.nav: Resource | None = None
        self.ncx: Resource | None = None
        self.documents: list[str] = []
        self.ids: set[str] = set()
        self.path_by_id: dict[str, str] = {}
        self.id_by_path: dict[str, str] = {}
        self.next_links: dict[str, str | None] = {}
        self.navigation = NavigationDocument()
        self.spine_order: list[str] = []
        self.unplaced: list[str] = []
        self.converted: list[str] = []
        self.title: str | None = None
        self.uid: str | None = None

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    @property
    def output_path(self) -> Path:
        return self.options.output or default_output(self.directory)

    def build(self) -> BuildResult:
        """Resolve the package and write the archive."""
        output = self.output_path
        if output.exists() and not self.options.force:
            self.reporter.fatal(
                f"Output file {output} already exists. Use --force to replace it."
            )
        self.resolve()
        EpubWriter(output).write(self.outputs.values())
        return self.result(output)

    def resolve(self) -> None:
        """Settle every file of the package in memory."""
        self.inputs = scan_directory(self.directory, self.reporter)
        self.entries = dict(self.inputs)

        self.check_mimetype()
        self.check_drm()
        self.locate_opf()
        self.ensure_manifest()
        self.check_items()
        self.collect_next_links()
        self.ensure_spine()
        self.complete_metadata()
        self.regenerate_navigation()

    def result(self, output: Path) -> BuildResult:
        return BuildResult(
            output=output,
            opf_path=self.opf.path,
            manifest=self.manifest_items(),
            spine=list(self.spine_order),
            unplaced=list(self.unplaced),
            converted=list(self.converted),
            warning_count=self.reporter.warning_count,
            error_count=self.reporter.error_count,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def opf_root(self):
        return self.opf.tree.getroot()

    def _unique(self, parent, local: str):
        return find_unique_child(
            parent,
            OPF_NS,
            local,
            None,
            f"Multiple <{local}> elements in {self.opf.path}.",
        )

    def _manifest(self):
        return self._unique(self.opf_root, "manifest")

    def _items(self) -> list:
        return [c for c in self._manifest() if is_named(c, OPF_NS, "item")]

    def _item_path(self, item) -> str:
        return chop_hash(url_to_path(item.get("href"), self.opf.path))

    def _load_xml(self, entry: FileEntry):
        try:
            return parse_xml(entry.read_bytes())
        except etree.XMLSyntaxError as e:
            self.reporter.fatal(f"{entry.path} is not well-formed: {e}")

    def _sibling_path(self, stem: str, extension: str) -> str:
        """Unused archive path beside the OPF."""
        directory = self.opf.path.rpartition("/")[0]
        prefix = f"{directory}/" if directory else ""
        candidate = f"{prefix}{stem}.{extension}"
        while candidate in self.outputs or candidate in self.entries:
            stem += "_"
            candidate = f"{prefix}{stem}.{extension}"
        return candidate

    def _claim_id(self, preferred: str) -> str:
        item_id = generate_id(preferred, self.ids)
        self.ids.add(item_id)
        return item_id

    def manifest_items(self) -> list[ManifestItem]:
        return [
            ManifestItem(
                id=item.get("id"),
                href=item.get("href"),
                media_type=item.get("media-type"),
                properties=(item.get("properties") or "").split(),
            )
            for item in self._items()
        ]

    # -------------------------------------------------------------------------
    # Container and OPF
    # -------------------------------------------------------------------------

    def check_mimetype(self) -> None:
        entry = self.inputs.pop("mimetype", None)
        if entry is None:
            return
        if entry.read_bytes() != EPUB_MIMETYPE.encode("ascii"):
            self.reporter.fatal(
                "Incorrect mimetype file. Maybe this directory is for a different "
                "OASIS packaging-based format?"
            )

    def check_drm(self) -> None:
        if "META-INF/rights.xml" in self.inputs:
            self.reporter.fatal(
                "META-INF/rights.xml found. Cannot continue. DRM schemes are not "
                "supported."
            )
        if "META-INF/encryption.xml" in self.inputs:
            self.reporter.fatal(
                "META-INF/encryption.xml found. Will not continue. Encrypted "
                "resources are not supported."
            )

    def locate_opf(self) -> None:
        """Find the OPF through container.xml or by extension, or create one."""
        entry = self.inputs.pop(CONTAINER_PATH, None)
        if entry is not None:
            tree = self._load_xml(entry)
            root = tree.getroot()
            if not is_named(root, CONTAINER_NS, "container"):
                self.reporter.fatal(f"Bogus root element in {CONTAINER_PATH}.")
            rootfiles = find_unique_child(
                root,
                CONTAINER_NS,
                "rootfiles",
                f"No <rootfiles> element in {CONTAINER_PATH}.",
                f"Too many <rootfiles> elements in {CONTAINER_PATH}.",
            )
            rootfile = find_unique_child(
                rootfiles,
                CONTAINER_NS,
                "rootfile",
                f"No root file declared in {CONTAINER_PATH}.",
                f"Multiple root files declared in {CONTAINER_PATH}. Only one is supported.",
            )
            if rootfile.get("media-type") != OPF_TYPE:
                self.reporter.fatal(f"Bad root file media type in {CONTAINER_PATH}.")
            opf_path = rootfile.get("full-path")
            if not opf_path:
                self.reporter.fatal(
                    f"No full-path attribute on <rootfile> in {CONTAINER_PATH}."
                )
            self.container = Resource(entry=entry, media_type=None, tree=tree)
            self._open_opf(opf_path)
        else:
            candidates = [e for e in self.inputs.values() if e.extension == "opf"]
            if len(candidates) > 1:
                self.reporter.fatal("Multiple OPF files.")
            self._open_opf(candidates[0].path if candidates else "content.opf")
            self.container = self._create_container()

        self.outputs[CONTAINER_PATH] = self.container
        self.outputs[self.opf.path] = self.opf

    def _open_opf(self, opf_path: str) -> None:
        entry = self.inputs.pop(opf_path, None)
        if entry is None:
            log.info(f"Creating {opf_path}")
            root = etree.Element(
                qname(OPF_NS, "package"), nsmap={None: OPF_NS, "dc": DC_NS}
            )
            entry = FileEntry(path=opf_path)
            tree = root.getroottree()
        else:
            tree = self._load_xml(entry)
        # The OPF is always rewritten
        self.opf = Resource(entry=entry, media_type=OPF_TYPE, tree=tree, dirty=True)

    def _create_container(self) -> Resource:
        root = etree.Element(qname(CONTAINER_NS, "container"), nsmap={None: CONTAINER_NS})
        root.set("version", "1.0")
        rootfiles = etree.SubElement(root, qname(CONTAINER_NS, "rootfiles"))
        rootfile = etree.SubElement(rootfiles, qname(CONTAINER_NS, "rootfile"))
        rootfile.set("full-path", self.opf.path)
        rootfile.set("media-type", OPF_TYPE)
        return Resource(
            entry=FileEntry(path=CONTAINER_PATH),
            tree=root.getroottree(),
            dirty=True,
        )

    # -------------------------------------------------------------------------
    # Manifest
    # -------------------------------------------------------------------------

    def ensure_manifest(self) -> None:
        """Create the manifest if needed and list undeclared files in it."""
        root = self.opf_root
        if not is_named(root, OPF_NS, "package"):
            self.reporter.fatal(f"Bogus root element in {self.opf.path}.")

        manifest = self._manifest()
        if manifest is None:
            manifest = etree.Element(qname(OPF_NS, "manifest"))
            metadata = self._unique(root, "metadata")
            if metadata is not None:
                metadata.addnext(manifest)
            else:
                following = None
                for local in ("spine", "guide", "bindings"):
                    following = self._unique(root, local)
                    if following is not None:
                        break
                if following is not None:
                    following.addprevious(manifest)
                else:
                    root.insert(0, manifest)

        items = self._items()
        if items and not self.options.refresh_manifest:
            return

        listed = {self._item_path(item) for item in items if item.get("href") is not None}
        for entry in self.inputs.values():
            if not entry.is_auto_included or entry.path.startswith("META-INF/"):
                continue
            if entry.path in listed:
                continue
            item = etree.SubElement(manifest, qname(OPF_NS, "item"))
            item.set("href", path_to_url(entry.path, self.opf.path))

    def _collect_ids(self) -> None:
        # Ids are collected before any item is removed, so a dangling spine
        # reference cannot match an id generated later.
        for element in iter_elements(self.opf_root):
            element_id = element.get("id")
            if element_id is None:
                continue
            if not element_id:
                self.reporter.fatal(
                    f"Found an empty id in {self.opf.path} on element "
                    f"{local_name(element)}."
                )
            if not element_id.strip():
                self.reporter.fatal(
                    f"Found a whitespace-only id in {self.opf.path} on element "
                    f"{local_name(element)}."
                )
            if element_id in self.ids:
                self.reporter.fatal(f"Duplicate id {element_id} in {self.opf.path}.")
            self.ids.add(element_id)

    def check_items(self) -> None:
        """Classify every declared file and fix up its manifest item."""
        self._collect_ids()
        manifest = self._manifest()
        remove_scripting = self.options.remove_scripting

        styles = []
        docs = []
        need_id = []
        for item in self._items():
            href = item.get("href")
            if href is None:
                self.reporter.fatal(f"<item> without href attribute in {self.opf.path}.")
            path = self._item_path(item)
            entry = self.inputs.pop(path, None)
            if entry is None:
                if self.options.refresh_manifest:
                    self.reporter.info(
                        f"Missing declared resource {path}. Removing manifest entry."
                    )
                    manifest.remove(item)
                    continue
                self.reporter.fatal(f"Missing declared resource {path}.")

            declared = (item.get("media-type") or "").strip().lower() or None
            classification = classify(entry.read_bytes(), path, declared, self.reporter)
            media_type = classification.media_type
            if media_type is None:
                self.reporter.fatal(
                    f"Unable to guess the media type of {path}. Please declare the "
                    "type manually in the manifest."
                )
            item.set("media-type", media_type)

            resource = Resource(
                entry=entry,
                media_type=media_type,
                tree=classification.tree,
                dirty=classification.converted,
            )
            if classification.converted:
                self.converted.append(path)

            if media_type == CSS_TYPE:
                styles.append(item)
            elif media_type == XHTML_TYPE:
                docs.append(item)
                self.documents.append(path)
            elif remove_scripting and media_type in JAVASCRIPT_TYPES:
                self.reporter.info(f"Removing script {path}.")
                manifest.remove(item)
                continue

            scan = generate_properties(
                item.get("properties"),
                media_type,
                resource.tree,
                path,
                remove_scripting,
            )
            if scan.modified:
                resource.dirty = True
            if "nav" in scan:
                if self.nav is not None:
                    self.reporter.fatal(
                        f"Duplicate navigation document {path}. Already saw "
                        f"navigation document {self.nav.path}."
                    )
                self.nav = resource
            if "scripted" in scan:
                self.reporter.info(f"Scripted resource: {path}.")
            if "remote-resources" in scan:
                self.reporter.info(f"Resource includes remote resources: {path}.")
            if scan.properties:
                item.set("properties", " ".join(scan.properties))
            elif "properties" in item.attrib:
                del item.attrib["properties"]

            if item.get("id") is None:
                need_id.append(item)
            self.outputs[path] = resource

        # Every item needs an id, not only those in the spine
        for item in need_id:
            if item in docs and len(docs) == 1 and "content" not in self.ids:
                item_id = "content"
            elif item in styles and len(styles) == 1 and "style" not in self.ids:
                item_id = "style"
            else:
                item_id = generate_id(self.outputs[self._item_path(item)].entry.stem, self.ids)
            item.set("id", item_id)
            self.ids.add(item_id)

        for item in self._items():
            path = self._item_path(item)
            self.path_by_id[item.get("id")] = path
            self.id_by_path.setdefault(path, item.get("id"))

        for entry in self.inputs.values():
            if entry.is_hidden:
                continue
            if entry.is_legalese or entry.path.startswith("META-INF/"):
                self.outputs[entry.path] = Resource(entry=entry)
            else:
                self.reporter.warn(f"Omitting undeclared resource: {entry.path}.")
        self.inputs.clear()

    # -------------------------------------------------------------------------
    # Reading order
    # -------------------------------------------------------------------------

    def collect_next_links(self) -> None:
        """Record the `rel=next` target of every document."""
        documents = set(self.documents)
        for path in self.documents:
            self.next_links[path] = None
            tree = self.outputs[path].tree
            if tree is None:
                continue
            for element in iter_elements(tree.getroot()):
                if not is_named(element, XHTML_NS, "link"):
                    continue
                if "next" not in (element.get("rel") or "").lower().split():
                    continue
                href = element.get("href")
                if href is None or is_absolute_url(href):
                    break
                try:
                    target = chop_hash(url_to_path(href, path))
                except FatalError as e:
                    self.reporter.warn(f"Ignoring next link in {path}: {e.message}")
                    break
                if target in documents and target != path:
                    self.next_links[path] = target
                break

    def _check_spine_toc(self, spine) -> None:
        toc_id = spine.get("toc")
        if toc_id is None:
            ncx_items = [i for i in self._items() if i.get("media-type") == NCX_TYPE]
            if len(ncx_items) == 1:
                self.ncx = self.outputs.get(self._item_path(ncx_items[0]))
            return

        manifest = self._manifest()
        toc = get_element_by_id(self.opf_root, toc_id)
        if toc is None:
            self.reporter.warn(
                f"The toc attribute on the <spine> element referred to non-existing id {toc_id}."
            )
        elif not (is_named(toc, OPF_NS, "item") and toc.getparent() is manifest):
            self.reporter.warn(
                "The toc attribute on the <spine> element did not refer to an <item> "
                "child of <manifest>."
            )
        elif toc.get("media-type") != NCX_TYPE:
            self.reporter.warn("The toc attribute on the <spine> referred to a non-NCX <item>.")
        else:
            self.ncx = self.outputs.get(self._item_path(toc))
            return
        del spine.attrib["toc"]

    def _read_navigation(self) -> NavigationDocument:
        ncx_navigation = None
        html_navigation = None
        if self.ncx is not None:
            ncx_navigation = parse_navigation_document(self.ncx.tree, self.ncx.path)
        if self.nav is not None:
            html_navigation = parse_navigation_document(self.nav.tree, self.nav.path)
        if ncx_navigation is None:
            return html_navigation or NavigationDocument()
        if html_navigation is None:
            return ncx_navigation
        outcome = reconcile_documents(ncx_navigation, html_navigation)
        if isinstance(outcome, Conflict):
            self.reporter.fatal(outcome.reason)
        return outcome.value

    def ensure_spine(self) -> None:
        """Compute the reading order and write it back as `<itemref>`s."""
        root = self.opf_root
        spine = self._unique(root, "spine")
        if spine is None:
            spine = etree.Element(qname(OPF_NS, "spine"))
            self._manifest().addnext(spine)

        self._check_spine_toc(spine)
        self.navigation = self._read_navigation()
        documents = set(self.documents)
        toc_order = self.navigation.toc_documents(documents)

        explicit: list[str] = []
        kept: dict[str, object] = {}
        for itemref in child_elements(spine):
            if not is_named(itemref, OPF_NS, "itemref"):
                continue
            idref = itemref.get("idref")
            path = self.path_by_id.get(idref) if idref is not None else None
            if idref is None:
                self.reporter.err("<itemref> element had no idref attribute. Removing element.")
            elif path is None or path not in self.outputs:
                self.reporter.err("<itemref> element did not refer to an <item>. Removing element.")
            elif path not in documents:
                self.reporter.err(
                    f"<itemref> element referred to {path}, which is not an (X)HTML "
                    "document. Removing element."
                )
            elif path in kept:
                self.reporter.err(
                    "<itemref> element referred to an <item> that was already referred "
                    "to by an earlier <itemref>. Removing element."
                )
            else:
                explicit.append(path)
                kept[path] = itemref
                continue
            spine.remove(itemref)

        if explicit and not documents <= set(explicit):
            self.reporter.warn(
                "<spine> was not empty but did not list all (X)HTML documents from "
                "the <manifest>."
            )
        if not documents:
            self.reporter.fatal("Empty spine and no documents available to add to the spine.")

        result = synthesize_spine(explicit, toc_order, self.documents, self.next_links)
        if result.unplaced:
            self.reporter.warn(
                "Unable to place documents in the reading order by the spine, the "
                "table of contents or next links. Appending them in alphabetical "
                f"order: {', '.join(result.unplaced)}."
            )
        self.spine_order = result.order
        self.unplaced = result.unplaced

        for itemref in kept.values():
            spine.remove(itemref)
        for path in self.spine_order:
            itemref = kept.get(path)
            if itemref is None:
                itemref = etree.Element(qname(OPF_NS, "itemref"))
                itemref.set("idref", self.id_by_path[path])
            spine.append(itemref)

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def _document_title(self, path: str) -> str | None:
        resource = self.outputs[path]
        content = serialize(resource.tree) if resource.tree is not None else resource.entry.read_bytes()
        soup = BeautifulSoup(content, "lxml")
        for tag in ["title", "h1", "h2"]:
            element = soup.find(tag)
            if element:
                text = element.get_text(" ", strip=True)
                if text:
                    return normalize_space(text)
        return None

    def complete_metadata(self) -> None:
        """Make sure identifier, title, language and modification date exist."""
        root = self.opf_root
        metadata = self._unique(root, "metadata")
        if metadata is None:
            metadata = etree.Element(qname(OPF_NS, "metadata"), nsmap={"dc": DC_NS})
            root.insert(0, metadata)

        # identifier
        id_ref = root.get("unique-identifier")
        id_node = get_element_by_id(root, id_ref) if id_ref else None
        if id_node is not None and id_node.getparent() is not metadata:
            self.reporter.err(
                "The unique-identifier attribute on OPF root points to a node that is "
                "not a child of <metadata>."
            )
            id_node = None
        if id_node is not None and not is_named(id_node, DC_NS, "identifier"):
            self.reporter.err(
                "The unique-identifier attribute on OPF root does not point to a "
                "<dc:identifier> element."
            )
            id_node = None
        if id_node is None:
            id_node = etree.SubElement(metadata, qname(DC_NS, "identifier"))
            id_node.set("id", self._claim_id("bookid"))
            root.set("unique-identifier", id_node.get("id"))
        self.uid = normalize_space(text_content(id_node))
        if not self.uid:
            self.uid = f"urn:uuid:{uuid.uuid4()}"
            id_node.text = self.uid

        # title
        for element in metadata:
            if is_named(element, DC_NS, "title"):
                self.title = normalize_space(text_content(element)) or None
                if self.title:
                    break
        if not self.title:
            if self.spine_order:
                self.title = self._document_title(self.spine_order[0])
            self.title = self.title or self.directory.resolve().name
            title = etree.SubElement(metadata, qname(DC_NS, "title"))
            title.text = self.title
            self.reporter.info(f"Using {self.title!r} as the publication title.")

        # language
        languages = [
            e for e in metadata
            if is_named(e, DC_NS, "language") and normalize_space(text_content(e))
        ]
        if not languages:
            language = etree.SubElement(metadata, qname(DC_NS, "language"))
            language.text = self.options.language

        # last modification
        modified = None
        for element in metadata:
            if is_named(element, OPF_NS, "meta") and element.get("property") == "dcterms:modified":
                modified = element
                break
        if modified is None:
            modified = etree.SubElement(metadata, qname(OPF_NS, "meta"))
            modified.set("property", "dcterms:modified")
        modified.text = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        root.set("version", "3.0")

    # -------------------------------------------------------------------------
    # Navigation files
    # -------------------------------------------------------------------------

    def _add_item(self, resource: Resource, preferred_id: str, properties: str | None = None) -> str:
        item = etree.SubElement(self._manifest(), qname(OPF_NS, "item"))
        item_id = self._claim_id(preferred_id)
        item.set("id", item_id)
        item.set("href", path_to_url(resource.path, self.opf.path))
        item.set("media-type", resource.media_type)
        if properties:
            item.set("properties", properties)
        self.outputs[resource.path] = resource
        self.id_by_path[resource.path] = item_id
        self.path_by_id[item_id] = resource.path
        return item_id

    def _prepare_ncx(self, tree) -> None:
        root = tree.getroot()
        root.set("version", "2005-1")
        head = find_unique_child(root, NCX_NS, "head", None, "Multiple <head> elements in NCX.")
        if head is None:
            head = etree.Element(qname(NCX_NS, "head"))
            root.insert(0, head)
        uid_meta = None
        for meta in head:
            if is_named(meta, NCX_NS, "meta") and meta.get("name") == "dtb:uid":
                uid_meta = meta
                break
        if uid_meta is None:
            uid_meta = etree.SubElement(head, qname(NCX_NS, "meta"))
            uid_meta.set("name", "dtb:uid")
        uid_meta.set("content", self.uid)

        doc_title = find_unique_child(
            root, NCX_NS, "docTitle", None, "Multiple <docTitle> elements in NCX."
        )
        if doc_title is None:
            doc_title = etree.Element(qname(NCX_NS, "docTitle"))
            head.addnext(doc_title)
        text = find_unique_child(
            doc_title, NCX_NS, "text", None, "Multiple <text> elements in NCX <docTitle>."
        )
        if text is None:
            text = etree.SubElement(doc_title, qname(NCX_NS, "text"))
        if not normalize_space(text_content(text)):
            text.text = self.title

    def _create_nav_tree(self):
        root = etree.Element(qname(XHTML_NS, "html"), nsmap={None: XHTML_NS, "epub": OPS_NS})
        head = etree.SubElement(root, qname(XHTML_NS, "head"))
        title = etree.SubElement(head, qname(XHTML_NS, "title"))
        title.text = self.title
        etree.SubElement(root, qname(XHTML_NS, "body"))
        return root.getroottree()

    def regenerate_navigation(self) -> None:
        """Rewrite the NCX and the navigation document from the settled model."""
        self.navigation = settle_navigation(self.navigation)
        if not self.navigation.has_non_empty_toc:
            self.reporter.warn(
                "No table of contents found. Generating a navigation document with "
                "an empty table of contents."
            )

        if self.ncx is None:
            root = etree.Element(qname(NCX_NS, "ncx"), nsmap={None: NCX_NS})
            self.ncx = Resource(
                entry=FileEntry(path=self._sibling_path("toc", "ncx")),
                media_type=NCX_TYPE,
                tree=root.getroottree(),
            )
            self._add_item(self.ncx, "ncx")
            log.info(f"Creating {self.ncx.path}")
        self._prepare_ncx(self.ncx.tree)
        render_ncx(self.ncx.tree, self.navigation, self.ncx.path)
        self.ncx.dirty = True

        spine = self._unique(self.opf_root, "spine")
        spine.set("toc", self.id_by_path[self.ncx.path])

        if self.nav is None:
            self.nav = Resource(
                entry=FileEntry(path=self._sibling_path("toc", "xhtml")),
                media_type=XHTML_TYPE,
                tree=self._create_nav_tree(),
            )
            self._add_item(self.nav, "nav", properties="nav")
            log.info(f"Creating {self.nav.path}")
        elif namespace(self.nav.tree.getroot()) != XHTML_NS:
            self.reporter.fatal(f"Navigation document {self.nav.path} is not XHTML.")
        render_html(self.nav.tree, self.navigation, self.nav.path)
        self.nav.dirty = True
