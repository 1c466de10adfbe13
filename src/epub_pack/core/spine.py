"""Reading order synthesis.

The order is built from three partial sources: the `<spine>` as written, the
documents reachable from the table of contents, and the `rel=next` links
between documents.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Mapping

log = logging.getLogger(__name__)

FOOTNOTE_PREFIX = "footno"


@dataclass
class SpineResult:
    """Final reading order plus the documents no source could place."""

    order: list[str] = field(default_factory=list)
    unplaced: list[str] = field(default_factory=list)


def interleave(spine: list[str], toc: list[str]) -> list[str]:
    """Merge the explicit spine with the table of contents order.

    Runs of documents only one list knows about are emitted where that list
    puts them relative to the shared documents. Where the two lists disagree
    on the order of shared documents, the explicit spine wins.
    """
    spine_only = set(spine) - set(toc)
    toc_only = set(toc) - set(spine)
    spine_queue = deque(spine)
    toc_queue = deque(toc)
    merged: dict[str, None] = {}

    while spine_queue and toc_queue:
        if spine_queue[0] in merged:
            spine_queue.popleft()
        elif toc_queue[0] in merged:
            toc_queue.popleft()
        elif spine_queue[0] == toc_queue[0]:
            merged[spine_queue.popleft()] = None
            toc_queue.popleft()
        elif spine_queue[0] in spine_only:
            merged[spine_queue.popleft()] = None
        elif toc_queue[0] in toc_only:
            merged[toc_queue.popleft()] = None
        else:
            merged[spine_queue.popleft()] = None
    for doc in list(spine_queue) + list(toc_queue):
        merged[doc] = None
    return list(merged)


def _file_name(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def find_root(pending: Iterable[str], next_links: Mapping[str, str | None]) -> str | None:
    """The single pending document that links nowhere, if there is one.

    Footnote pages (as LaTeX2HTML names them) often have no next link either,
    so they are ignored when that leaves exactly one candidate.
    """
    candidates = [doc for doc in pending if next_links.get(doc) is None]
    if len(candidates) == 1:
        return candidates[0]
    others = [
        doc for doc in candidates
        if not _file_name(doc).lower().startswith(FOOTNOTE_PREFIX)
    ]
    if len(others) == 1:
        return others[0]
    return None


def _fold_forward(order: list[str], pending: dict[str, None], next_links) -> bool:
    changed = False
    i = 0
    while i < len(order) and pending:
        target = next_links.get(order[i])
        if target in pending:
            del pending[target]
            order.insert(i + 1, target)
            changed = True
        i += 1
    return changed


def _fold_backward(order: list[str], pending: dict[str, None], next_links) -> bool:
    changed = False
    placed = True
    while placed:
        placed = False
        for doc in pending:
            target = next_links.get(doc)
            if target in order:
                del pending[doc]
                order.insert(order.index(target), doc)
                changed = placed = True
                break
    return changed


def synthesize_spine(
    explicit: list[str],
    toc_order: list[str],
    documents: Iterable[str],
    next_links: Mapping[str, str | None],
) -> SpineResult:
    """Compute the reading order of `documents`.

    `explicit` is the cleaned-up spine as written, `toc_order` the documents
    reachable from the table of contents, and `next_links` maps a document to
    the target of its `rel=next` link.
    """
    documents = list(dict.fromkeys(documents))
    known = set(documents)
    explicit = [doc for doc in dict.fromkeys(explicit) if doc in known]
    toc_docs = [doc for doc in dict.fromkeys(toc_order) if doc in known]

    if not explicit:
        order = list(toc_docs)
    elif not set(toc_docs) <= set(explicit):
        order = interleave(explicit, toc_docs)
    else:
        order = list(explicit)

    placed = set(order)
    pending = {doc: None for doc in documents if doc not in placed}

    if pending and not order:
        root = find_root(pending, next_links)
        if root is not None:
            log.debug(f"Seeding reading order with {root}")
            del pending[root]
            order.append(root)

    while pending:
        forward = _fold_forward(order, pending, next_links)
        backward = _fold_backward(order, pending, next_links)
        if not (forward or backward):
            break

    unplaced = sorted(pending)
    order.extend(unplaced)
    return SpineResult(order=order, unplaced=unplaced)
