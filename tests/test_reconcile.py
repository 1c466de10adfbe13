"""Tests for reconciling NCX and EPUB3 navigation."""

import pytest

from epub_pack.core.navigation import (
    Conflict,
    Reconciled,
    reconcile_documents,
    reconcile_hierarchy,
)
from epub_pack.models.navigation import (
    NavigationDocument,
    NavigationHierarchy,
    NavigationItem,
    NavigationSlot,
)

TOC = NavigationSlot.TOC

ONE = NavigationHierarchy(items=(NavigationItem(title="One", href="ch1.xhtml"),))
TWO = NavigationHierarchy(items=(NavigationItem(title="Two", href="ch2.xhtml"),))
EMPTY = NavigationHierarchy()
TITLED = NavigationHierarchy(title="Contents")
NAMED_ONE = NavigationHierarchy(
    title="Chapters", items=(NavigationItem(title="One", href="ch1.xhtml"),)
)


class TestReconcileHierarchy:
    def test_both_absent(self):
        assert reconcile_hierarchy(TOC, None, None) == Reconciled(None)

    @pytest.mark.parametrize("ncx, html", [(ONE, None), (None, ONE)])
    def test_one_side_absent(self, ncx, html):
        assert reconcile_hierarchy(TOC, ncx, html) == Reconciled(ONE)

    @pytest.mark.parametrize("ncx, html", [(EMPTY, ONE), (ONE, EMPTY)])
    def test_empty_never_overrides_populated(self, ncx, html):
        assert reconcile_hierarchy(TOC, ncx, html) == Reconciled(ONE)

    @pytest.mark.parametrize("ncx, html", [(TITLED, NAMED_ONE), (NAMED_ONE, TITLED)])
    def test_titled_empty_never_overrides_populated(self, ncx, html):
        assert reconcile_hierarchy(TOC, ncx, html) == Reconciled(NAMED_ONE)

    def test_equal_hierarchies(self):
        copy = NavigationHierarchy(items=(NavigationItem(title="One", href="ch1.xhtml"),))
        assert reconcile_hierarchy(TOC, ONE, copy) == Reconciled(ONE)

    def test_different_items_conflict(self):
        outcome = reconcile_hierarchy(TOC, ONE, TWO)
        assert isinstance(outcome, Conflict)
        assert outcome.slot == TOC
        assert outcome.reason == (
            "The table of contents differs between the NCX file and the EPUB3 "
            "Navigation Document."
        )

    def test_conflict_is_symmetric(self):
        assert isinstance(reconcile_hierarchy(TOC, TWO, ONE), Conflict)

    def test_empty_titles_conflict(self):
        other = NavigationHierarchy(title="Index")
        outcome = reconcile_hierarchy(NavigationSlot.PAGE_LIST, TITLED, other)
        assert isinstance(outcome, Conflict)
        assert outcome.reason.startswith("The title of the page list differs")

    @pytest.mark.parametrize("ncx, html", [(EMPTY, TITLED), (TITLED, EMPTY)])
    def test_empty_with_title_wins(self, ncx, html):
        assert reconcile_hierarchy(TOC, ncx, html) == Reconciled(TITLED)

    def test_both_empty_untitled(self):
        outcome = reconcile_hierarchy(TOC, EMPTY, NavigationHierarchy())
        assert outcome == Reconciled(EMPTY)


class TestReconcileDocuments:
    def test_merges_slot_by_slot(self):
        ncx = NavigationDocument(toc=ONE, page_list=EMPTY)
        html = NavigationDocument(toc=EMPTY, landmarks=TWO)
        outcome = reconcile_documents(ncx, html)
        assert outcome == Reconciled(
            NavigationDocument(toc=ONE, page_list=EMPTY, landmarks=TWO)
        )

    def test_first_conflict_is_reported(self):
        ncx = NavigationDocument(toc=ONE, landmarks=ONE)
        html = NavigationDocument(toc=ONE, landmarks=TWO)
        outcome = reconcile_documents(ncx, html)
        assert outcome == Conflict(
            NavigationSlot.LANDMARKS,
            "The list of landmarks differs between the NCX file and the EPUB3 "
            "Navigation Document.",
        )
