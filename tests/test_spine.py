"""Tests for reading order synthesis."""

import pytest

from epub_pack.core.spine import find_root, interleave, synthesize_spine


class TestInterleave:
    def test_toc_only_document_lands_at_toc_position(self):
        assert interleave(["a", "b", "c"], ["a", "x", "c"]) == ["a", "b", "x", "c"]

    def test_spine_only_document_keeps_its_place(self):
        assert interleave(["a", "c"], ["b", "c"]) == ["a", "b", "c"]

    def test_spine_wins_on_disagreement(self):
        assert interleave(["a", "b"], ["b", "a"]) == ["a", "b"]

    def test_leftovers_appended(self):
        assert interleave(["a"], ["a", "y", "z"]) == ["a", "y", "z"]

    @pytest.mark.parametrize("spine, toc", [([], ["a", "b"]), (["a", "b"], [])])
    def test_one_side_empty(self, spine, toc):
        assert interleave(spine, toc) == ["a", "b"]


class TestFindRoot:
    def test_single_candidate(self):
        assert find_root(["a", "b"], {"a": "b", "b": None}) == "b"

    def test_footnotes_are_ignored(self):
        links = {"a": "b", "b": None, "footnode.html": None}
        assert find_root(["a", "b", "footnode.html"], links) == "b"

    def test_ambiguous(self):
        assert find_root(["a", "b"], {"a": None, "b": None}) is None


class TestSynthesizeSpine:
    def test_next_links_order_documents(self):
        result = synthesize_spine([], [], ["ch1", "ch2"], {"ch1": "ch2", "ch2": None})
        assert result.order == ["ch1", "ch2"]
        assert result.unplaced == []

    def test_chain_from_lone_root(self):
        links = {"c": None, "a": "b", "b": "c"}
        result = synthesize_spine([], [], ["c", "a", "b"], links)
        assert result.order == ["a", "b", "c"]

    def test_toc_order_used_without_spine(self):
        result = synthesize_spine([], ["b", "a"], ["a", "b"], {})
        assert result.order == ["b", "a"]

    def test_explicit_spine_stands_when_toc_is_subset(self):
        result = synthesize_spine(["b", "a", "c"], ["a", "b"], ["a", "b", "c"], {})
        assert result.order == ["b", "a", "c"]

    def test_toc_outside_spine_is_interleaved(self):
        result = synthesize_spine(["a", "c"], ["a", "b", "c"], ["a", "b", "c"], {})
        assert result.order == ["a", "b", "c"]

    def test_forward_splice_after_placed_document(self):
        links = {"a": "x", "x": None, "b": None}
        result = synthesize_spine(["a", "b"], [], ["a", "b", "x"], links)
        assert result.order == ["a", "x", "b"]

    def test_backward_splice_before_target(self):
        links = {"x": "b"}
        result = synthesize_spine(["a", "b"], [], ["a", "b", "x"], links)
        assert result.order == ["a", "x", "b"]

    def test_leftovers_sorted_and_reported(self):
        links = {"z": None, "y": None}
        result = synthesize_spine(["a"], [], ["a", "z", "y"], links)
        assert result.order == ["a", "y", "z"]
        assert result.unplaced == ["y", "z"]

    def test_unknown_documents_are_ignored(self):
        result = synthesize_spine(["a", "gone"], ["missing"], ["a"], {})
        assert result.order == ["a"]

    def test_idempotent_on_resolved_package(self):
        docs = ["a", "b", "c"]
        first = synthesize_spine(docs, ["a", "c"], docs, {"a": "b"})
        second = synthesize_spine(first.order, ["a", "c"], docs, {"a": "b"})
        assert first.order == second.order == docs
