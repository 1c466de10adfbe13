"""Tests for manifest property detection."""

import pytest
from lxml import etree

from epub_pack.core.errors import FatalError
from epub_pack.core.properties import generate_properties
from epub_pack.core.xmltree import parse_xml
from epub_pack.models.media import XHTML_TYPE

from conftest import xhtml


def scan(body: str, declared: str | None = None, remove_scripting: bool = False, head: str = ""):
    tree = parse_xml(xhtml(body=body, head=head))
    return tree, generate_properties(declared, XHTML_TYPE, tree, "ch1.xhtml", remove_scripting)


class TestDeclaredTokens:
    def test_computed_tokens_are_dropped(self):
        _, result = scan("<p>x</p>", declared="nav scripted svg mathml switch")
        assert result.properties == []

    def test_other_tokens_survive(self):
        _, result = scan("<p>x</p>", declared="page-spread-left")
        assert result.properties == ["page-spread-left"]

    def test_cover_image_only_on_images(self):
        kept = generate_properties("cover-image", "image/jpeg", None, "c.jpg")
        dropped = generate_properties("cover-image", XHTML_TYPE, None, "c.xhtml")
        assert kept.properties == ["cover-image"]
        assert dropped.properties == []


class TestDetection:
    @pytest.mark.parametrize("body, prop", [
        ("<script>1</script>", "scripted"),
        ("<form><input/></form>", "scripted"),
        ('<p onclick="go()">x</p>', "scripted"),
        ('<svg xmlns="http://www.w3.org/2000/svg"><rect/></svg>', "svg"),
        ('<math xmlns="http://www.w3.org/1998/Math/MathML"><mi>x</mi></math>', "mathml"),
        ("<epub:switch><epub:default/></epub:switch>", "switch"),
        ('<nav epub:type="toc"><ol/></nav>', "nav"),
        ('<img src="https://example.com/a.png" alt=""/>', "remote-resources"),
    ])
    def test_property(self, body, prop):
        _, result = scan(body)
        assert prop in result.properties

    def test_remote_stylesheet(self):
        head = '<link rel="stylesheet" href="http://example.com/s.css"/>'
        _, result = scan("<p>x</p>", head=head)
        assert result.properties == ["remote-resources"]

    def test_local_image_is_not_remote(self):
        _, result = scan('<img src="a.png" alt=""/>')
        assert result.properties == []

    def test_two_tocs_are_fatal(self):
        with pytest.raises(FatalError, match="More than one table of contents"):
            scan('<nav epub:type="toc"><ol/></nav><nav epub:type="toc"><ol/></nav>')

    def test_no_tree(self):
        result = generate_properties(None, "image/png", None, "a.png")
        assert result.properties == []
        assert not result.modified


class TestRemoveScripting:
    def test_strips_scripts_and_handlers(self):
        tree, result = scan(
            '<p onclick="go()">before<script>1</script>after</p>', remove_scripting=True
        )
        assert result.properties == []
        assert result.modified
        text = etree.tostring(tree, encoding="unicode")
        assert "script" not in text
        assert "onclick" not in text
        assert "beforeafter" in text

    def test_nested_form_controls(self):
        tree, result = scan("<form><input/><button>b</button></form><p>x</p>", remove_scripting=True)
        assert result.modified
        assert "form" not in etree.tostring(tree, encoding="unicode")

    def test_clean_document_untouched(self):
        _, result = scan("<p>x</p>", remove_scripting=True)
        assert not result.modified
