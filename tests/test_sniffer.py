"""Tests for content-based media type detection."""

import gzip

import pytest

from epub_pack.core.errors import FatalError
from epub_pack.core.sniffer import (
    MAGIC_NUMBERS,
    Signature,
    _build_dispatch,
    classify,
    sniff_magic,
    sniff_mp4,
)
from epub_pack.models.media import (
    CSS_TYPE,
    JAVASCRIPT_TYPE,
    MP4_TYPE,
    OGG_TYPE,
    OPENTYPE_TYPE,
    SVG_TYPE,
    WOFF_TYPE,
    XHTML_NS,
    XHTML_TYPE,
    XML_TYPE,
    SniffState,
)

from conftest import xhtml

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def complete_sequences(signatures, prefix=b""):
    """Every byte sequence the table recognizes, follow-ups included."""
    for signature in signatures:
        data = prefix + signature.prefix
        if signature.follow_ups:
            yield from complete_sequences(signature.follow_ups, data)
        else:
            yield data


SEQUENCES = list(complete_sequences(MAGIC_NUMBERS))


# ─── Magic numbers ─────────────────────────────────────────────────────────

class TestMagicNumbers:
    @pytest.mark.parametrize("data, path, expected", [
        (PNG, "a.png", "image/png"),
        (b"GIF89a" + b"\x00" * 8, "a.gif", "image/gif"),
        (b"GIF87a" + b"\x00" * 8, "a.gif", "image/gif"),
        (b"\xff\xd8\xff\xe0" + b"\x00" * 8, "a.jpg", "image/jpeg"),
        (b"\x00\x01\x00\x00" + b"\x00" * 8, "f.ttf", OPENTYPE_TYPE),
        (b"OTTO" + b"\x00" * 8, "f.otf", OPENTYPE_TYPE),
        (b"OggS\x00" + b"\x02" * 8, "a.ogg", OGG_TYPE),
        (b"wOFF" + b"\x00" * 8, "f.woff", WOFF_TYPE),
        (b"ID3\x03" + b"\x00" * 8, "a.mp3", "audio/mpeg"),
        (b"\x1a\x45\xdf\xa3" + b"\x00" * 8, "a.webm", "video/webm"),
        (b"%PDF-1.7\n", "a.pdf", "application/pdf"),
    ])
    def test_signature(self, data, path, expected):
        assert classify(data, path).media_type == expected

    def test_otto_and_ogg_share_first_byte(self):
        assert sniff_magic(b"OTTO").media_type == OPENTYPE_TYPE
        assert sniff_magic(b"OggS\x00").media_type == OGG_TYPE

    @pytest.mark.parametrize("sequence", SEQUENCES, ids=repr)
    def test_complete_sequence_is_recognized(self, sequence):
        assert sniff_magic(sequence).state != SniffState.UNDETERMINED

    @pytest.mark.parametrize("sequence", SEQUENCES, ids=repr)
    def test_truncated_signature_is_undetermined(self, sequence):
        assert sniff_magic(sequence[:-1]).state == SniffState.UNDETERMINED

    def test_truncated_png_has_no_type(self):
        assert classify(b"\x89PN", "a.bin").media_type is None

    def test_gif_with_bad_version_is_undetermined(self):
        assert sniff_magic(b"GIF8xa").state == SniffState.UNDETERMINED

    def test_bom_followed_by_xml_declaration(self):
        assert sniff_magic(b"\xef\xbb\xbf<?xml").state == SniffState.PENDING_XML_CHECK

    def test_fe_ff_suspects_utf16(self):
        assert sniff_magic(b"\xfe\xff\x00<").state == SniffState.UTF16_SUSPECTED

    def test_gzip_waits_for_unwrap(self):
        assert sniff_magic(b"\x1f\x8b\x08\x00").state == SniffState.PENDING_GZIP_UNWRAP

    def test_dispatch_rejects_shared_first_byte(self):
        with pytest.raises(ValueError):
            _build_dispatch((Signature(b"OTTO"), Signature(b"OggS")))


# ─── Binary heuristics ────────────────────────────────────────────────────

class TestBinaryHeuristics:
    def test_mpeg_frame_without_id3(self):
        assert classify(b"\xff\xfb\x90\x00" + b"\x00" * 8, "a.mp3").media_type == "audio/mpeg"

    def test_mp4_major_brand(self):
        data = b"\x00\x00\x00\x10ftypmp42\x00\x00\x00\x00"
        assert sniff_mp4(data) == MP4_TYPE

    def test_mp4_compatible_brand(self):
        data = b"\x00\x00\x00\x14ftypisom\x00\x00\x02\x00mp41"
        assert sniff_mp4(data) == MP4_TYPE

    def test_mp4_box_size_not_multiple_of_four(self):
        data = b"\x00\x00\x00\x11ftypmp42\x00\x00\x00\x00\x00"
        assert sniff_mp4(data) is None

    def test_mp4_box_larger_than_file(self):
        data = b"\x00\x00\x01\x00ftypmp42\x00\x00\x00\x00"
        assert sniff_mp4(data) is None

    def test_mp4_too_short(self):
        assert sniff_mp4(b"\x00\x00\x00\x08ftyp") is None

    def test_declared_audio_mp4_narrows_video(self, reporter):
        data = b"\x00\x00\x00\x10ftypmp42\x00\x00\x00\x00"
        result = classify(data, "a.m4a", "audio/mp4", reporter)
        assert result.media_type == "audio/mp4"
        assert reporter.error_count == 0


# ─── Markup ───────────────────────────────────────────────────────────────

class TestMarkup:
    def test_xhtml_document(self):
        result = classify(xhtml(), "text/ch1.xhtml")
        assert result.media_type == XHTML_TYPE
        assert result.tree is not None
        assert not result.converted

    def test_svg_with_bom(self):
        data = b"\xef\xbb\xbf<?xml version='1.0'?><svg xmlns='http://www.w3.org/2000/svg'/>"
        assert classify(data, "img.svg").media_type == SVG_TYPE

    def test_gzipped_svg(self):
        svg = b"<?xml version='1.0'?><svg xmlns='http://www.w3.org/2000/svg'/>"
        assert classify(gzip.compress(svg), "img.svgz").media_type == SVG_TYPE

    def test_unknown_root_namespace_is_generic_xml(self):
        assert classify(b"<?xml version='1.0'?><foo/>", "data.xml").media_type == XML_TYPE

    def test_malformed_xml_with_xml_extension_is_fatal(self):
        with pytest.raises(FatalError, match="not well-formed"):
            classify(b"<html><p>unclosed</html>", "ch1.xhtml")

    def test_html_is_recovered_as_xhtml(self, reporter):
        result = classify(b"<html><body><p>Hi<br></body></html>", "old.html", reporter=reporter)
        assert result.media_type == XHTML_TYPE
        assert result.converted
        assert result.tree.getroot().tag == f"{{{XHTML_NS}}}html"
        assert reporter.messages("info")

    def test_html_without_namespace_declared_xhtml(self):
        data = b"<html><head><title>T</title></head><body><p>x</p></body></html>"
        result = classify(data, "page.htm", XHTML_TYPE)
        assert result.media_type == XHTML_TYPE
        assert result.converted


# ─── Text formats ─────────────────────────────────────────────────────────

class TestText:
    def test_css_charset_rule(self):
        data = b'@charset "utf-8";\nbody { margin: 0 }'
        assert classify(data, "style.css").media_type == CSS_TYPE

    def test_css_by_extension(self):
        assert classify(b"body { color: red }", "s.css").media_type == CSS_TYPE

    def test_utf16_css_is_fatal(self):
        with pytest.raises(FatalError, match="UTF-16"):
            classify(b"\xff\xfeb\x00o\x00", "s.css")

    def test_javascript_by_extension(self):
        assert classify(b"var x = 1;", "app.js").media_type == JAVASCRIPT_TYPE

    def test_declared_javascript_type_is_kept(self, reporter):
        result = classify(b"var x = 1;", "app.js", "application/javascript", reporter)
        assert result.media_type == "application/javascript"
        assert reporter.error_count == 0


# ─── Declared types ───────────────────────────────────────────────────────

class TestDeclaredType:
    def test_empty_file_is_fatal(self):
        with pytest.raises(FatalError, match="empty"):
            classify(b"", "a.png")

    def test_wrong_declaration_is_corrected(self, reporter):
        result = classify(PNG, "cover.png", "text/plain", reporter)
        assert result.media_type == "image/png"
        assert reporter.error_count == 1
        assert "Adjusting manifest accordingly" in reporter.messages("err")[0]

    def test_reliable_type_not_found_is_fatal(self):
        with pytest.raises(FatalError):
            classify(b"not an image at all", "cover.png", "image/png")

    def test_unsniffable_declared_type_is_trusted(self):
        assert classify(b"plain words", "notes.dat", "text/plain").media_type == "text/plain"

    def test_nothing_known(self):
        assert classify(b"plain words", "notes.dat").media_type is None
