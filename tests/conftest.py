"""Shared fixtures for epub-pack tests."""

from pathlib import Path

import pytest

from epub_pack.core.reporter import Reporter

XHTML_TEMPLATE = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<html xmlns="http://www.w3.org/1999/xhtml" '
    'xmlns:epub="http://www.idpf.org/2007/ops">'
    "<head><title>{title}</title>{head}</head>"
    "<body>{body}</body></html>"
)


def xhtml(title: str = "Chapter", body: str = "<p>Text</p>", head: str = "") -> bytes:
    """Minimal XHTML content document."""
    return XHTML_TEMPLATE.format(title=title, head=head, body=body).encode("utf-8")


def write_files(root: Path, files: dict[str, bytes | str]) -> Path:
    """Create `files` (archive path -> content) under `root`."""
    root.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        target.write_bytes(content)
    return root


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()


@pytest.fixture
def book_dir(tmp_path: Path):
    """Factory creating a publication directory named `book`."""

    def make(files: dict[str, bytes | str]) -> Path:
        return write_files(tmp_path / "book", files)

    return make
