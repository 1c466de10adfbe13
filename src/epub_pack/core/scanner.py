"""Directory traversal with ZIP-safe filename checks."""

from pathlib import Path

from epub_pack.core.reporter import Reporter
from epub_pack.models.package import FileEntry

FORBIDDEN_CHARACTERS = {
    "/": "a slash",
    '"': "a quote",
    "*": "an asterisk",
    ":": "a colon",
    "<": "a less-than sign",
    ">": "a greater-than sign",
    "?": "a question mark",
    "\\": "a backslash",
    "\x7f": "a DEL",
}


def name_problem(name: str) -> str | None:
    """Describe why `name` cannot go into the archive, or None if it can."""
    if not name:
        return "is nameless"
    for c in name:
        if c < " ":
            return "has a control character in its name"
        if c in FORBIDDEN_CHARACTERS:
            return f"has {FORBIDDEN_CHARACTERS[c]} in its name"
        if c > "\x7f":
            return "has a non-ASCII character in its name"
    if name.endswith("."):
        return "has a name ending with a dot"
    return None


def scan_directory(directory: Path, reporter: Reporter) -> dict[str, FileEntry]:
    """Map archive paths to the files under `directory`.

    Entries are listed in sorted order so repeated runs see the same sequence.
    Unusable names are dropped with a warning.
    """
    if not directory.is_dir():
        reporter.fatal(f"The input directory is not a directory: {directory}")
    entries: dict[str, FileEntry] = {}
    _scan(directory, "", entries, reporter)
    return entries


def _scan(
    directory: Path,
    prefix: str,
    entries: dict[str, FileEntry],
    reporter: Reporter,
) -> None:
    seen: set[str] = set()
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        name = child.name
        is_dir = child.is_dir()
        word = "directory" if is_dir else "file"
        zip_name = prefix + name

        if not is_dir and not child.is_file():
            reporter.warn(f"Dropping non-file: {zip_name}")
            continue
        problem = name_problem(name)
        if problem:
            reporter.warn(f"Dropping a {word} that {problem}: {zip_name}")
            continue
        # Names are ASCII by now, so lower() is enough to fold case
        folded = name.lower()
        if folded in seen:
            reporter.warn(
                f"Dropping a {word} whose name differs only in case from "
                f"another file or directory: {zip_name}"
            )
            continue
        seen.add(folded)

        if is_dir:
            _scan(child, zip_name + "/", entries, reporter)
        else:
            entries[zip_name] = FileEntry(
                path=zip_name, size=child.stat().st_size, source=child
            )
