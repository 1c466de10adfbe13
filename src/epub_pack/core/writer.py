"""Write resolved resources into an EPUB archive."""

import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable

from epub_pack.core.errors import FatalError
from epub_pack.core.xmltree import serialize
from epub_pack.models.media import EPUB_MIMETYPE
from epub_pack.models.package import Resource

log = logging.getLogger(__name__)


class EpubWriter:
    """Write an EPUB archive atomically."""

    def __init__(self, output: Path):
        """Initialize writer.

        Args:
            output: Path of the archive to create or replace
        """
        self.output = output

    def write(self, resources: Iterable[Resource]) -> Path:
        """Write `mimetype` followed by `resources`, in order.

        The archive is assembled in a temporary file beside the target and
        renamed into place, so a failure leaves no partial archive behind.
        """
        self.output.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.output.name}.", suffix=".tmp", dir=self.output.parent
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            with zipfile.ZipFile(tmp_path, "w") as zf:
                # mimetype must come first, uncompressed
                zf.writestr("mimetype", EPUB_MIMETYPE, compress_type=zipfile.ZIP_STORED)
                for resource in resources:
                    zf.writestr(
                        resource.path,
                        self._content(resource),
                        compress_type=zipfile.ZIP_DEFLATED,
                    )
            os.replace(tmp_path, self.output)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise FatalError(f"Unable to write {self.output}: {e}")
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        log.info(f"Wrote {self.output}")
        return self.output

    @staticmethod
    def _content(resource: Resource) -> bytes:
        if resource.dirty and resource.tree is not None:
            return serialize(resource.tree)
        return resource.entry.read_bytes()
