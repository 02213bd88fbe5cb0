"""Build context packaging.

The engine's build endpoint accepts the build context as a tar stream.  A
context here always holds exactly one file, the Dockerfile, so the archive is
assembled entirely in memory and gzip-compressed before upload.
"""

from __future__ import annotations

import gzip
import io
import tarfile

from shipwright.errors import ArchiveError

DOCKERFILE_NAME = "Dockerfile"
"""Entry name the engine looks for when no other descriptor path is given."""

DEFAULT_DOCKERFILE = "FROM alpine:3.15\nRUN touch build-test.txt"

_ENTRY_MODE = 0o644


def build_context(content: str) -> bytes:
    """Package ``content`` as a gzip-compressed, single-entry tar archive.

    The entry is named ``Dockerfile`` with mode 0644 and a size field equal to
    the UTF-8 length of ``content``.  Timestamps are zeroed, so identical
    content always yields identical bytes.

    Raises
    ------
    ArchiveError:
        If the tar stream cannot be serialized.
    """
    payload = content.encode("utf-8")

    info = tarfile.TarInfo(DOCKERFILE_NAME)
    info.size = len(payload)
    info.mode = _ENTRY_MODE
    info.mtime = 0

    buffer = io.BytesIO()
    try:
        with tarfile.open(fileobj=buffer, mode="w", format=tarfile.GNU_FORMAT) as tar:
            tar.addfile(info, io.BytesIO(payload))
    except (tarfile.TarError, ValueError) as exc:
        msg = f"Failed to serialize build context: {exc}"
        raise ArchiveError(msg) from exc

    return gzip.compress(buffer.getvalue(), mtime=0)
