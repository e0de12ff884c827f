"""
L4 Execution — Archive sniffing and extraction.

The archive family is decided by the leading bytes of the file, never
by its name. A download that is really an HTML error page or a
truncated body is rejected here instead of being unpacked as garbage.

Extraction is not atomic: a failure part way through leaves whatever
was written. Atomicity is provided by the install step, which only
moves a fully extracted tree into place.
"""

from __future__ import annotations

import logging
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from copperbuild.core.errors import ArchiveFormatError, ExtractionError
from copperbuild.core.models.archive import ArchiveFamily

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03"
_GZIP_MAGIC = b"\x1f\x8b"
_USTAR_MAGIC = b"ustar"
_USTAR_OFFSET = 257
_SNIFF_BYTES = 512


def sniff_bytes(head: bytes) -> ArchiveFamily:
    """Classify an archive from its first bytes.

    Raises:
        ArchiveFormatError: None of the known signatures matched.
    """
    if head.startswith(_ZIP_MAGIC):
        return ArchiveFamily.ZIP
    if head.startswith(_GZIP_MAGIC):
        return ArchiveFamily.GZIP_TAR
    if head[_USTAR_OFFSET:_USTAR_OFFSET + len(_USTAR_MAGIC)] == _USTAR_MAGIC:
        return ArchiveFamily.TAR
    preview = head[:16]
    raise ArchiveFormatError(f"Unrecognized archive content (first bytes: {preview!r})")


def sniff(path: Path) -> ArchiveFamily:
    """Classify the archive at ``path`` by content."""
    try:
        with open(path, "rb") as f:
            head = f.read(_SNIFF_BYTES)
    except OSError as e:
        raise ArchiveFormatError(f"Cannot read {path}: {e}") from e
    try:
        return sniff_bytes(head)
    except ArchiveFormatError as e:
        raise ArchiveFormatError(f"{path.name}: {e}") from None


def check_family(path: Path, expected: ArchiveFamily) -> ArchiveFamily:
    """Sniff ``path`` and insist it matches ``expected``.

    Raises:
        ArchiveFormatError: Unrecognized content, or a different family.
    """
    detected = sniff(path)
    if detected is not expected:
        raise ArchiveFormatError(
            f"{path.name}: expected a {expected.value} archive but content is {detected.value}"
        )
    logger.info("Archive %s verified as %s", path.name, detected.value)
    return detected


def _safe_member_path(dest: Path, name: str) -> Path:
    """Resolve an archive member name under ``dest``, refusing escapes."""
    rel = PurePosixPath(name.replace("\\", "/"))
    if rel.is_absolute() or ".." in rel.parts:
        raise ExtractionError(f"Archive member escapes extraction root: {name}")
    return dest.joinpath(*rel.parts)


def _extract_zip(path: Path, dest: Path) -> int:
    count = 0
    with zipfile.ZipFile(path) as zf:
        for info in zf.infolist():
            target = _safe_member_path(dest, info.filename)
            if info.filename.endswith(("/", "\\")):
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as out:
                while True:
                    chunk = src.read(1 << 20)
                    if not chunk:
                        break
                    out.write(chunk)
            # Preserve the executable bit for Unix-built archives
            mode = (info.external_attr >> 16) & 0o777
            if mode:
                target.chmod(mode)
            count += 1
    return count


def _extract_tar(path: Path, dest: Path, mode: str) -> int:
    count = 0
    # Streaming mode: decompress straight into the unpack step
    with open(path, "rb") as raw, tarfile.open(fileobj=raw, mode=mode) as tf:
        for member in tf:
            _safe_member_path(dest, member.name)
            tf.extract(member, dest, filter="data")
            if member.isfile():
                count += 1
    return count


def extract(path: Path, dest: Path, family: ArchiveFamily) -> Path:
    """Unpack ``path`` into ``dest`` according to ``family``.

    Returns:
        ``dest``.

    Raises:
        ExtractionError: Corrupt archive or filesystem failure.
    """
    dest.mkdir(parents=True, exist_ok=True)
    logger.info("Extracting %s into %s", path.name, dest)
    try:
        if family is ArchiveFamily.ZIP:
            count = _extract_zip(path, dest)
        elif family is ArchiveFamily.GZIP_TAR:
            count = _extract_tar(path, dest, "r|gz")
        elif family is ArchiveFamily.TAR:
            count = _extract_tar(path, dest, "r|")
        else:
            raise ExtractionError(f"Unsupported archive family: {family}")
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(f"Failed to extract {path.name}: {e}") from e

    logger.info("Extracted %d file(s) from %s", count, path.name)
    return dest
