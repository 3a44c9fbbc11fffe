"""
Source staging — fetch and unpack a package's source archive.

    <dest>/<name>/<archive>     cached download (reused across runs)
    <dest>/<name>/build/        extraction target

Staging is idempotent: a non-empty build directory means the source is
already in place and nothing is fetched or extracted.  Every failure is
raised as ``StagingError``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import urllib.request
import zipfile
from pathlib import Path
from urllib.parse import unquote, urlparse

from avbbs import __version__
from avbbs.core.engine.expander import substitute
from avbbs.core.errors import StagingError
from avbbs.core.models.package import PackageDescriptor
from avbbs.core.services.workspace import empty_dir

logger = logging.getLogger(__name__)

_USER_AGENT = f"avbbs/{__version__}"


def source_url(descriptor: PackageDescriptor) -> str:
    """The descriptor's source with ``${name}``/``${version}`` filled in."""
    return substitute(descriptor.source or "", descriptor.substitution_fields())


def archive_path(descriptor: PackageDescriptor, context_dir: Path) -> Path | None:
    """Where the downloaded archive is cached, or None without a source."""
    if not descriptor.source:
        return None
    url = source_url(descriptor)
    filename = Path(unquote(urlparse(url).path)).name
    if not filename:
        raise StagingError(descriptor.name, url, "Source URL has no file name")
    return Path(context_dir) / filename


def fetch_archive(url: str, destination: Path, timeout: int = 60) -> Path:
    """Download *url* to *destination* (atomic: temp file, then rename)."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})

    fd, tmp_path = tempfile.mkstemp(dir=destination.parent, prefix=".fetch_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(fd, "wb") as f:
            shutil.copyfileobj(resp, f)
        tmp.replace(destination)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return destination


def extract_archive(archive: Path, destination: Path) -> None:
    """Unpack a tar (any compression) or zip archive into *destination*."""
    destination.mkdir(parents=True, exist_ok=True)
    if tarfile.is_tarfile(archive):
        with tarfile.open(archive) as tar:
            tar.extractall(destination, filter="data")
    elif zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                target = zf.extract(info, destination)
                # Unix mode bits live in the high word of external_attr
                mode = (info.external_attr >> 16) & 0o777
                if mode and not info.is_dir():
                    os.chmod(target, mode)
    else:
        raise ValueError(f"Unsupported archive format: {archive.name}")


class SourceStager:
    """Prepares a package's build directory from its declared source."""

    def __init__(self, timeout: int = 60):
        self.timeout = timeout

    def prepare(self, descriptor: PackageDescriptor, context_dir: Path, build_dir: Path) -> Path | None:
        """Fetch (or reuse) and extract the source archive.

        Args:
            descriptor: The package; nothing happens without a source.
            context_dir: Package context directory (archive cache).
            build_dir: Extraction target.

        Returns:
            Path of the cached archive, or None if no source is declared
            or the archive is no longer cached.

        Raises:
            StagingError: If the fetch or the extraction fails.
        """
        archive = archive_path(descriptor, context_dir)
        if archive is None:
            return None

        url = source_url(descriptor)
        if build_dir.is_dir() and any(build_dir.iterdir()):
            logger.info("<<< %s: sources already extracted, skipping", descriptor.name)
            return archive if archive.is_file() else None

        try:
            if archive.is_file():
                logger.info("<<< %s: using cached %s", descriptor.name, archive.name)
            else:
                logger.info("<<< Downloading %s", url)
                fetch_archive(url, archive, timeout=self.timeout)
        except (OSError, ValueError) as e:
            raise StagingError(descriptor.name, url, str(e)) from e

        try:
            logger.info("<<< Extracting %s", archive.name)
            extract_archive(archive, build_dir)
        except (OSError, ValueError, tarfile.TarError, zipfile.BadZipFile) as e:
            # A half-extracted tree would look "already staged" next run
            empty_dir(build_dir)
            archive.unlink(missing_ok=True)
            raise StagingError(descriptor.name, url, str(e)) from e

        return archive
