"""Unpacking of client JAR/ZIP archives into a working directory."""

import shutil
import zipfile
from pathlib import Path

from .error_handling import ArchiveError


def _safe_destination(dest: Path, entry_name: str) -> Path:
    """
    Resolve an archive entry under ``dest``.

    Raises:
        ArchiveError: If the entry would land outside ``dest``
    """
    target = (dest / entry_name).resolve()
    if target != dest and dest not in target.parents:
        raise ArchiveError(f"Archive entry escapes destination: {entry_name}")
    return target


def extract_archive(archive: Path, dest: Path) -> Path:
    """
    Materialize every entry of ``archive`` under ``dest``.

    Args:
        archive: Path to a ZIP-based archive (JAR, WAR, ZIP)
        dest: Destination directory, created if missing

    Returns:
        Path: The resolved destination directory

    Raises:
        ArchiveError: If the archive cannot be read or an entry cannot be written
    """
    archive = Path(archive)
    dest = Path(dest)

    try:
        dest.mkdir(parents=True, exist_ok=True)
        dest = dest.resolve()
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                target = _safe_destination(dest, info.filename)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Not a valid archive: {archive}: {e}") from e
    except OSError as e:
        raise ArchiveError(f"Cannot extract {archive} to {dest}: {e}") from e

    return dest
