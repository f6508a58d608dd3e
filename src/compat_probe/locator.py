"""Locating the build descriptor inside an unpacked artifact."""

import shutil
from pathlib import Path
from typing import List

from .error_handling import DescriptorError, DescriptorNotFoundError


def find_descriptors(root: Path, name: str = "pom.xml") -> List[Path]:
    """
    Return every file called ``name`` under ``root``.

    Candidates are ordered shallowest first, then by path, so the choice
    does not depend on filesystem traversal order.
    """
    root = Path(root)
    candidates = [p for p in root.rglob(name) if p.is_file()]
    return sorted(candidates, key=lambda p: (len(p.relative_to(root).parts), p.as_posix()))


def promote_descriptor(root: Path, name: str = "pom.xml") -> Path:
    """
    Copy the selected descriptor to ``<root>/<name>``, overwriting it.

    A descriptor already sitting at the destination is only used when it is
    the sole candidate, so a re-run picks the pristine nested copy again.

    Raises:
        DescriptorNotFoundError: If no descriptor exists under ``root``
        DescriptorError: If the copy fails
    """
    root = Path(root)
    destination = root / name
    candidates = find_descriptors(root, name)
    if not candidates:
        raise DescriptorNotFoundError(f"No {name} found under {root}")

    nested = [p for p in candidates if p != destination]
    if not nested:
        return destination

    try:
        shutil.copyfile(nested[0], destination)
    except OSError as e:
        raise DescriptorError(f"Cannot copy {nested[0]} to {destination}: {e}") from e
    return destination
