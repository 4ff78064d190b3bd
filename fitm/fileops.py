# fitm/fileops.py
"""
Filesystem primitives shared by the store and its collaborators.

``move`` is copy followed by delete, never a rename, so it is not atomic and
must not be treated as idempotent. All calls block until done.
"""

import logging
import os
import shutil

from fitm.errors import CopyError, MoveError, RemoveError

logger = logging.getLogger("fitm.fileops")


def copy(source: str, destination: str) -> str:
    """
    Recursively duplicate ``source`` at ``destination``.

    ``destination`` must be absent (or, for a directory source, an empty
    directory), so the result is always an exact duplicate. Files are copied
    with metadata. On failure the destination is undefined and must be
    discarded by the caller.
    """
    source = os.fspath(source)
    destination = os.fspath(destination)
    logger.debug(f"Copying {source} -> {destination}")
    try:
        if not os.path.lexists(source):
            raise FileNotFoundError(f"No such file or directory: '{source}'")
        source_is_dir = os.path.isdir(source) and not os.path.islink(source)
        if _is_populated(destination) or (not source_is_dir and os.path.lexists(destination)):
            raise FileExistsError(f"Destination already populated: '{destination}'")
        if source_is_dir:
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
        else:
            shutil.copy2(source, destination, follow_symlinks=False)
    except (OSError, shutil.Error) as e:
        logger.error(f"Copy {source} -> {destination} failed: {e}")
        raise CopyError(source, destination, e) from e
    return destination


def _is_populated(path: str) -> bool:
    if os.path.isdir(path) and not os.path.islink(path):
        return bool(os.listdir(path))
    return os.path.lexists(path)


def copy_into(source: str, directory: str) -> str:
    """Copy ``source`` under ``directory`` keeping its basename (``cp -r src dir/``)."""
    source = os.fspath(source)
    target = os.path.join(os.fspath(directory), os.path.basename(source.rstrip(os.sep)))
    return copy(source, target)


def remove(path: str) -> None:
    """Recursively delete a tree or a single file."""
    path = os.fspath(path)
    logger.debug(f"Removing {path}")
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except OSError as e:
        logger.error(f"Removing {path} failed: {e}")
        raise RemoveError(path, e) from e


def move(source: str, destination: str) -> str:
    """
    Copy ``source`` to ``destination`` then delete ``source``.

    A failed copy leaves ``source`` intact (``MoveError.stage == "copy"``);
    a failed delete leaves both trees populated (``stage == "delete"``).
    """
    source = os.fspath(source)
    destination = os.fspath(destination)
    try:
        copy(source, destination)
    except CopyError as e:
        raise MoveError(source, destination, e.cause, stage="copy") from e
    try:
        remove(source)
    except RemoveError as e:
        raise MoveError(source, destination, e.cause, stage="delete") from e
    logger.debug(f"Moved {source} -> {destination}")
    return destination
