import errno
import logging
import os
import shutil
import stat

from .exceptions import FileSystemError
from .models import DirectoryTree, FileSystemEntry

logger = logging.getLogger(__name__)

DIR_MODE = 0o755


def _entry(path: str, st: os.stat_result, is_dir: bool) -> FileSystemEntry:
    return FileSystemEntry(
        name=os.path.basename(os.path.normpath(path)),
        path=path,
        is_dir=is_dir,
        size=st.st_size,
        modified=int(st.st_mtime),
    )


def _tree_sort_key(node: DirectoryTree):
    # directories first, then by name
    return (not node.entry.is_dir, node.entry.name)


def _build_tree(path: str, ancestors: frozenset = frozenset()) -> DirectoryTree:
    st = os.stat(path)
    is_dir = stat.S_ISDIR(st.st_mode)
    tree = DirectoryTree(entry=_entry(path, st, is_dir))
    if not is_dir:
        return tree
    real = os.path.realpath(path)
    if real in ancestors:
        logger.warning(f"Not following symlink loop at {path}")
        return tree
    ancestors = ancestors | {real}

    children = []
    for name in os.listdir(path):
        child_path = os.path.join(path, name)
        try:
            children.append(_build_tree(child_path, ancestors))
        except OSError as e:
            logger.warning(f"Skipping unreadable entry {child_path}: {e}")
    children.sort(key=_tree_sort_key)
    tree.children = children
    return tree


def get_directory_tree(root_path: str) -> DirectoryTree:
    """Build the tree under root_path. Children that cannot be read are left out."""
    try:
        st = os.stat(root_path)
    except OSError as e:
        raise FileSystemError.wrap("access path", e) from e
    if not stat.S_ISDIR(st.st_mode):
        return DirectoryTree(entry=_entry(root_path, st, False))
    try:
        return _build_tree(root_path)
    except OSError as e:
        raise FileSystemError.wrap("read directory", e) from e


def create_directory(path: str):
    try:
        os.makedirs(path, mode=DIR_MODE, exist_ok=True)
    except OSError as e:
        raise FileSystemError.wrap("create directory", e) from e


def create_file(path: str, content: str):
    parent = os.path.dirname(path)
    if parent:
        create_directory(parent)
    update_file(path, content)


def read_file(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise FileSystemError.wrap("read file", e) from e


def update_file(path: str, content: str):
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FileSystemError.wrap("write file", e) from e


def delete_file(path: str):
    try:
        os.remove(path)
    except OSError as e:
        raise FileSystemError.wrap("delete file", e) from e


def delete_directory(path: str):
    """Remove a directory and everything below it. A missing path is not an error."""
    if not os.path.lexists(path):
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FileSystemError.wrap("delete directory", e) from e


def rename_entry(old_path: str, new_name: str) -> str:
    """Rename a file or folder inside its parent. Files keep their extension if new_name has none."""
    new_name = new_name.strip()
    if not new_name or os.sep in new_name:
        raise FileSystemError(f"failed to rename: invalid name {new_name!r}")
    if not os.path.isdir(old_path):
        ext = os.path.splitext(old_path)[1]
        if ext and not os.path.splitext(new_name)[1]:
            new_name += ext
    new_path = os.path.join(os.path.dirname(old_path), new_name)
    if os.path.normpath(new_path) == os.path.normpath(old_path):
        return old_path
    if os.path.lexists(new_path):
        raise FileSystemError.wrap(
            "rename", FileExistsError(errno.EEXIST, "a file or folder with this name already exists", new_path))
    try:
        os.rename(old_path, new_path)
    except OSError as e:
        raise FileSystemError.wrap("rename", e) from e
    logger.info(f"Renamed {old_path} -> {new_path}")
    return new_path
