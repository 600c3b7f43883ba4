import errno
import os

import pytest

from postier import files
from postier.exceptions import FileSystemError


def test_tree_lists_directories_before_files(tmp_path):
    (tmp_path / "dirA").mkdir()
    (tmp_path / "dirA" / "file1").write_text("1")
    (tmp_path / "file0").write_text("0")

    tree = files.get_directory_tree(str(tmp_path))

    assert tree.entry.is_dir
    assert tree.entry.name == tmp_path.name
    assert [c.entry.name for c in tree.children] == ["dirA", "file0"]
    assert [c.entry.name for c in tree.children[0].children] == ["file1"]
    assert tree.children[1].entry.size == 1
    assert tree.children[1].entry.path == os.path.join(str(tmp_path), "file0")


def test_tree_sorts_alphabetically_within_groups(tmp_path):
    for name in ("zeta", "alpha"):
        (tmp_path / name).mkdir()
    for name in ("b.postier", "a.postier", "C.txt"):
        (tmp_path / name).write_text("")

    names = [c.entry.name for c in files.get_directory_tree(str(tmp_path)).children]

    assert names == ["alpha", "zeta", "C.txt", "a.postier", "b.postier"]


def test_tree_skips_unreadable_children(tmp_path):
    (tmp_path / "ok.postier").write_text("{}")
    os.symlink(str(tmp_path / "gone"), str(tmp_path / "dangling"))

    tree = files.get_directory_tree(str(tmp_path))

    assert [c.entry.name for c in tree.children] == ["ok.postier"]


def test_tree_does_not_follow_symlink_loops(tmp_path):
    (tmp_path / "sub").mkdir()
    os.symlink(str(tmp_path), str(tmp_path / "sub" / "loop"))

    tree = files.get_directory_tree(str(tmp_path))

    loop = tree.children[0].children[0]
    assert loop.entry.name == "loop"
    assert loop.children == []


def test_tree_of_single_file(tmp_path):
    f = tmp_path / "one.postier"
    f.write_text("abc")
    tree = files.get_directory_tree(str(f))
    assert not tree.entry.is_dir
    assert tree.entry.size == 3
    assert tree.children == []


def test_tree_missing_root_raises(tmp_path):
    with pytest.raises(FileSystemError) as exc:
        files.get_directory_tree(str(tmp_path / "nope"))
    assert exc.value.errno == errno.ENOENT
    assert "failed to access path" in str(exc.value)


def test_create_file_creates_parents(tmp_path):
    path = tmp_path / "a" / "b" / "req.postier"
    files.create_file(str(path), "hello")
    assert path.read_text() == "hello"
    assert files.read_file(str(path)) == "hello"


def test_update_file_overwrites(tmp_path):
    path = tmp_path / "f.txt"
    files.create_file(str(path), "first version")
    files.update_file(str(path), "second")
    assert files.read_file(str(path)) == "second"


def test_read_missing_file_is_an_os_error(tmp_path):
    with pytest.raises(OSError) as exc:
        files.read_file(str(tmp_path / "missing"))
    assert isinstance(exc.value, FileSystemError)
    assert exc.value.errno == errno.ENOENT


def test_delete_file(tmp_path):
    path = tmp_path / "f.txt"
    path.write_text("x")
    files.delete_file(str(path))
    assert not path.exists()
    with pytest.raises(FileSystemError):
        files.delete_file(str(path))


def test_delete_directory_is_recursive(tmp_path):
    root = tmp_path / "col"
    files.create_file(str(root / "nested" / "deep" / "x.postier"), "{}")
    files.delete_directory(str(root))
    assert not root.exists()
    files.delete_directory(str(root))


def test_create_directory_is_idempotent(tmp_path):
    path = tmp_path / "x" / "y"
    files.create_directory(str(path))
    files.create_directory(str(path))
    assert path.is_dir()


def test_create_directory_over_file_fails(tmp_path):
    (tmp_path / "taken").write_text("")
    with pytest.raises(FileSystemError):
        files.create_directory(str(tmp_path / "taken"))


def test_rename_keeps_file_extension(tmp_path):
    old = tmp_path / "old.postier"
    old.write_text("{}")
    new_path = files.rename_entry(str(old), "renamed")
    assert new_path == str(tmp_path / "renamed.postier")
    assert not old.exists()
    assert (tmp_path / "renamed.postier").read_text() == "{}"


def test_rename_directory(tmp_path):
    (tmp_path / "before").mkdir()
    new_path = files.rename_entry(str(tmp_path / "before"), "after.v2")
    assert new_path == str(tmp_path / "after.v2")
    assert (tmp_path / "after.v2").is_dir()


def test_rename_refuses_to_overwrite(tmp_path):
    (tmp_path / "a.postier").write_text("a")
    (tmp_path / "b.postier").write_text("b")
    with pytest.raises(FileSystemError) as exc:
        files.rename_entry(str(tmp_path / "a.postier"), "b")
    assert exc.value.errno == errno.EEXIST
    assert (tmp_path / "b.postier").read_text() == "b"


def test_rename_rejects_empty_name(tmp_path):
    (tmp_path / "a.postier").write_text("a")
    with pytest.raises(FileSystemError):
        files.rename_entry(str(tmp_path / "a.postier"), "  ")
