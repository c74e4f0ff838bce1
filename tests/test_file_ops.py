"""Tests for file_ops.py - reading, atomic writes and input collection."""

import os
import threading
from pathlib import Path

import pytest

from hostguard.exceptions import ErrorCode, FileAccessError
from hostguard.file_ops import FileLocks, collect_files, read_source, write_source

EXCLUDES = ("bin/*", "obj/*", "*.Designer.cs")


def _touch(root: Path, relative: str, text: str = "class A { }\n") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestReadSource:
    def test_keeps_line_endings(self, tmp_path):
        path = tmp_path / "A.cs"
        path.write_bytes(b"class A\r\n{\r\n}\r\n")
        assert read_source(path) == "class A\r\n{\r\n}\r\n"

    def test_missing(self, tmp_path):
        with pytest.raises(FileAccessError) as exc:
            read_source(tmp_path / "Missing.cs")
        assert exc.value.reason == "file not found"
        assert exc.value.code is ErrorCode.HG400

    def test_size_limit(self, tmp_path):
        path = _touch(tmp_path, "Big.cs", "x" * 100)
        with pytest.raises(FileAccessError, match="byte limit"):
            read_source(path, max_bytes=10)


class TestWriteSource:
    def test_replaces_contents(self, tmp_path):
        path = _touch(tmp_path, "A.cs")
        write_source(path, "class B\r\n{\r\n}\r\n")
        assert path.read_bytes() == b"class B\r\n{\r\n}\r\n"

    def test_leaves_no_temporary_files(self, tmp_path):
        path = _touch(tmp_path / "proj", "A.cs")
        write_source(path, "class B { }\n")
        assert os.listdir(path.parent) == ["A.cs"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
    def test_keeps_file_mode(self, tmp_path):
        path = _touch(tmp_path, "A.cs")
        os.chmod(path, 0o640)
        write_source(path, "class B { }\n")
        assert os.stat(path).st_mode & 0o777 == 0o640

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileAccessError) as exc:
            write_source(tmp_path / "nowhere" / "A.cs", "class B { }\n")
        assert exc.value.code is ErrorCode.HG401


class TestFileLocks:
    def test_same_path_same_lock(self, tmp_path):
        locks = FileLocks()
        path = tmp_path / "A.cs"
        assert locks.get(path) is locks.get(str(tmp_path / "." / "A.cs"))
        assert locks.get(path) is not locks.get(tmp_path / "B.cs")

    def test_hold_serialises_writers(self, tmp_path):
        locks = FileLocks()
        path = tmp_path / "A.cs"
        inside = []

        def work(n):
            with locks.hold(path):
                inside.append(n)
                assert len(inside) == 1
                inside.pop()

        threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert inside == []


class TestCollectFiles:
    def test_directory_walk(self, tmp_path):
        root = tmp_path / "proj"
        _touch(root, "B.cs")
        _touch(root, "A.cs")
        _touch(root, "sub/C.cs")
        _touch(root, "readme.md")
        names = [Path(p).relative_to(root).as_posix() for p in collect_files([root], exclude_patterns=EXCLUDES)]
        assert names == ["A.cs", "B.cs", "sub/C.cs"]

    def test_excludes(self, tmp_path):
        root = tmp_path / "proj"
        _touch(root, "A.cs")
        _touch(root, "bin/Gen.cs")
        _touch(root, "lib/obj/Gen.cs")
        _touch(root, "Form.Designer.cs")
        files = collect_files([root], exclude_patterns=EXCLUDES)
        assert [Path(p).name for p in files] == ["A.cs"]

    def test_hidden_files(self, tmp_path):
        root = tmp_path / "proj"
        _touch(root, ".vs/Cache.cs")
        _touch(root, "A.cs")
        assert len(collect_files([root])) == 1
        assert len(collect_files([root], allow_hidden_files=True)) == 2

    def test_explicit_files_are_kept(self, tmp_path):
        missing = tmp_path / "Missing.cs"
        notes = _touch(tmp_path, "notes.txt")
        assert collect_files([missing, notes]) == [str(missing), str(notes)]

    def test_duplicates_collapse(self, tmp_path):
        path = _touch(tmp_path / "proj", "A.cs")
        assert collect_files([path, tmp_path / "proj"]) == [str(path)]
