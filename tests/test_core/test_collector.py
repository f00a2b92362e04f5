"""
Tests for recursive file collection
"""

import pytest

from filequery.core.collector import (
    BufferFileHandle,
    DirectorySource,
    FileListSource,
    collect,
    collect_directory,
    guess_media_type,
    is_supported_file_path,
    open_source,
)


class FakeDirectory:
    """In-memory directory whose entries can fail on demand"""

    def __init__(self, name, entries, fail=False):
        self.name = name
        self._entries = entries
        self._fail = fail

    async def entries(self):
        if self._fail:
            raise PermissionError(f"cannot list {self.name}")
        for entry in self._entries:
            yield entry


class BrokenFile:
    name = "broken.csv"

    async def size(self):
        raise OSError("stat failed")

    async def read_bytes(self):
        raise OSError("read failed")


class TestSupportedPaths:
    def test_allow_list(self):
        assert is_supported_file_path("a.parquet")
        assert is_supported_file_path("sub/B.CSV")
        assert is_supported_file_path("x.ndjson")
        assert is_supported_file_path("x.json")
        assert not is_supported_file_path("a.txt")
        assert not is_supported_file_path("csv")
        assert not is_supported_file_path("data.csv.gz")

    def test_media_type(self):
        assert guess_media_type("a.parquet") == "application/vnd.apache.parquet"
        assert guess_media_type("a.csv") == "text/csv"
        assert guess_media_type("a.ndjson") == "application/x-ndjson"


class TestCollectDirectory:
    """Test local directory walks"""

    @pytest.mark.anyio
    async def test_filters_and_recurses(self, data_dir):
        collected = await collect(data_dir)
        assert sorted(collected.paths) == ["a.parquet", "sub/b.csv"]
        assert len(collected.files) == len(collected.meta) == 2

    @pytest.mark.anyio
    async def test_sizes_and_bytes(self, data_dir):
        collected = await collect(data_dir)
        by_path = dict(zip(collected.paths, collected.files))
        meta = {m.path: m for m in collected.meta}
        assert meta["sub/b.csv"].size == (data_dir / "sub" / "b.csv").stat().st_size
        assert await by_path["sub/b.csv"].read_bytes() == b"id,score\n1,10\n2,20\n"

    @pytest.mark.anyio
    async def test_base_path_prefix(self, data_dir):
        collected = await collect(data_dir, base_path="root")
        assert sorted(collected.paths) == ["root/a.parquet", "root/sub/b.csv"]

    @pytest.mark.anyio
    async def test_empty_directory(self, tmp_path):
        collected = await collect(tmp_path)
        assert len(collected) == 0

    @pytest.mark.anyio
    async def test_unreadable_subdirectory_skipped(self):
        root = FakeDirectory(
            "root",
            [
                ("locked", "directory", FakeDirectory("locked", [], fail=True)),
                ("ok.csv", "file", BufferFileHandle("ok.csv", b"a\n1\n")),
                ("broken.csv", "file", BrokenFile()),
                ("fifo", "other", None),
            ],
        )
        with pytest.warns(UserWarning):
            collected = await collect_directory(root)
        assert collected.paths == ["ok.csv"]

    @pytest.mark.anyio
    async def test_unreadable_root_raises(self):
        with pytest.raises(PermissionError):
            await collect_directory(FakeDirectory("root", [], fail=True))


class TestSources:
    def test_open_source_variants(self, data_dir):
        assert isinstance(open_source(data_dir), DirectorySource)
        assert open_source(data_dir).label == "data"
        assert isinstance(open_source([("x/a.csv", b"a\n", 2)]), FileListSource)
        assert isinstance(open_source(FakeDirectory("d", [])), DirectorySource)

    @pytest.mark.anyio
    async def test_file_list(self):
        source = FileListSource(
            [
                ("folder/a.csv", b"a\n1\n", 4),
                ("folder/notes.txt", b"hello", 5),
                ("folder/x/b.json", b"[]", 2),
            ]
        )
        assert source.label == "folder"
        collected = await source.collect()
        assert collected.paths == ["folder/a.csv", "folder/x/b.json"]
        assert collected.meta[0].size == 4
        assert await collected.files[0].read_bytes() == b"a\n1\n"

    @pytest.mark.anyio
    async def test_local_file_list(self, data_dir):
        collected = await collect([data_dir / "a.parquet", data_dir / "a.txt"])
        assert collected.paths == ["a.parquet"]
