"""Tests for pattern-based and targeted extraction."""

from pathlib import Path

import pytest

from core.config import DEFAULT_CACHE_DB_PATH, DEFAULT_SNAPSHOT_PATTERN
from extractors.archive import extract_matching_files, extract_single_file
from extractors.callbacks import LoggingCallbacks
from extractors.exceptions import ArchiveError, NotFoundError
from tests.fixtures.archives import snapshot_entry


class RecordingCallbacks(LoggingCallbacks):
    """LoggingCallbacks that also keeps what it was told."""

    def __init__(self, cancel_after=None):
        super().__init__("tests.callbacks")
        self.progress = []
        self.errors = []
        self.cancel_after = cancel_after

    def on_progress(self, current, total, message=""):
        self.progress.append((current, total, message))
        if self.cancel_after is not None and len(self.progress) >= self.cancel_after:
            self.cancel()

    def on_error(self, error, details=""):
        self.errors.append((error, details))


class TestExtractMatchingFiles:

    def test_extracts_every_match(self, zip_factory, tmp_path):
        archive = zip_factory({
            snapshot_entry("A.ktx"): b"a",
            snapshot_entry("B.ktx", app="APP-2"): b"b",
            snapshot_entry("C.ktx", scene="other"): b"c",
            snapshot_entry("readme.txt"): b"no",
            "filesystem1/private/var/mobile/Library/other.ktx": b"no",
        })
        result = extract_matching_files(archive, tmp_path / "out", DEFAULT_SNAPSHOT_PATTERN)

        assert [p.name for p in result.paths] == ["A.ktx", "B.ktx", "C.ktx"]
        assert result.entries_scanned == 5
        assert result.entries_matched == 3
        assert result.complete
        for path, content in zip(result.paths, (b"a", b"b", b"c")):
            assert path.read_bytes() == content

    def test_output_is_flat(self, zip_factory, tmp_path):
        archive = zip_factory({"a/x/one.ktx": b"1", "a/y/two.ktx": b"2"})
        result = extract_matching_files(archive, tmp_path / "out", "a/*/*.ktx")
        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["one.ktx", "two.ktx"]
        assert all(p.parent == tmp_path / "out" for p in result.paths)

    def test_same_basename_last_wins(self, zip_factory, tmp_path):
        archive = zip_factory({"a/x/same.ktx": b"first", "a/y/same.ktx": b"second"})
        extract_matching_files(archive, tmp_path / "out", "a/*/*.ktx")
        assert (tmp_path / "out" / "same.ktx").read_bytes() == b"second"

    def test_no_matches_is_empty_result(self, zip_factory, tmp_path):
        archive = zip_factory({"a/b.txt": b"x"})
        result = extract_matching_files(archive, tmp_path / "out", "*.ktx")
        assert result.extracted == []
        assert result.failures == []
        assert result.complete
        assert (tmp_path / "out").is_dir()

    def test_directories_are_never_extracted(self, zip_factory, tmp_path):
        archive = zip_factory({"a/": None, "a/dir.ktx/": None, "a/file.ktx": b"x"})
        result = extract_matching_files(archive, tmp_path / "out", "a/*")
        assert [p.name for p in result.paths] == ["file.ktx"]

    def test_idempotent(self, device_archive, tmp_path):
        first = extract_matching_files(device_archive, tmp_path / "out", DEFAULT_SNAPSHOT_PATTERN)
        contents = {p.name: p.read_bytes() for p in first.paths}
        second = extract_matching_files(device_archive, tmp_path / "out", DEFAULT_SNAPSHOT_PATTERN)

        assert [p.name for p in second.paths] == [p.name for p in first.paths]
        assert {p.name: p.read_bytes() for p in second.paths} == contents
        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["A.ktx", "B.ktx", "C.ktx"]

    def test_extracted_metadata(self, device_archive, tmp_path):
        result = extract_matching_files(device_archive, tmp_path / "out", DEFAULT_SNAPSHOT_PATTERN)
        by_name = {item.local_path.name: item for item in result.extracted}
        assert by_name["B.ktx"].modified_utc.isoformat() == "2023-05-17T12:00:40+00:00"
        assert by_name["A.ktx"].size_bytes == 500
        assert by_name["A.ktx"].entry_path == snapshot_entry("A.ktx")

    def test_missing_archive_raises(self, tmp_path):
        with pytest.raises(ArchiveError):
            extract_matching_files(tmp_path / "nope.zip", tmp_path / "out", "*.ktx")

    def test_invalid_pattern_raises(self, zip_factory, tmp_path):
        with pytest.raises(ValueError):
            extract_matching_files(zip_factory({"a": b""}), tmp_path / "out", "")

    def test_write_failure_is_recorded_and_scan_continues(self, zip_factory, tmp_path):
        archive = zip_factory({"a/one.ktx": b"1", "a/blocked.ktx": b"2", "a/three.ktx": b"3"})
        out = tmp_path / "out"
        (out / "blocked.ktx").mkdir(parents=True)  # a directory where the file should go
        callbacks = RecordingCallbacks()

        result = extract_matching_files(archive, out, "a/*.ktx", callbacks=callbacks)

        assert [p.name for p in result.paths] == ["one.ktx", "three.ktx"]
        assert [f.entry_path for f in result.failures] == ["a/blocked.ktx"]
        assert not result.complete
        assert callbacks.errors and "a/blocked.ktx" in callbacks.errors[0][0]

    @pytest.mark.skipif(not Path("/dev/full").exists(), reason="needs /dev/full")
    def test_failure_on_close_is_recorded_and_scan_continues(self, zip_factory, tmp_path):
        archive = zip_factory({"a/one.ktx": b"1", "a/full.ktx": b"12345", "a/three.ktx": b"3"})
        out = tmp_path / "out"
        out.mkdir()
        # small writes stay buffered, so the device only reports ENOSPC on close
        (out / "full.ktx").symlink_to("/dev/full")

        result = extract_matching_files(archive, out, "a/*.ktx")

        assert [p.name for p in result.paths] == ["one.ktx", "three.ktx"]
        assert [f.entry_path for f in result.failures] == ["a/full.ktx"]
        assert not (out / "full.ktx").is_symlink()

    def test_progress_reported_per_entry(self, zip_factory, tmp_path):
        archive = zip_factory({"a.ktx": b"1", "b.txt": b"2"})
        callbacks = RecordingCallbacks()
        extract_matching_files(archive, tmp_path / "out", "*.ktx", callbacks=callbacks)
        assert callbacks.progress == [(0, 2, "a.ktx"), (1, 2, "b.txt")]

    def test_cancellation_stops_scan(self, zip_factory, tmp_path):
        archive = zip_factory({f"{i}.ktx": b"x" for i in range(5)})
        callbacks = RecordingCallbacks(cancel_after=2)

        result = extract_matching_files(archive, tmp_path / "out", "*.ktx", callbacks=callbacks)

        assert result.cancelled
        assert not result.complete
        assert result.entries_scanned == 2
        assert [p.name for p in result.paths] == ["0.ktx", "1.ktx"]


class TestExtractSingleFile:

    def test_extracts_target(self, device_archive, tmp_path):
        path = extract_single_file(device_archive, DEFAULT_CACHE_DB_PATH, tmp_path / "out")
        assert path == tmp_path / "out" / "Cache.sqlite"
        assert path.read_bytes()[:16] == b"SQLite format 3\x00"

    def test_exact_path_only(self, zip_factory, tmp_path):
        archive = zip_factory({"x/Cache.sqlite": b"wrong", "y/Cache.sqlite": b"right"})
        path = extract_single_file(archive, "y/Cache.sqlite", tmp_path)
        assert path.read_bytes() == b"right"

    def test_not_found(self, zip_factory, tmp_path):
        archive = zip_factory({"a.txt": b"x"})
        with pytest.raises(NotFoundError) as excinfo:
            extract_single_file(archive, "missing/Cache.sqlite", tmp_path / "out")
        assert excinfo.value.target_path == "missing/Cache.sqlite"
        assert str(excinfo.value) == 'File "missing/Cache.sqlite" not found in the ZIP archive.'

    def test_wildcards_are_not_interpreted(self, zip_factory, tmp_path):
        archive = zip_factory({"a/Cache.sqlite": b"x"})
        with pytest.raises(NotFoundError):
            extract_single_file(archive, "*/Cache.sqlite", tmp_path)

    def test_stops_at_first_match(self, zip_factory, tmp_path):
        archive = zip_factory([("t.db", b"first"), ("t.db", b"second")])
        path = extract_single_file(archive, "t.db", tmp_path)
        assert Path(path).read_bytes() == b"first"
