from __future__ import annotations

import gzip
import io
import logging
import zlib
from pathlib import Path

import pytest

from snapshot_tool.readers import (
    JsonLinesReader,
    JsonSnapshotReader,
    SnapshotParseError,
    TarSnapshotReader,
    iter_json_lines,
)
from tests.helpers import jsonl_bytes, write_json_gz, write_jsonl_gz, write_tgz


def test_iter_json_lines_streams_every_line() -> None:
    stream = io.BytesIO(b'{"a": 1}\n{"b": [2, 3]}\n')
    assert list(iter_json_lines(stream, "mem")) == [{"a": 1}, {"b": [2, 3]}]


def test_iter_json_lines_handles_missing_trailing_newline_and_small_chunks() -> None:
    stream = io.BytesIO(b'{"title": "long enough to span chunks"}\n{"n": 2}')
    records = list(iter_json_lines(stream, "mem", chunk_size=7))
    assert records == [{"title": "long enough to span chunks"}, {"n": 2}]


def test_iter_json_lines_skips_blank_lines() -> None:
    stream = io.BytesIO(b'{"a": 1}\n\n   \n{"a": 2}\n')
    assert list(iter_json_lines(stream, "mem")) == [{"a": 1}, {"a": 2}]


def test_iter_json_lines_malformed_line_raises_with_line_number() -> None:
    stream = io.BytesIO(b'{"a": 1}\n{"a": \n{"a": 3}\n')
    records = iter_json_lines(stream, "broken.jsonl")

    assert next(records) == {"a": 1}
    with pytest.raises(SnapshotParseError, match=r"L2: .*broken\.jsonl"):
        next(records)


def test_json_lines_reader(tmp_path: Path) -> None:
    path = write_jsonl_gz(tmp_path / "out.jsonl.gz", [{"DOI": "10.1/a"}, {"doi": "10.2/b"}])
    assert list(JsonLinesReader(path)) == [{"DOI": "10.1/a"}, {"doi": "10.2/b"}]


def test_json_lines_reader_bad_gzip(tmp_path: Path) -> None:
    path = tmp_path / "bad.jsonl.gz"
    path.write_bytes(b"plain text, not gzip")
    with pytest.raises(SnapshotParseError):
        list(JsonLinesReader(path))


def test_json_snapshot_reader_yields_items(tmp_path: Path) -> None:
    items = [{"DOI": "10.1/a", "title": ["A"]}, {"DOI": "10.1/b"}]
    path = write_json_gz(tmp_path / "0.json.gz", {"items": items})
    assert list(JsonSnapshotReader(path)) == items


def test_json_snapshot_reader_without_items_logs_and_yields_nothing(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = write_json_gz(tmp_path / "0.json.gz", {"message": {"items": []}})

    with caplog.at_level(logging.INFO, logger="snapshot_tool"):
        assert list(JsonSnapshotReader(path)) == []

    assert "No items array" in caplog.text


@pytest.mark.parametrize("document", [[{"DOI": "10.1/a"}], {"items": "nope"}, "items"])
def test_json_snapshot_reader_wrong_shape_is_not_fatal(tmp_path: Path, document) -> None:
    path = write_json_gz(tmp_path / "0.json.gz", document)
    assert list(JsonSnapshotReader(path)) == []


def test_json_snapshot_reader_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "0.json.gz"
    with gzip.open(path, "wb") as fh:
        fh.write(b'{"items": [')
    with pytest.raises(SnapshotParseError):
        list(JsonSnapshotReader(path))


def test_tar_snapshot_reader_ignores_non_jsonl_entries(tmp_path: Path) -> None:
    path = write_tgz(
        tmp_path / "datacite.tgz",
        {
            "x.jsonl": jsonl_bytes([{"doi": "10.2/a"}, {"doi": "10.2/b"}]),
            "y.txt": b'{"doi": "10.2/ignored"}\n',
        },
    )
    assert list(TarSnapshotReader(path)) == [{"doi": "10.2/a"}, {"doi": "10.2/b"}]


def test_tar_snapshot_reader_keeps_archive_order(tmp_path: Path) -> None:
    path = write_tgz(
        tmp_path / "datacite.tgz",
        {
            "2024/b.jsonl": jsonl_bytes([{"n": 1}]),
            "2023/a.jsonl": jsonl_bytes([{"n": 2}, {"n": 3}]),
        },
    )
    assert [r["n"] for r in TarSnapshotReader(path)] == [1, 2, 3]


def test_tar_snapshot_reader_malformed_entry_raises(tmp_path: Path) -> None:
    path = write_tgz(
        tmp_path / "datacite.tgz",
        {"bad.jsonl": b'{"doi": "10.2/a"}\nnot json\n', "good.jsonl": jsonl_bytes([{"n": 1}])},
    )
    records = iter(TarSnapshotReader(path))

    assert next(records) == {"doi": "10.2/a"}
    with pytest.raises(SnapshotParseError, match="bad.jsonl"):
        next(records)


def test_tar_snapshot_reader_corrupt_archive(tmp_path: Path) -> None:
    path = tmp_path / "broken.tgz"
    path.write_bytes(b"definitely not a tarball")
    with pytest.raises(SnapshotParseError):
        list(TarSnapshotReader(path))


def test_json_snapshot_reader_shape_diagnostic_is_verbose_only(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = write_json_gz(tmp_path / "0.json.gz", {"message": "no items here"})

    with caplog.at_level(logging.WARNING, logger="snapshot_tool"):
        assert list(JsonSnapshotReader(path)) == []

    assert caplog.text == ""


class TruncatedDeflateStream(io.BytesIO):
    def read(self, size=-1):
        raise zlib.error("Error -3 while decompressing data: invalid distance too far back")


@pytest.mark.parametrize("reader_class", [JsonLinesReader, JsonSnapshotReader])
def test_corrupt_deflate_data_is_a_parse_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, reader_class
) -> None:
    path = write_jsonl_gz(tmp_path / "corrupt.jsonl.gz", [{"n": 1}])
    monkeypatch.setattr("snapshot_tool.readers.gzip.open", lambda *args, **kwargs: TruncatedDeflateStream())

    with pytest.raises(SnapshotParseError, match="Bad gzip file"):
        list(reader_class(path))
