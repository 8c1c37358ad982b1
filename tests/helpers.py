from __future__ import annotations

import gzip
import io
import tarfile
from pathlib import Path

import orjson


def write_jsonl_gz(path: Path, records: list) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wb") as fh:
        for record in records:
            fh.write(orjson.dumps(record) + b"\n")
    return path


def write_json_gz(path: Path, document) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wb") as fh:
        fh.write(orjson.dumps(document))
    return path


def write_tgz(path: Path, entries: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, payload in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
    return path


def jsonl_bytes(records: list) -> bytes:
    return b"".join(orjson.dumps(record) + b"\n" for record in records)


