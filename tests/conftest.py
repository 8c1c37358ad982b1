from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import jsonl_bytes, write_json_gz, write_jsonl_gz, write_tgz


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    """Input directory holding one file of each supported format."""
    root = tmp_path / "snapshots"
    write_json_gz(root / "crossref" / "0.json.gz", {"items": [{"DOI": "10.1000/a"}, {"DOI": "10.1000/b"}]})
    write_tgz(
        root / "datacite" / "datacite.tgz",
        {
            "dois/part-1.jsonl": jsonl_bytes([{"doi": "10.2000/c"}, {"doi": "10.2000/d"}]),
            "README.txt": b"not records",
        },
    )
    write_jsonl_gz(root / "combined.jsonl.gz", [{"DOI": "10.3000/e"}])
    (root / "notes.txt").write_text("ignore me")
    return root
