import logging
from pathlib import Path

from snapshot_tool.readers import JsonLinesReader, JsonSnapshotReader, TarSnapshotReader


# DataCite public data file: one .tgz with many .jsonl entries.
TAR_SNAPSHOT_SUFFIX = '.tgz'
# Crossref public data file torrent: many .json.gz documents.
JSON_SNAPSHOT_SUFFIX = '.json.gz'
# Format written by this tool.
JSON_LINES_SUFFIX = '.jsonl.gz'

# Checked in this order.
READERS_BY_SUFFIX = (
    (TAR_SNAPSHOT_SUFFIX, TarSnapshotReader),
    (JSON_SNAPSHOT_SUFFIX, JsonSnapshotReader),
    (JSON_LINES_SUFFIX, JsonLinesReader),
)


def select_reader(path):
    name = Path(path).name
    for suffix, reader_class in READERS_BY_SUFFIX:
        if name.endswith(suffix):
            return reader_class
    return None


class FileScanner:
    def __init__(self):
        self.logger = logging.getLogger('snapshot_tool.file_scanner')

    def find_input_files(self, input_path):
        """Return every snapshot file under input_path, depth first.

        Errors reading a directory propagate and abort the scan.
        """
        paths = []
        self._walk(Path(input_path), paths)
        self.logger.info(f"Found {len(paths)} snapshot files in {input_path}")
        return paths

    def _walk(self, path, paths):
        if path.is_file():
            if select_reader(path) is not None:
                paths.append(path)
        elif path.is_dir():
            for child in sorted(path.iterdir()):
                self._walk(child, paths)
