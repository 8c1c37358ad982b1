import gzip
import logging
import zlib
import tarfile

import orjson


logger = logging.getLogger('snapshot_tool.readers')

JSONL_ENTRY_SUFFIX = '.jsonl'
ITEMS_FIELD = 'items'
DEFAULT_CHUNK_SIZE = 2**24


class SnapshotParseError(Exception):
    """Raised when a snapshot file or one of its lines is not valid JSON."""


def _parse_line(line, source, line_number):
    try:
        return orjson.loads(line)
    except orjson.JSONDecodeError as e:
        raise SnapshotParseError(f"L{line_number}: JSON decode error in {source}: {e}") from e


def iter_json_lines(stream, source, chunk_size=DEFAULT_CHUNK_SIZE):
    """Yield one decoded record per non-blank line of a binary stream.

    The stream is read in chunks so memory stays bounded by the chunk size
    plus the longest line, whatever the size of the stream.
    """
    buffer = bytearray()
    line_number = 0
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        buffer.extend(chunk)
        lines = buffer.split(b'\n')
        buffer = bytearray(lines.pop())

        for line in lines:
            line_number += 1
            line = line.strip()
            if not line:
                continue
            yield _parse_line(line, source, line_number)

    if buffer.strip():
        line_number += 1
        yield _parse_line(buffer.strip(), source, line_number)


class JsonLinesReader:
    """Gzip-compressed line-delimited JSON, the format written by this tool."""

    def __init__(self, filepath, chunk_size=DEFAULT_CHUNK_SIZE):
        self.filepath = filepath
        self.chunk_size = chunk_size

    def __iter__(self):
        try:
            with gzip.open(self.filepath, 'rb') as gz_file:
                yield from iter_json_lines(gz_file, self.filepath, self.chunk_size)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise SnapshotParseError(f"Bad gzip file {self.filepath}: {e}") from e


class JsonSnapshotReader:
    """A single gzip-compressed JSON document with a top-level items array.

    The document is one JSON value so it has to be decoded in full before any
    record can be emitted.
    """

    def __init__(self, filepath):
        self.filepath = filepath

    def __iter__(self):
        try:
            with gzip.open(self.filepath, 'rb') as gz_file:
                document = orjson.loads(gz_file.read())
        except orjson.JSONDecodeError as e:
            raise SnapshotParseError(f"JSON decode error in {self.filepath}: {e}") from e
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise SnapshotParseError(f"Bad gzip file {self.filepath}: {e}") from e

        items = document.get(ITEMS_FIELD) if isinstance(document, dict) else None
        if not isinstance(items, list):
            logger.info(f"No {ITEMS_FIELD} array found in {self.filepath}, skipping file.")
            return

        logger.debug(f"Found {len(items)} items in {self.filepath}")
        yield from items


class TarSnapshotReader:
    """Gzip-compressed tar archive of line-delimited JSON entries.

    Entries are streamed in archive order straight out of the tarball;
    nothing is extracted to disk.
    """

    def __init__(self, filepath, chunk_size=DEFAULT_CHUNK_SIZE):
        self.filepath = filepath
        self.chunk_size = chunk_size

    def __iter__(self):
        try:
            with tarfile.open(self.filepath, 'r|gz') as tar:
                for member in tar:
                    if not member.isfile() or not member.name.endswith(JSONL_ENTRY_SUFFIX):
                        logger.debug(f"Skipping entry {member.name} in {self.filepath}")
                        continue
                    entry = tar.extractfile(member)
                    if entry is None:
                        continue
                    source = f"{self.filepath}:{member.name}"
                    logger.debug(f"Reading entry {source}")
                    yield from iter_json_lines(entry, source, self.chunk_size)
        except (tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise SnapshotParseError(f"Bad tar archive {self.filepath}: {e}") from e
