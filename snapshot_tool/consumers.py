import sys
import gzip
import logging
from pathlib import Path

import orjson

from snapshot_tool.metadata import get_doi_from_record


PROGRESS_EVERY = 10_000
OUTPUT_COMPRESSION_LEVEL = 9

logger = logging.getLogger('snapshot_tool.consumers')


class OutputPathConflict(Exception):
    """Raised when the output file would land inside the input directory."""


def count_records(channel):
    count = 0
    for _ in channel:
        count += 1
        if count % PROGRESS_EVERY == 0:
            logger.info(f"Read {count} records")
    return count


def print_dois(channel, out=None):
    out = out or sys.stdout
    printed = 0
    for record in channel:
        doi = get_doi_from_record(record)
        if doi is not None:
            out.write(f"{doi}\n")
            printed += 1
    return printed


def check_output_path(output_file, input_dir):
    output_path = Path(output_file).resolve()
    input_path = Path(input_dir).resolve()
    if output_path == input_path or input_path in output_path.parents:
        raise OutputPathConflict(
            f"Output file {output_file} can't be in the input directory {input_dir}"
        )


class RecordWriter:
    """Re-serializes every record into one gzip-compressed JSON Lines file."""

    def __init__(self, output_file, input_dir):
        check_output_path(output_file, input_dir)
        self.output_file = Path(output_file)
        self.written = 0
        self.skipped = 0

    def write_channel(self, channel):
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_file, 'wb', buffering=2**20) as f, \
                gzip.GzipFile(fileobj=f, mode='wb', compresslevel=OUTPUT_COMPRESSION_LEVEL) as gz_file:
            for record in channel:
                try:
                    line = orjson.dumps(record)
                except orjson.JSONEncodeError as e:
                    self.skipped += 1
                    logger.warning(f"Skipping record with DOI {get_doi_from_record(record)}: {e}")
                    continue
                gz_file.write(line)
                gz_file.write(b"\n")

                self.written += 1
                if self.written % PROGRESS_EVERY == 0:
                    logger.info(f"Written {self.written} entries to {self.output_file}")

        logger.info(f"Finished writing {self.written} entries to {self.output_file}")
        if self.skipped:
            logger.warning(f"Skipped {self.skipped} records nested too deeply to serialize")
        return self.written
