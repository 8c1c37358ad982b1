import csv
import logging
from collections import defaultdict

import orjson

from snapshot_tool.metadata import get_doi_from_record


JSON_CHARS_BUCKET_SIZE = 1024
PROGRESS_EVERY = 10_000


def mean(total, count):
    return total / count if count else 0.0


def mode(frequencies):
    """Most frequent key; ties go to the smallest key. Empty tables give 0."""
    if not frequencies:
        return 0
    return max(sorted(frequencies.items()), key=lambda item: item[1])[0]


class SnapshotStats:
    """Single-pass statistics over a stream of records.

    Only totals and frequency tables are kept, never the records, so memory
    use is independent of the size of the snapshot.
    """

    def __init__(self):
        self.logger = logging.getLogger('snapshot_tool.stats')
        self.count = 0
        self.total_json_chars = 0
        self.total_doi_chars = 0
        self.total_doi_bytes = 0
        self.json_chars_frequencies = defaultdict(int)
        self.doi_chars_frequencies = defaultdict(int)
        self.doi_bytes_frequencies = defaultdict(int)
        self.max_doi_codepoint = 0
        self.unserializable = 0

    @classmethod
    def from_channel(cls, channel):
        stats = cls()
        for record in channel:
            stats.add(record)
            if stats.count % PROGRESS_EVERY == 0:
                stats.logger.info(f"Read {stats.count} records")
        return stats

    def add(self, record):
        self.count += 1

        doi = get_doi_from_record(record)

        try:
            json_chars = len(orjson.dumps(record).decode('utf-8'))
        except orjson.JSONEncodeError as e:
            # orjson reads deeper nesting than it can write back.
            self.unserializable += 1
            self.logger.warning(f"Can't measure JSON size of record {self.count} (DOI {doi}): {e}")
        else:
            self.total_json_chars += json_chars
            bucket = (json_chars // JSON_CHARS_BUCKET_SIZE) * JSON_CHARS_BUCKET_SIZE
            self.json_chars_frequencies[bucket] += 1

        if doi is None:
            return

        doi_chars = len(doi)
        doi_bytes = len(doi.encode('utf-8'))
        if doi:
            self.max_doi_codepoint = max(self.max_doi_codepoint, max(map(ord, doi)))

        self.total_doi_chars += doi_chars
        self.doi_chars_frequencies[doi_chars] += 1
        self.total_doi_bytes += doi_bytes
        self.doi_bytes_frequencies[doi_bytes] += 1

    def summary(self):
        return {
            'count': self.count,
            'total_json_chars': self.total_json_chars,
            'mean_json_chars': mean(self.total_json_chars, self.count),
            'mode_json_chars': mode(self.json_chars_frequencies),
            'total_doi_chars': self.total_doi_chars,
            'mean_doi_chars': mean(self.total_doi_chars, self.count),
            'mode_doi_chars': mode(self.doi_chars_frequencies),
            'total_doi_bytes': self.total_doi_bytes,
            'mean_doi_bytes': mean(self.total_doi_bytes, self.count),
            'mode_doi_bytes': mode(self.doi_bytes_frequencies),
            'max_doi_codepoint': self.max_doi_codepoint,
            'unserializable': self.unserializable,
        }

    def write_report(self, out):
        s = self.summary()
        codepoint = s['max_doi_codepoint']
        codepoint_char = chr(codepoint) if codepoint else '-'

        out.write(
            f"Record count: {s['count']}\n"
            "\n"
            "JSON:\n"
            f"Total JSON chars: {s['total_json_chars']}\n"
            f"Mean JSON chars: {s['mean_json_chars']}\n"
            f"Modal JSON chars: {s['mode_json_chars']}\n"
            f"Records too deeply nested to measure: {s['unserializable']}\n"
            "\n"
            "DOIs:\n"
            f"Total DOI chars: {s['total_doi_chars']}\n"
            f"Mean DOI chars: {s['mean_doi_chars']}\n"
            f"Modal DOI chars: {s['mode_doi_chars']}\n"
            "\n"
            f"Total DOI bytes: {s['total_doi_bytes']}\n"
            f"Mean DOI bytes: {s['mean_doi_bytes']}\n"
            f"Modal DOI bytes: {s['mode_doi_bytes']}\n"
            f"Max Unicode code point: {codepoint_char} : {codepoint}\n"
            "\n"
            "Frequencies:\n"
            f"JSON chars frequencies (bins of {JSON_CHARS_BUCKET_SIZE // 1024}KiB):\n"
        )
        writer = csv.writer(out, lineterminator='\n')
        writer.writerows(sorted(self.json_chars_frequencies.items()))
        out.write("\n\nDOI chars frequencies:\n")
        writer.writerows(sorted(self.doi_chars_frequencies.items()))
