import sys
import logging
import argparse
from pathlib import Path

from snapshot_tool import __version__
from snapshot_tool.stats import SnapshotStats
from snapshot_tool.scanner import FileScanner
from snapshot_tool.pipeline import DEFAULT_CHANNEL_CAPACITY, run_pipeline
from snapshot_tool.consumers import OutputPathConflict, RecordWriter, count_records, print_dois


class LoggerSetup:
    LOGGER_NAME = 'snapshot_tool'

    @classmethod
    def configure(cls, level_name):
        level = getattr(logging, level_name.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        logger = logging.getLogger(cls.LOGGER_NAME)
        logger.setLevel(level)
        return logger


class ArgumentConfig:
    def __init__(self):
        self.input_dir = None
        self.output_file = None
        self.list_input_files = False
        self.count = False
        self.stats = False
        self.print_dois = False
        self.verbose = False
        self.log_level = None
        self.channel_capacity = DEFAULT_CHANNEL_CAPACITY
        self.plots_dir = None

    @classmethod
    def parse_arguments(cls, argv=None):
        parser = argparse.ArgumentParser(
            prog='snapshot-tool',
            description='Read Crossref and DataCite public data snapshots and count, '
                        'summarise, list DOIs from or recombine their records.'
        )

        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        parser.add_argument('-i', '--input-dir', '--input', dest='input_dir', required=True,
                            help='Directory containing snapshot files (.json.gz, .tgz, .jsonl.gz), searched recursively.')
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='Send progress messages to STDERR.')
        parser.add_argument('-l', '--log-level', default=None,
                            help='Logging level (INFO, DEBUG, etc.). Overrides --verbose.')
        parser.add_argument('--channel-capacity', type=int, default=DEFAULT_CHANNEL_CAPACITY,
                            help=f'Records buffered between reader and consumer (default: {DEFAULT_CHANNEL_CAPACITY}).')
        parser.add_argument('--plots-dir',
                            help='With --stats, also save frequency charts to this directory.')

        mode_group = parser.add_mutually_exclusive_group(required=True)
        mode_group.add_argument('--list-input-files', action='store_true',
                                help='List all snapshot files found in the input directory.')
        mode_group.add_argument('--count', action='store_true',
                                help='Print the number of records.')
        mode_group.add_argument('--stats', action='store_true',
                                help='Print stats for the snapshot files: record count, total and mean size '
                                     'of JSON, total and mean size of DOIs, and frequency tables.')
        mode_group.add_argument('--print-dois', action='store_true',
                                help='Print the DOI of every record to STDOUT.')
        mode_group.add_argument('-o', '--output-file',
                                help='Save all records to one output file. Only .jsonl.gz is supported.')

        args = parser.parse_args(argv)
        if args.channel_capacity < 1:
            parser.error('--channel-capacity must be at least 1')

        config = cls()
        config.input_dir = args.input_dir
        config.output_file = args.output_file
        config.list_input_files = args.list_input_files
        config.count = args.count
        config.stats = args.stats
        config.print_dois = args.print_dois
        config.verbose = args.verbose
        config.log_level = args.log_level or ('INFO' if args.verbose else 'WARNING')
        config.channel_capacity = args.channel_capacity
        config.plots_dir = args.plots_dir

        return config


class SnapshotTool:
    def __init__(self):
        self.logger = None
        self.config = None

    def run(self, argv=None):
        try:
            self.config = ArgumentConfig.parse_arguments(argv)
            self.logger = LoggerSetup.configure(self.config.log_level)
            config = self.config

            input_dir = Path(config.input_dir)
            if not input_dir.exists():
                self.logger.error(f"Input directory is not valid: {input_dir}")
                return 1

            writer = None
            if config.output_file:
                if not config.output_file.endswith('.jsonl.gz'):
                    self.logger.warning(f"Output file {config.output_file} will be written as .jsonl.gz")
                writer = RecordWriter(config.output_file, input_dir)

            try:
                paths = FileScanner().find_input_files(input_dir)
            except OSError as e:
                self.logger.error(f"Failed to scan input directory {input_dir}: {e}")
                return 1

            if config.list_input_files:
                for path in paths:
                    print(path)
                return 0

            if config.count:
                count, error = run_pipeline(paths, count_records, config.channel_capacity)
                print(count)
            elif config.stats:
                error = self.run_stats(paths)
            elif config.print_dois:
                _, error = run_pipeline(
                    paths, lambda channel: print_dois(channel, sys.stdout), config.channel_capacity
                )
            else:
                written, error = run_pipeline(paths, writer.write_channel, config.channel_capacity)
                self.logger.info(f"Wrote {written} records to {config.output_file}")

            return 1 if error is not None else 0

        except OutputPathConflict as e:
            self.logger.error(str(e))
            return 1
        except Exception as e:
            if self.logger:
                self.logger.error(f"Application error: {str(e)}", exc_info=True)
            else:
                print(f"Error before logger initialization: {str(e)}", file=sys.stderr)
            return 1

    def run_stats(self, paths):
        stats, error = run_pipeline(paths, SnapshotStats.from_channel, self.config.channel_capacity)
        stats.write_report(sys.stdout)

        if self.config.plots_dir:
            # matplotlib is only loaded when charts are asked for.
            from snapshot_tool.charts import generate_charts
            for chart in generate_charts(stats, self.config.plots_dir):
                self.logger.info(f"Saved chart {chart}")
        return error


def main():
    app = SnapshotTool()
    sys.exit(app.run())


if __name__ == '__main__':
    main()
