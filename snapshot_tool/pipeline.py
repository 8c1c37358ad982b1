import queue
import logging
import threading

from snapshot_tool.scanner import select_reader


DEFAULT_CHANNEL_CAPACITY = 10
SEND_POLL_SECONDS = 0.1


class ChannelClosedError(Exception):
    """Raised on send once the receiving side has stopped draining."""


class RecordChannel:
    """Bounded single-producer, single-consumer hand-off of records.

    send() blocks while the channel is full. Iterating blocks while it is
    empty and ends once the producer has called close() and every record
    sent before it has been received.
    """

    _CLOSED = object()

    def __init__(self, capacity=DEFAULT_CHANNEL_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Channel capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._queue = queue.Queue(maxsize=capacity)
        self._abandoned = threading.Event()

    def _put(self, item):
        while not self._abandoned.is_set():
            try:
                self._queue.put(item, timeout=SEND_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def send(self, record):
        if not self._put(record):
            raise ChannelClosedError("Receiver stopped draining the channel")

    def close(self):
        self._put(self._CLOSED)

    def abandon(self):
        self._abandoned.set()

    def __iter__(self):
        while True:
            record = self._queue.get()
            if record is self._CLOSED:
                return
            yield record


class SnapshotProducer:
    """Decodes candidate files one after another on a dedicated thread.

    The first unrecoverable error stops the loop; records sent before it
    stay in the channel for the consumer.
    """

    def __init__(self, paths, channel):
        self.paths = list(paths)
        self.channel = channel
        self.error = None
        self.sent = 0
        self.logger = logging.getLogger('snapshot_tool.producer')
        self._thread = threading.Thread(target=self._run, name='snapshot-producer', daemon=True)

    def start(self):
        self._thread.start()
        return self

    def join(self):
        self._thread.join()
        return self.error

    def _run(self):
        try:
            for filepath in self.paths:
                reader_class = select_reader(filepath)
                if reader_class is None:
                    self.logger.debug(f"No reader for {filepath}, skipping.")
                    continue
                self.logger.info(f"Reading {filepath}")
                for record in reader_class(filepath):
                    self.channel.send(record)
                    self.sent += 1
        except Exception as e:
            self.error = e
            self.logger.error(f"Failed to read archives: {e}")
        finally:
            self.channel.close()


def run_pipeline(paths, consume, capacity=DEFAULT_CHANNEL_CAPACITY):
    """Feed records decoded from paths to consume(channel) on this thread.

    Returns the consumer's result and the producer's error, if any.
    """
    channel = RecordChannel(capacity)
    producer = SnapshotProducer(paths, channel).start()
    try:
        result = consume(channel)
    except BaseException:
        channel.abandon()
        producer.join()
        raise
    error = producer.join()
    if error is not None:
        producer.logger.error(f"Reader stopped early after {producer.sent} records: {error}")
    return result, error
