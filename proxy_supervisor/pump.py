# proxy_supervisor/pump.py
# Version: 1.0.0
# Concurrent draining of the engine's output streams

"""
Output Pump

One thread per stream reads lines and puts them on a shared queue; a single
consumer iterates the pump. Lines of one stream keep their order, lines of
different streams interleave as they arrive.

A stream that fails to read is treated as finished so the other one keeps
flowing. The pump is exhausted once every stream has reached its end.
"""

import logging
import queue
import threading
from typing import IO, Iterator, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# Marker a worker puts on the queue when its stream is done
_END_OF_STREAM = object()


def decode_line(raw: Union[bytes, str]) -> str:
    """Decode one raw line and strip its line terminator"""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return raw.rstrip("\r\n")


class OutputPump:
    """Merges several line-oriented streams into one iterator"""

    def __init__(self, streams: Sequence[Tuple[str, IO]]):
        """
        Args:
            streams: (name, stream) pairs; the name is used for thread names and logs
        """
        self._streams = [(name, stream) for name, stream in streams if stream is not None]
        self._channel: "queue.Queue[object]" = queue.Queue()
        self._closed = threading.Event()
        self._workers: List[threading.Thread] = []

    def start(self) -> "OutputPump":
        for name, stream in self._streams:
            worker = threading.Thread(
                target=self._drain, args=(name, stream), name=f"pump-{name}", daemon=True
            )
            self._workers.append(worker)
            worker.start()
        return self

    def _drain(self, name: str, stream: IO):
        try:
            for raw in stream:
                if not self._forward(decode_line(raw)):
                    break
        except (OSError, ValueError) as e:
            logger.debug(f"Read error on engine {name}, treating as end of stream: {e}")
        finally:
            self._channel.put(_END_OF_STREAM)

    def _forward(self, line: str) -> bool:
        if self._closed.is_set():
            return False
        self._channel.put(line)
        return True

    def __iter__(self) -> Iterator[str]:
        remaining = len(self._workers)
        while remaining:
            item = self._channel.get()
            if item is _END_OF_STREAM:
                remaining -= 1
                continue
            yield item

    def close(self):
        """Stop forwarding; workers exit at their next line"""
        self._closed.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for all workers, True if they have all finished"""
        for worker in self._workers:
            worker.join(timeout)
        return not any(worker.is_alive() for worker in self._workers)
