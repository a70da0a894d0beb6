#!/usr/bin/env python3
"""Unit tests for the output pump"""

import io
import sys
import threading

from test_utils import engine_script

from proxy_supervisor.child import ChildProcess
from proxy_supervisor.pump import OutputPump, decode_line


class FailingStream:
    """Stream yielding some lines, then failing with a read error"""

    def __init__(self, lines, error=OSError("read error")):
        self.lines = lines
        self.error = error

    def __iter__(self):
        for line in self.lines:
            yield line
        raise self.error


def _stream(prefix, count):
    return io.BytesIO(b"".join(f"{prefix} {i}\n".encode() for i in range(count)))


def _drain(pump):
    return list(pump.start())


class TestDecodeLine:
    def test_strips_terminators(self):
        assert decode_line(b"hello\n") == "hello"
        assert decode_line(b"hello\r\n") == "hello"
        assert decode_line("text\n") == "text"
        assert decode_line(b"no newline") == "no newline"

    def test_invalid_utf8_is_replaced(self):
        assert decode_line(b"bad \xff byte\n") == "bad \ufffd byte"


class TestOutputPump:
    def test_all_lines_once_with_stream_order(self):
        """Test N stdout + M stderr lines are delivered once, in order per stream"""
        pump = OutputPump([("stdout", _stream("out", 200)), ("stderr", _stream("err", 150))])
        lines = _drain(pump)

        assert len(lines) == 350
        assert [l for l in lines if l.startswith("out")] == [f"out {i}" for i in range(200)]
        assert [l for l in lines if l.startswith("err")] == [f"err {i}" for i in range(150)]

    def test_empty_streams(self):
        pump = OutputPump([("stdout", io.BytesIO()), ("stderr", io.BytesIO())])
        assert _drain(pump) == []
        assert pump.join(5)

    def test_missing_stream_is_skipped(self):
        pump = OutputPump([("stdout", _stream("out", 3)), ("stderr", None)])
        assert _drain(pump) == ["out 0", "out 1", "out 2"]

    def test_read_error_ends_only_that_stream(self):
        failing = FailingStream([b"err 0\n", b"err 1\n"])
        pump = OutputPump([("stdout", _stream("out", 50)), ("stderr", failing)])
        lines = _drain(pump)

        assert [l for l in lines if l.startswith("err")] == ["err 0", "err 1"]
        assert len([l for l in lines if l.startswith("out")]) == 50

    def test_invalid_utf8_line_does_not_end_stream(self):
        """Test undecodable bytes are replaced and the stream keeps flowing"""
        stream = io.BytesIO(b"before\n\xff\xfe engine \xc3\n after\n")
        pump = OutputPump([("stdout", stream)])
        assert _drain(pump) == ["before", "\ufffd\ufffd engine \ufffd", " after"]

    def test_closed_stream_is_end_of_stream(self):
        stream = io.BytesIO(b"line\n")
        stream.close()
        pump = OutputPump([("stdout", stream)])
        assert _drain(pump) == []

    def test_close_stops_forwarding(self):
        release = threading.Event()

        def slow_lines():
            yield b"first\n"
            release.wait(5)
            yield b"second\n"

        pump = OutputPump([("stdout", slow_lines())])
        iterator = iter(pump.start())
        assert next(iterator) == "first"

        pump.close()
        release.set()
        assert list(iterator) == []
        assert pump.join(5)

    def test_child_process_streams(self, tmp_path):
        """Test draining a real child writing to both pipes"""
        source = engine_script(
            stdout_lines=[f"out {i}" for i in range(300)],
            stderr_lines=[f"err {i}" for i in range(120)],
        )
        child = ChildProcess.spawn([sys.executable, "-c", source], str(tmp_path))
        pump = OutputPump([("stdout", child.stdout), ("stderr", child.stderr)])
        lines = _drain(pump)
        assert child.wait(10) == 0
        child.close_streams()

        assert [l for l in lines if l.startswith("out")] == [f"out {i}" for i in range(300)]
        assert [l for l in lines if l.startswith("err")] == [f"err {i}" for i in range(120)]
