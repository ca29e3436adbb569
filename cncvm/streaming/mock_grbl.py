"""
Mock GRBL controller for simulation and testing.

Implements the slice of the pyserial interface the streamer uses and
behaves like a GRBL controller at the line level: written bytes land in a
bounded receive buffer, each processed line is answered with "ok" (or an
error), and overflowing the buffer is recorded.
"""

import logging
import re
import threading
import time
from collections import deque

from cncvm import config

logger = logging.getLogger(__name__)

BANNER = "Grbl 1.1h ['$' for help]"


class MockGrblSerial:
    """
    Fake serial port answering like a GRBL controller.

    A line is executed (and acknowledged) each time the host reads, which
    keeps the receive buffer filling and draining deterministically.
    """

    def __init__(
        self,
        port: str | None = None,
        baudrate: int = config.SERIAL_BAUD,
        timeout: float | None = config.SERIAL_TIMEOUT_S,
        rx_buffer_size: int = config.GRBL_RX_BUFFER_SIZE,
        reject: str | None = None,
        alarm: str | None = None,
        line_delay: float = 0.0,
    ):
        """
        Initialize the mock controller.

        Args:
            port: Ignored, kept for interface compatibility
            baudrate: Ignored, kept for interface compatibility
            timeout: Read timeout in seconds
            rx_buffer_size: Receive buffer size in bytes
            reject: Regex; matching lines are answered with "error:20"
            alarm: Regex; a matching line raises "ALARM:1" and halts the controller
            line_delay: Seconds spent executing each line
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.rx_buffer_size = rx_buffer_size
        self.reject = re.compile(reject) if reject else None
        self.alarm = re.compile(alarm) if alarm else None
        self.line_delay = line_delay

        self.is_open = True
        self._cond = threading.Condition()
        self._partial = bytearray()
        self._pending: deque[bytes] = deque()
        self._responses: deque[str] = deque([BANNER])
        self._fill = 0
        self._alarmed = False

        self.max_fill = 0
        self.overflowed = False
        self.executed: list[str] = []
        self.written = bytearray()

    @property
    def in_waiting(self) -> int:
        with self._cond:
            return sum(len(r) + 2 for r in self._responses)

    def write(self, data: bytes) -> int:
        with self._cond:
            self.written.extend(data)
            for byte in data:
                self._partial.append(byte)
                if byte == ord("\n"):
                    line = bytes(self._partial)
                    self._partial.clear()
                    if not line.strip():
                        # Wake-up newlines are not buffered as commands
                        continue
                    self._pending.append(line)
                    self._fill += len(line)
                    if self._fill > self.rx_buffer_size:
                        logger.error(f"Mock GRBL receive buffer overflow: {self._fill} bytes")
                        self.overflowed = True
                    self.max_fill = max(self.max_fill, self._fill)
            self._cond.notify_all()
        return len(data)

    def _execute_next(self) -> None:
        line = self._pending.popleft()
        self._fill -= len(line)
        command = line.decode("ascii").strip()
        if self._alarmed:
            return
        if self.line_delay:
            time.sleep(self.line_delay)
        if self.alarm and self.alarm.search(command):
            self._alarmed = True
            self._responses.append("ALARM:1")
            return
        self.executed.append(command)
        if self.reject and self.reject.search(command):
            self._responses.append("error:20")
        else:
            self._responses.append("ok")

    def readline(self) -> bytes:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        with self._cond:
            while True:
                if self._responses:
                    return (self._responses.popleft() + "\r\n").encode("ascii")
                if self._pending:
                    self._execute_next()
                    continue
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return b""
                self._cond.wait(remaining)

    def reset_input_buffer(self) -> None:
        with self._cond:
            self._responses.clear()

    def close(self) -> None:
        self.is_open = False
