"""
GRBL streaming over a serial port.

Uses the character-counting protocol: the byte length of every line in
flight is tracked against the controller's receive buffer, so the buffer
stays full without overflowing. Acknowledgements are read on a dedicated
thread while the caller's thread keeps writing.
"""

import logging
import re
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import serial

from cncvm import config
from cncvm.utils.errors import StreamingError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_COMMENT_PATTERN = re.compile(r"\(.*?\)|;.*$")


def clean_line(line: str) -> str:
    """Strip comments and whitespace; GRBL counts every byte sent"""
    line = _COMMENT_PATTERN.sub("", line)
    return "".join(line.split()).upper()


@dataclass
class StreamResult:
    """Outcome of one streaming run"""

    total: int = 0
    sent: int = 0
    acknowledged: int = 0
    aborted: bool = False
    error: StreamingError | None = None
    responses: list[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return not self.aborted and self.error is None and self.acknowledged == self.total


class GrblStreamer:
    """
    Streams G-code lines to a GRBL controller.

    This class handles:
    - Serial port connection
    - Receive-buffer accounting for in-flight lines
    - Acknowledgement and error handling on a reader thread
    - User abort with draining of in-flight acknowledgements
    """

    def __init__(
        self,
        port: str | None = None,
        baudrate: int = config.SERIAL_BAUD,
        rx_buffer_size: int = config.GRBL_RX_BUFFER_SIZE,
        timeout: float = config.SERIAL_TIMEOUT_S,
        wake_delay: float = config.GRBL_WAKE_DELAY_S,
        drain_timeout: float = config.DRAIN_TIMEOUT_S,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
    ):
        """
        Initialize the streamer.

        Args:
            port: Serial port name (e.g., 'COM5', '/dev/ttyACM0')
            baudrate: Baud rate for serial communication
            rx_buffer_size: Controller receive buffer size in bytes
            timeout: Read timeout in seconds
            wake_delay: Seconds to wait for the controller banner after connecting
            drain_timeout: Longest wait for in-flight acknowledgements to drain
            serial_factory: Callable returning a pyserial-compatible port
        """
        self.port = port
        self.baudrate = baudrate
        self.rx_buffer_size = rx_buffer_size
        self.timeout = timeout
        self.wake_delay = wake_delay
        self.drain_timeout = drain_timeout
        self.serial_factory = serial_factory
        self.serial: serial.Serial | None = None

        self._cond = threading.Condition()
        self._in_flight: deque[tuple[int, str]] = deque()
        self._in_flight_bytes = 0
        self._abort = threading.Event()
        self._reader_stop = threading.Event()
        self._reader_thread: threading.Thread | None = None
        self._result = StreamResult()
        self._progress: ProgressCallback | None = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self, port: str | None = None) -> bool:
        """
        Connect to the controller.

        Args:
            port: Optional port override. If not provided, uses stored port.

        Returns:
            True if connection successful, False otherwise
        """
        if port:
            self.port = port

        if not self.port:
            logger.warning("No serial port specified")
            return False

        try:
            if self.serial and self.serial.is_open:
                self.serial.close()

            self.serial = self.serial_factory(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
            )
        except serial.SerialException as e:
            logger.error(f"Serial connection error: {e}")
            self.serial = None
            return False

        if not self.serial.is_open:
            logger.error(f"Failed to open serial port: {self.port}")
            self.serial = None
            return False

        self._wake_up()
        logger.info(f"Connected to serial port: {self.port}")
        return True

    def _wake_up(self) -> None:
        """Wake the controller and discard its startup banner"""
        ser = self.serial
        if ser is None:
            return
        ser.write(b"\r\n\r\n")
        if self.wake_delay > 0:
            time.sleep(self.wake_delay)
        ser.reset_input_buffer()

    def disconnect(self) -> None:
        """Disconnect from the serial port."""
        self._stop_reader()
        if self.serial:
            try:
                if self.serial.is_open:
                    self.serial.close()
                logger.info(f"Disconnected from serial port: {self.port}")
            except serial.SerialException as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self.serial = None

    def is_connected(self) -> bool:
        """
        Check if serial connection is active.

        Returns:
            True if connected and open, False otherwise
        """
        return self.serial is not None and self.serial.is_open

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def abort(self) -> None:
        """Stop sending further lines; in-flight lines are still acknowledged"""
        logger.info("Abort requested")
        self._abort.set()
        with self._cond:
            self._cond.notify_all()

    def in_flight_bytes(self) -> int:
        with self._cond:
            return self._in_flight_bytes

    def stream(self, lines: Iterable[str], progress: ProgressCallback | None = None) -> StreamResult:
        """
        Send lines to the controller, keeping its receive buffer full.

        Args:
            lines: G-code lines; comments and blank lines are dropped
            progress: Called with (acknowledged, total) after every acknowledgement

        Returns:
            StreamResult describing how far the program got

        Raises:
            StreamingError: not connected, or a line exceeds the receive buffer
            KeyboardInterrupt: re-raised once in-flight lines are acknowledged
        """
        if not self.is_connected():
            raise StreamingError("not connected")

        commands = [c for c in (clean_line(line) for line in lines) if c]
        for command in commands:
            if len(command) + 1 > self.rx_buffer_size:
                raise StreamingError(
                    f"line {command!r} is longer than the {self.rx_buffer_size} byte receive buffer"
                )

        self._abort.clear()
        self._in_flight.clear()
        self._in_flight_bytes = 0
        self._result = StreamResult(total=len(commands))
        self._progress = progress
        self._start_reader()

        try:
            try:
                self._send(commands)
            except KeyboardInterrupt:
                logger.info("Interrupted, waiting for in-flight lines")
                self.abort()
                self._drain()
                raise
            self._drain()
        finally:
            self._stop_reader()

        result = self._result
        result.aborted = self._abort.is_set()
        if result.error is not None:
            logger.error(str(result.error))
        elif result.aborted:
            logger.warning(f"Stream aborted after {result.acknowledged}/{result.total} lines")
        else:
            logger.info(f"Streamed {result.acknowledged}/{result.total} lines")
        return result

    def _send(self, commands: list[str]) -> None:
        for index, command in enumerate(commands):
            payload = command + "\n"
            size = len(payload)
            if not self._reserve(size, index, command):
                return
            try:
                self.serial.write(payload.encode("ascii"))
            except serial.SerialException as e:
                self._unreserve(size)
                with self._cond:
                    self._result.error = StreamingError(f"serial write failed: {e}", index + 1)
                return
            except KeyboardInterrupt:
                self._unreserve(size)
                raise
            self._result.sent += 1
            logger.trace(f"-> {command}")

    def _reserve(self, size: int, index: int, command: str) -> bool:
        """Wait until the receive buffer can take `size` more bytes"""
        with self._cond:
            while self._in_flight_bytes + size > self.rx_buffer_size:
                if self._abort.is_set() or self._result.error is not None:
                    return False
                if self._reader_thread is None or not self._reader_thread.is_alive():
                    self._result.error = StreamingError("reader stopped while lines were in flight")
                    return False
                self._cond.wait(self.timeout)
            if self._abort.is_set() or self._result.error is not None:
                return False
            self._in_flight.append((size, command))
            self._in_flight_bytes += size
            return True

    def _unreserve(self, size: int) -> None:
        """Drop the reservation of a line that never reached the controller"""
        with self._cond:
            self._in_flight.pop()
            self._in_flight_bytes -= size
            self._cond.notify_all()

    def _drain(self) -> None:
        """Wait for every in-flight line to be acknowledged"""
        deadline = time.monotonic() + self.drain_timeout
        with self._cond:
            while self._in_flight:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(f"{len(self._in_flight)} lines still unacknowledged after drain timeout")
                    return
                if self._reader_thread is None or not self._reader_thread.is_alive():
                    return
                self._cond.wait(min(remaining, self.timeout))

    def _release(self, response: str) -> None:
        """Handle an ok/error response for the oldest in-flight line"""
        with self._cond:
            self._result.responses.append(response)
            if not self._in_flight:
                logger.warning(f"Unexpected response with nothing in flight: {response}")
                return
            size, command = self._in_flight.popleft()
            self._in_flight_bytes -= size
            self._result.acknowledged += 1
            if response.startswith("error") and self._result.error is None:
                self._result.error = StreamingError(
                    f"controller rejected {command!r}: {response}", self._result.acknowledged
                )
            self._cond.notify_all()
            acknowledged, total = self._result.acknowledged, self._result.total

        if self._progress is not None:
            self._progress(acknowledged, total)

    def _start_reader(self) -> None:
        self._reader_stop.clear()
        t = threading.Thread(target=self._run_reader, name="GrblReader", daemon=True)
        self._reader_thread = t
        t.start()

    def _stop_reader(self) -> None:
        self._reader_stop.set()
        t = self._reader_thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=max(1.0, 2 * self.timeout))
        self._reader_thread = None

    def _run_reader(self) -> None:
        while not self._reader_stop.is_set():
            ser = self.serial
            if ser is None or not ser.is_open:
                break
            try:
                raw = ser.readline()
            except serial.SerialException as e:
                logger.error(f"Serial reader error: {e}")
                with self._cond:
                    if self._result.error is None:
                        self._result.error = StreamingError(f"serial read failed: {e}")
                    self._cond.notify_all()
                break

            if not raw:
                # Timeout; loop to check the stop flag
                continue
            response = raw.decode("ascii", errors="replace").strip()
            if not response:
                continue
            logger.trace(f"<- {response}")

            if response == "ok" or response.startswith("error"):
                self._release(response)
            elif response.startswith("ALARM"):
                with self._cond:
                    self._result.responses.append(response)
                    if self._result.error is None:
                        self._result.error = StreamingError(f"controller alarm: {response}")
                    # Alarmed controllers stop acknowledging
                    self._in_flight.clear()
                    self._in_flight_bytes = 0
                    self._cond.notify_all()
            else:
                logger.debug(f"Controller message: {response}")

        with self._cond:
            self._cond.notify_all()
