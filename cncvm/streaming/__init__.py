"""
Streaming of rendered G-code to a GRBL controller.

Provides the character-counting streamer over pyserial and a mock
controller for simulation and tests.
"""

import logging
from functools import partial

from cncvm import config
from .grbl import GrblStreamer, StreamResult, clean_line
from .mock_grbl import MockGrblSerial

logger = logging.getLogger(__name__)


def is_simulation_mode() -> bool:
    """
    Check if simulation mode is enabled.

    Returns:
        True if simulation mode is enabled via CNCVM_FAKE_SERIAL
    """
    return config.env_bool("CNCVM_FAKE_SERIAL", config.FAKE_SERIAL)


def create_streamer(
    port: str | None = None,
    baudrate: int = config.SERIAL_BAUD,
    fake: bool | None = None,
    **kwargs,
) -> GrblStreamer:
    """
    Create a streamer for a real or simulated controller.

    Args:
        port: Serial port name; falls back to the saved/environment port
        baudrate: Baud rate for serial communication
        fake: Force the mock controller on/off, None to follow CNCVM_FAKE_SERIAL
        **kwargs: Additional GrblStreamer parameters

    Returns:
        GrblStreamer (not yet connected)
    """
    if fake is None:
        fake = is_simulation_mode()

    if fake:
        logger.info("Creating streamer for the mock GRBL controller")
        rx_buffer_size = kwargs.get("rx_buffer_size", config.GRBL_RX_BUFFER_SIZE)
        kwargs.setdefault("wake_delay", 0.0)
        return GrblStreamer(
            port=port or "mock",
            baudrate=baudrate,
            serial_factory=partial(MockGrblSerial, rx_buffer_size=rx_buffer_size),
            **kwargs,
        )

    if not port:
        port = config.get_serial_port_with_fallback() or None
    logger.info(f"Creating streamer for port: {port}")
    return GrblStreamer(port=port, baudrate=baudrate, **kwargs)


__all__ = [
    "GrblStreamer",
    "MockGrblSerial",
    "StreamResult",
    "clean_line",
    "create_streamer",
    "is_simulation_mode",
]
