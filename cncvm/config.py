"""
Central configuration for cncvm tunables and shared constants.
"""

import logging
import os
from pathlib import Path

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")
# Add Logger.trace if missing
if not hasattr(logging.Logger, "trace"):

    def _trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)

    logging.Logger.trace = _trace  # type: ignore[attr-defined]
    logging.TRACE = TRACE  # type: ignore[attr-defined]

TRACE_ENABLED = str(os.getenv("CNCVM_TRACE", "0")).lower() in ("1", "true", "yes", "on")

logger = logging.getLogger(__name__)

# Unit conversion
MM_PER_INCH: float = 25.4

# Arc approximation (machine units, mm)
ARC_MAX_DEVIATION: float = float(os.getenv("CNCVM_ARC_MAX_DEVIATION", "0.002"))
ARC_MIN_SEGMENT_LENGTH: float = float(os.getenv("CNCVM_ARC_MIN_SEGMENT", "0.01"))
# Relative difference allowed between start and end radius of an arc
ARC_RADIUS_TOLERANCE: float = float(os.getenv("CNCVM_ARC_RADIUS_TOLERANCE", "0.01"))

# General coordinate comparison tolerance (mm)
TOLERANCE: float = float(os.getenv("CNCVM_TOLERANCE", "0.001"))

# Output formatting
EXPORT_PRECISION: int = int(os.getenv("CNCVM_EXPORT_PRECISION", "4"))

# Serial/streaming defaults
SERIAL_BAUD: int = int(os.getenv("CNCVM_SERIAL_BAUD", "115200"))
SERIAL_TIMEOUT_S: float = 0.1
GRBL_RX_BUFFER_SIZE: int = int(os.getenv("CNCVM_GRBL_RX_BUFFER", "128"))
GRBL_WAKE_DELAY_S: float = 2.0
DRAIN_TIMEOUT_S: float = float(os.getenv("CNCVM_DRAIN_TIMEOUT_S", "30"))
LOG_LEVEL_DEFAULT: str = "INFO"


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


FAKE_SERIAL: bool = env_bool("CNCVM_FAKE_SERIAL")

# Serial port persistence file stored in user config directory by default (cross-platform).
_default_port_file = Path.home() / ".cncvm" / "serial_port.txt"
SERIAL_PORT_FILE: str = os.getenv("CNCVM_SERIAL_PORT_FILE", str(_default_port_file))


def save_serial_port(port: str) -> bool:
    """
    Save serial port to persistent file.

    Args:
        port: Serial port string to save

    Returns:
        True if successful, False otherwise
    """
    try:
        port_path = Path(SERIAL_PORT_FILE)
        port_path.parent.mkdir(parents=True, exist_ok=True)
        port_path.write_text(port.strip())
        logger.info(f"Saved serial port {port} to {SERIAL_PORT_FILE}")
        return True
    except OSError as e:
        logger.error(f"Failed to save serial port: {e}")
        return False


def load_serial_port() -> str | None:
    """
    Load saved serial port from file.

    Returns:
        Serial port string if found, None otherwise
    """
    try:
        port_path = Path(SERIAL_PORT_FILE)
        if port_path.exists():
            port = port_path.read_text().strip()
            if port:
                logger.info(f"Loaded serial port {port} from {SERIAL_PORT_FILE}")
                return port
    except OSError as e:
        logger.error(f"Failed to load serial port: {e}")
    return None


def get_serial_port_with_fallback() -> str:
    """
    Resolve serial port from environment or file.

    Priority:
      1) Environment variable: CNCVM_SERIAL_PORT
      2) serial_port.txt (if present and non-empty)

    Returns:
      Port string if available, otherwise an empty string "".
    """
    env_port = os.getenv("CNCVM_SERIAL_PORT")
    if env_port and env_port.strip():
        port = env_port.strip()
        logger.info(f"Using serial port from environment: {port}")
        return port

    saved_port = load_serial_port()
    if saved_port:
        return saved_port

    return ""
