"""
CLI entry point for the cncvm command.

Interprets a G-code file, optimizes the resulting trace and either writes
the rendered program or streams it to a GRBL controller.
"""

import argparse
import logging
import sys

from cncvm import config
from cncvm.config import TRACE
from cncvm.export import render_positions, write_program
from cncvm.gcode.parser import GcodeParser
from cncvm.optimize import optimize
from cncvm.streaming import create_streamer
from cncvm.utils.errors import CncError
from cncvm.vm import process

logger = logging.getLogger("cncvm.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cncvm", description="G-code interpreter and GRBL streamer")
    parser.add_argument("file", help="G-code file to process")
    parser.add_argument("-o", "--output", help="Write the processed program here instead of stdout")
    parser.add_argument("--port", help="Stream to the controller on this serial port")
    parser.add_argument("--baudrate", type=int, default=config.SERIAL_BAUD, help="Serial baudrate")
    parser.add_argument("--fake-serial", action="store_true",
                        help="Stream to the built-in mock controller")
    parser.add_argument("--save-port", action="store_true",
                        help="Remember --port for later runs")
    parser.add_argument("--no-optimize", action="store_true", help="Skip optimization passes")
    parser.add_argument("--max-arc-deviation", type=float, default=config.ARC_MAX_DEVIATION,
                        help="Maximum chordal deviation of arc segments (mm)")
    parser.add_argument("--min-arc-segment", type=float, default=config.ARC_MIN_SEGMENT_LENGTH,
                        help="Minimum arc segment length (mm)")
    parser.add_argument("--tolerance", type=float, default=config.TOLERANCE,
                        help="Coordinate comparison tolerance (mm)")
    parser.add_argument("--precision", type=int, default=config.EXPORT_PRECISION,
                        help="Decimal places in the rendered program")

    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Enable quiet logging (WARNING level)")
    parser.add_argument("--log-level", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Set specific log level")
    return parser


def _log_level(args: argparse.Namespace) -> int:
    if args.log_level:
        if args.log_level == "TRACE":
            return TRACE
        return getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.WARNING
    return getattr(logging, config.LOG_LEVEL_DEFAULT)


def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=_log_level(args),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        blocks = GcodeParser().parse_file(args.file)
        machine = process(
            blocks,
            max_arc_deviation=args.max_arc_deviation,
            min_arc_segment_length=args.min_arc_segment,
            tolerance=args.tolerance,
        )
        positions = machine.positions.to_list()
        logger.info(f"Interpreted {len(blocks)} blocks into {len(positions)} positions")

        if not args.no_optimize:
            positions = optimize(positions, tolerance=args.tolerance)
            logger.info(f"Optimized trace to {len(positions)} positions")

        lines = render_positions(positions, precision=args.precision)
    except CncError as e:
        logger.error(str(e))
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Failed to process {args.file}: {e}")
        return 1

    if args.port or args.fake_serial:
        return _stream(args, lines)

    if args.output:
        try:
            write_program(args.output, lines)
        except OSError as e:
            logger.error(f"Failed to write {args.output}: {e}")
            return 1
        logger.info(f"Wrote {len(lines)} lines to {args.output}")
    else:
        sys.stdout.write("\n".join(lines) + "\n")
    return 0


def _stream(args: argparse.Namespace, lines: list[str]) -> int:
    streamer = create_streamer(
        port=args.port,
        baudrate=args.baudrate,
        fake=True if args.fake_serial else None,
    )
    if not streamer.connect():
        logger.error("Controller not connected")
        return 1
    if args.save_port and args.port:
        config.save_serial_port(args.port)

    last_percent = -1

    def progress(acknowledged: int, total: int) -> None:
        nonlocal last_percent
        percent = int(100 * acknowledged / total) if total else 100
        if percent // 10 != last_percent // 10:
            logger.info(f"Progress: {percent}% ({acknowledged}/{total})")
        last_percent = percent

    try:
        result = streamer.stream(lines, progress=progress)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 1
    except CncError as e:
        logger.error(str(e))
        return 1
    finally:
        streamer.disconnect()

    return 0 if result.completed else 1


def main_entry():
    """Entry point for the cncvm command."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
