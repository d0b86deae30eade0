"""Command-line entry point for passive lobby host ping measurement."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .correlation_engine import CorrelationEngine
from .correlation_table import DEFAULT_CAPACITY
from .live_capture import LiveCapture, LiveCaptureError
from .pcap_compat import candidate_addresses, find_device_by_address, open_live, open_offline
from .rtt_emitter import RttMeasurement
from .settings import Settings, SettingsError, load_settings, save_settings, validate_address
from .utils import MICROS_PER_SECOND

logger = logging.getLogger(__name__)


class ConsolePingWriter:
    """Prints each measurement as ``<peer> <rtt> ms``."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self.lines_written = 0

    def on_rtt_measured(self, measurement: RttMeasurement) -> None:
        self._stream.write(f"{measurement.peer} {measurement.rtt_ms} ms\n")
        self._stream.flush()
        self.lines_written += 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Passively measure the ping to the host of a game lobby.",
    )
    parser.add_argument(
        "--address",
        help="Local IPv4 address whose traffic is observed (default: saved or discovered).",
    )
    parser.add_argument(
        "--interface",
        help="Capture interface (default: the interface owning --address).",
    )
    parser.add_argument(
        "--pcap",
        type=Path,
        help="Replay a saved pcap/pcapng capture instead of capturing live.",
    )
    parser.add_argument(
        "--capacity",
        type=int,
        default=DEFAULT_CAPACITY,
        help=f"Maximum number of tracked peers (default: {DEFAULT_CAPACITY}).",
    )
    parser.add_argument(
        "--probe-timeout",
        type=float,
        metavar="SECONDS",
        help="Forget probes that stay unanswered for this long (default: never).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.25,
        metavar="SECONDS",
        help="How often a blocked capture wait rechecks for shutdown (default: 0.25).",
    )
    parser.add_argument(
        "--list-addresses",
        action="store_true",
        help="List candidate local addresses and exit.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="Settings file holding the saved address (default: ~/.lobbyping.json).",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the selected address to the settings file.",
    )
    parser.add_argument(
        "--autoload",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use the saved address without discovery on later runs.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Log level for diagnostic output.",
    )
    return parser


def resolve_address(args: argparse.Namespace, settings: Settings) -> str:
    """Pick the local address: explicit flag, then autoloaded setting, then discovery."""
    if args.address:
        return validate_address(args.address)
    if settings.autoload and settings.addr:
        return validate_address(settings.addr)

    candidates = candidate_addresses()
    if not candidates:
        raise SettingsError(
            "Unable to locate devices. Try running with administrator privileges."
        )
    if settings.addr and any(c.address == settings.addr for c in candidates):
        return settings.addr
    return candidates[0].address


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.capacity < 1:
        parser.error("--capacity must be at least 1.")
    if args.probe_timeout is not None and args.probe_timeout <= 0:
        parser.error("--probe-timeout must be greater than 0 seconds.")
    if args.poll_interval <= 0:
        parser.error("--poll-interval must be greater than 0 seconds.")

    if args.list_addresses:
        try:
            candidates = candidate_addresses()
        except LiveCaptureError as exc:
            logger.error(str(exc))
            return 1
        for candidate in candidates:
            print(candidate.display_label())
        return 0

    settings = load_settings(args.settings)
    try:
        address = resolve_address(args, settings)
    except SettingsError as exc:
        logger.error(str(exc))
        return 1

    if args.save or args.autoload is not None:
        settings.addr = address
        if args.autoload is not None:
            settings.autoload = args.autoload
        path = save_settings(settings, args.settings)
        logger.info("Saved address %s to %s", address, path)

    try:
        if args.pcap is not None:
            source = open_offline(str(args.pcap))
        else:
            interface = args.interface or find_device_by_address(address).name
            source = open_live(interface, poll_interval=args.poll_interval)
            # Started here so a bad device or filter is a setup failure.
            source.start()
    except (LiveCaptureError, FileNotFoundError) as exc:
        logger.error("Failed to initialize capture: %s", exc)
        return 1

    probe_timeout = (
        int(args.probe_timeout * MICROS_PER_SECOND) if args.probe_timeout is not None else None
    )
    writer = ConsolePingWriter()
    engine = CorrelationEngine(
        address,
        writer,
        capacity=args.capacity,
        probe_timeout=probe_timeout,
    )

    logger.info("Watching lobby traffic for %s", address)
    engine.start(source)
    try:
        try:
            while engine.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
            engine.stop()
            engine.wait()
    except LiveCaptureError as exc:
        logger.error("Capture failed: %s", exc)
        return 1
    except Exception:  # pragma: no cover - unexpected runtime failures
        logger.exception("Correlation loop failed")
        return 1
    finally:
        if isinstance(source, LiveCapture):
            source.stop()

    logger.info(
        "Finished: packets=%d, pings=%d, peers=%d",
        engine.packets_seen,
        writer.lines_written,
        len(engine.table),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
