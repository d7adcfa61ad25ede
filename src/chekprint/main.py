"""
Command line entry point for chekprint.

Renders receipt JSON files to printer commands, previews them as text,
and talks to printers through the configured transport.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from chekprint.core.events import EventBus
from chekprint.errors import ChekPrintError
from chekprint.hardware.factory import create_transport
from chekprint.printing.engine import preview, render
from chekprint.printing.manager import PrintManager
from chekprint.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def load_document(path: str) -> dict[str, Any]:
    """Read a receipt document from a JSON file, or stdin for ``-``."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chekprint", description="Thermal receipt printing")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--protocol", choices=["escpos", "tspl"], help="Override the configured protocol",
    )
    parser.add_argument("--mock", action="store_true", help="Use the mock transport")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Render a receipt to command bytes")
    render_cmd.add_argument("file", help="Receipt JSON file, or - for stdin")
    render_cmd.add_argument("-o", "--output", help="Output file (default: stdout)")

    preview_cmd = sub.add_parser("preview", help="Show a text preview of a receipt")
    preview_cmd.add_argument("file", help="Receipt JSON file, or - for stdin")

    sub.add_parser("scan", help="List available printers")

    print_cmd = sub.add_parser("print", help="Print a receipt")
    print_cmd.add_argument("file", help="Receipt JSON file, or - for stdin")
    print_cmd.add_argument("--device", help="Device id (default: configured port)")

    test_cmd = sub.add_parser("test-print", help="Print the test receipt")
    test_cmd.add_argument("--device", help="Device id (default: configured port)")

    return parser


async def _with_printer(settings: Settings, device: Optional[str], mock: bool, action) -> int:
    """Connect to a printer, run ``action(manager)``, then disconnect."""
    event_bus = EventBus()
    transport = create_transport(settings, event_bus, mock=mock)
    manager = PrintManager(
        transport,
        event_bus=event_bus,
        profile=settings.build_profile(),
        scan_timeout=settings.scan_timeout,
    )

    device_id = device or settings.printer_port
    if device_id is None:
        devices = await manager.scan()
        if not devices:
            logger.error("No printer found")
            return 1
        device_id = devices[0].id
        logger.info(f"Using first printer found: {devices[0].name} ({device_id})")

    await manager.connect(device_id)
    await manager.start()
    try:
        written = await action(manager)
        logger.info(f"Sent {written} bytes")
    finally:
        await manager.stop()
    return 0


async def _scan(settings: Settings, mock: bool) -> int:
    transport = create_transport(settings, mock=mock)
    for device in await transport.scan(settings.scan_timeout):
        print(f"{device.id}\t{device.name}")
    return 0


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a parsed command."""
    if args.protocol:
        settings = settings.model_copy(update={"protocol": args.protocol})
    mock = args.mock or settings.transport == "mock"

    if args.command == "render":
        data = render(load_document(args.file), settings.build_profile())
        if args.output:
            Path(args.output).write_bytes(data)
            logger.info(f"Wrote {len(data)} bytes to {args.output}")
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        return 0

    if args.command == "preview":
        print(preview(load_document(args.file)))
        return 0

    if args.command == "scan":
        return asyncio.run(_scan(settings, mock))

    if args.command == "print":
        document = load_document(args.file)
        return asyncio.run(_with_printer(
            settings, args.device, mock, lambda manager: manager.print_document(document),
        ))

    if args.command == "test-print":
        return asyncio.run(_with_printer(
            settings, args.device, mock, lambda manager: manager.print_test_receipt(),
        ))

    logger.error(f"Unknown command: {args.command}")
    return 2


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.debug or settings.debug)

    try:
        code = run(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        code = 130
    except (ChekPrintError, ValueError, OSError) as e:
        logger.error(str(e))
        code = 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
