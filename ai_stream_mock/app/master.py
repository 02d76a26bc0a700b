import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from ai_stream_mock.core.api import MockServer
from ai_stream_mock.core.config_manager import MockServerConfig, load_server_config, parse_assignments
from ai_stream_mock.core.errors import ScenarioConfigError
from ai_stream_mock.core.logging_config import configure_logging
from ai_stream_mock.core.logging_utils import get_module_logger
from ai_stream_mock.core.paths import DEFAULT_CONFIG_NAME
from ai_stream_mock.core.scenarios import SCENARIO_PRESETS


logger = get_module_logger(__name__)

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. Unset options fall back to the config file."""
    parser = argparse.ArgumentParser(
        prog="ai-stream-mock",
        description="Simulated streaming AI completion endpoint for front-end testing",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"key = value config file (default: ./{DEFAULT_CONFIG_NAME} if present)"
    )

    parser.add_argument("--host", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to bind to (default: 5178)")

    parser.add_argument(
        "--data-dir",
        help="Directory holding the recorded chunk files (default: mock/ai)"
    )

    parser.add_argument(
        "--endpoint",
        action="append",
        default=None,
        help="Path to intercept; repeat for several, prefix with 're:' for a regex "
             "(default: /api/ai/mock)"
    )

    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIO_PRESETS),
        help="Default scenario preset for every request"
    )

    parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="OPTION=VALUE",
        help="Default scenario option, e.g. --set minIntervalMs=0 (repeatable)"
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Logging level (default: info)"
    )

    parser.add_argument("--log-file", type=Path, help="Optional rotating log file")

    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Verbose error responses on non-mock routes"
    )

    parser.add_argument(
        "--allow-remote",
        dest="localhost_only",
        action="store_false",
        default=None,
        help="Accept requests from non-loopback addresses"
    )

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> Dict[str, str]:
    overrides = parse_assignments(args.assignments)

    simple = {
        "host": args.host,
        "port": args.port,
        "data_dir": args.data_dir,
        "scenario": args.scenario,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    for key, value in simple.items():
        if value is not None:
            overrides[key] = str(value)

    if args.endpoint:
        overrides["endpoint"] = ",".join(args.endpoint)
    if args.debug is not None:
        overrides["debug"] = "true"
    if args.localhost_only is not None:
        overrides["localhost_only"] = "false"

    return overrides


def build_config(args: argparse.Namespace) -> MockServerConfig:
    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_NAME).is_file():
        config_path = Path(DEFAULT_CONFIG_NAME)
    return load_server_config(config_path, _cli_overrides(args))


async def run_server(config: MockServerConfig) -> None:
    """Run the mock server until SIGINT/SIGTERM."""
    server = MockServer(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    await server.serve_forever(stop_event)


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ScenarioConfigError as exc:
        print(f"ai-stream-mock: {exc}", file=sys.stderr)
        return 2

    configure_logging(config.log_level, log_file=config.log_file)

    if config.default_scenario:
        logger.info("Default scenario: %s", config.default_scenario.to_dict())

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except OSError as exc:
        logger.error("Could not start mock server: %s", exc)
        return 1
    return 0
