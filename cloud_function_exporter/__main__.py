"""Command line entry point: `cloud-function-exporter` / `python -m cloud_function_exporter`."""
import argparse
import logging
import sys
from typing import List, Optional

from .config import Config
from .exceptions import ValidationError
from .logger import get_logger
from .server import serve

logger = logging.getLogger("cloud_function_exporter")


def build_parser(cfg: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloud-function-exporter",
        description="Expose the Prometheus metrics returned by Google Cloud Functions.",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=cfg.LISTEN_ADDRESS,
        help="Address to listen on for web endpoints. (default: %(default)s)",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="telemetry_path",
        default=cfg.TELEMETRY_PATH,
        help="Path under which to expose metrics. (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=cfg.LOG_LEVEL,
        help="Log level. (default: %(default)s)",
    )
    parser.add_argument("--config-file", dest="config_file", default=None, help="KEY=VALUE config file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # config file has to be known before defaults are computed
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config-file", dest="config_file", default=None)
    known, _ = pre.parse_known_args(argv)

    try:
        cfg = Config(config_file=known.config_file)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    args = build_parser(cfg).parse_args(argv)
    cfg.LISTEN_ADDRESS = args.listen_address
    cfg.TELEMETRY_PATH = args.telemetry_path
    cfg.LOG_LEVEL = args.log_level.upper()

    try:
        log = get_logger(cfg)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        serve(cfg, log)
    except OSError as e:
        logger.error(f"Couldn't listen on {cfg.LISTEN_ADDRESS}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
