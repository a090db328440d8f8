import argparse
import logging

from aiohttp import web

from easyblob.log_config import configure_logging, get_logger
from easyblob.server import create_app
from easyblob.services.config_service import ConfigService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="easyblob",
        description="Quick and easy local blob storage over HTTP",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Interface to bind to (overrides the config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides the config)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Render logs as JSON instead of the console format",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at debug level",
    )
    return parser


def main(argv: None | list[str] = None):
    args = build_parser().parse_args(argv)
    configure_logging(
        pretty=not args.json_logs,
        level=logging.DEBUG if args.debug else logging.INFO,
    )
    log = get_logger()

    config = ConfigService(args.config).load()
    updates = {}
    if args.host is not None:
        updates["host"] = args.host
    if args.port is not None:
        updates["port"] = args.port
    config = config.model_copy(update=updates)

    log.info(
        "Starting blob storage server",
        host=config.host,
        port=config.port,
        storage_dir=config.storage_dir,
    )
    # run_app shuts the server down gracefully on SIGINT and SIGTERM
    web.run_app(
        create_app(config),
        host=config.host,
        port=config.port,
        print=None,
    )
