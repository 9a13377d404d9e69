"""
Main entry point for the Hosts Webhook Provider.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from hosts_webhook.config.config import Config, parse_listen_addr
from hosts_webhook.controller.reconciler import Reconciler
from hosts_webhook.server.webhook import WebhookServer
from hosts_webhook.store.factory import create_store
from hosts_webhook.utils.health import HealthCheckServer


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hosts-webhook",
        description="external-dns webhook provider backed by a hosts table",
    )
    parser.add_argument("config", nargs="?", help="Path to the YAML configuration file")
    parser.add_argument(
        "--dry-run", action="store_true", default=None, help="Do not write the host table"
    )
    parser.add_argument(
        "--debug", action="store_true", default=None, help="Enable debug logging"
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """
    Load configuration, letting command-line flags win over file and environment.

    Args:
        args: Parsed command-line arguments

    Returns:
        Config: Effective configuration
    """
    config = Config.from_yaml(args.config)
    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.debug:
        overrides["debug"] = True
    if overrides:
        config = config.model_copy(update=overrides)
    return config


def setup_logging(config: Config) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Set log level from configuration
    if config.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)

    # Keep client libraries quiet unless root is DEBUG
    client_log_level = logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
    logging.getLogger("kubernetes").setLevel(client_log_level)
    logging.getLogger("urllib3").setLevel(client_log_level)


def log_config(config: Config, logger: logging.Logger) -> None:
    domain_filter = config.domain_filter
    logger.info(f"Config: filters={','.join(domain_filter.filters)}")
    logger.info(f"Config: exclude={','.join(domain_filter.exclude)}")
    logger.info(f"Config: regex={domain_filter.regex}")
    logger.info(f"Config: regex_exclusion={domain_filter.regex_exclusion}")
    logger.info(f"Config: host_backend={config.host_backend}")
    logger.info(f"Config: host_file_path={config.host_file_path}")
    logger.info(f"Config: host_configmap_name={config.host_configmap_name}")
    logger.info(f"Config: host_configmap_namespace={config.host_configmap_namespace}")
    logger.info(f"Config: host_configmap_key={config.host_configmap_key}")
    logger.info(f"Config: listen_addr={config.listen_addr}")
    logger.info(f"Config: health_listen_addr={config.health_listen_addr}")
    logger.info(f"Config: dry_run={config.dry_run}")
    logger.info(f"Config: debug={config.debug}")


async def wait_for_shutdown_signal(logger: logging.Logger) -> None:
    """Block until SIGINT or SIGTERM is received."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    def on_signal(signame: str) -> None:
        logger.info(f"{signame} signal received")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, on_signal, sig.name)

    await stop.wait()


async def main(argv: Optional[List[str]] = None):
    """Main entry point running the webhook and health servers."""
    config = load_config(parse_args(argv))
    setup_logging(config)
    logger = logging.getLogger("hosts-webhook")
    logger.info("Starting Hosts Webhook Provider")
    log_config(config, logger)

    # Initialize components
    store = create_store(config)
    reconciler = Reconciler(store, dry_run=config.dry_run)

    host, port = parse_listen_addr(config.listen_addr)
    webhook_server = WebhookServer(
        reconciler,
        config.domain_filter,
        host=host,
        port=port,
        debug=config.debug,
    )
    health_host, health_port = parse_listen_addr(config.health_listen_addr)
    health_server = HealthCheckServer(health_host, health_port)

    webhook_server.start()
    health_server.start()
    logger.info(f"Serving host table from {store.description}")

    try:
        await wait_for_shutdown_signal(logger)
    finally:
        logger.info(
            f"Shutting down, waiting up to {config.shutdown_grace_period:.0f}s for in-flight requests"
        )
        await asyncio.to_thread(webhook_server.stop, config.shutdown_grace_period)
        health_server.stop()


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down Hosts Webhook Provider")
        sys.exit(0)


if __name__ == "__main__":
    run()
