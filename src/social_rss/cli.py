#!/usr/bin/env python3
"""
Command line entry point for Social RSS.

Commands:
    serve   Start the service and the HTTP server
    update  Run one pass and print the result
    status  Print a human-readable status summary
"""

import argparse
import atexit
import signal
import sys
from typing import Optional

from social_rss.config import Config, load_config
from social_rss.core.aggregator import AggregatorState
from social_rss.core.services import FeedService, StatusSnapshot, create_feed_service
from social_rss.exceptions import SocialRSSError
from social_rss.logger import get_logger, setup_logger

logger = get_logger(__name__)


def format_status(snapshot: StatusSnapshot, feed_path: str) -> str:
    """Render a status snapshot for people."""
    lines = ["RSS Feed Status:"]

    info = snapshot.feed_file
    if info.exists:
        lines.append(f"📄 RSS file exists: {feed_path}")
        lines.append(f"📅 Last modified: {info.last_modified.astimezone():%Y-%m-%d %H:%M:%S}")
        lines.append(f"📊 File size: {info.size / 1024:.1f} KB")
    else:
        lines.append("❌ RSS file not found")

    monitoring = snapshot.monitoring
    lines.append(f"📋 Monitoring {monitoring.list_count} lists: {', '.join(monitoring.lists)}")
    lines.append(f"⏱️ Update interval: {monitoring.interval_minutes} minutes")
    lines.append(f"🎯 Max items per update: {monitoring.max_per_list}")
    lines.append(f"🔐 Service state: {snapshot.state}")

    return "\n".join(lines)


def _install_shutdown(service: FeedService) -> None:
    """Stop the service on SIGINT/SIGTERM and at interpreter exit."""
    atexit.register(service.stop)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        raise SystemExit(0)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def cmd_serve(config: Config) -> int:
    from social_rss.web.app import create_app

    service = create_feed_service(config)
    _install_shutdown(service)

    try:
        service.start()
        app = create_app(service)
        logger.info(f"RSS Server running on http://{config.web.host}:{config.web.port}")
        logger.info(f"RSS Feed available at: http://{config.web.host}:{config.web.port}/feed")
        app.run(host=config.web.host, port=config.web.port, threaded=True, use_reloader=False)
    finally:
        service.stop()

    return 0


def cmd_update(config: Config) -> int:
    service = create_feed_service(config)
    try:
        if service.start(schedule=False) != AggregatorState.READY:
            print("❌ RSS update failed: source authentication required")
            return 1

        result = service.process_all()
        print("RSS feed updated successfully!")
        print(f"📊 Processed {result.total_items} new items")
        print(f"📁 RSS file: {result.location}")
        print(f"🕒 Last updated: {result.finished_at.astimezone():%Y-%m-%d %H:%M:%S}")
        return 0
    except SocialRSSError as e:
        logger.error(f"RSS update failed: {e}")
        print(f"❌ RSS update failed: {e.user_message}")
        return 1
    finally:
        service.stop()


def cmd_status(config: Config) -> int:
    service = create_feed_service(config)
    try:
        print(format_status(service.get_status_snapshot(), str(config.feed.feed_path)))
    finally:
        service.aggregator.source.close()
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "update": cmd_update,
    "status": cmd_status,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="social-rss",
        description="Aggregate monitored social-media lists into an RSS feed",
    )
    parser.add_argument("command", choices=sorted(COMMANDS), help="Command to run")
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument("--log-level", help="Override the configured log level")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logger(config.logging, level=args.log_level)

    return COMMANDS[args.command](config)


if __name__ == "__main__":
    sys.exit(main())
