"""FuoTerm client entry point."""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Optional

from client.app_state import AppState
from client.status_line import format_status_line
from client.subscriber import Subscriber
from shared.config import load_config
from shared.logging_utils import setup_rotating_logger
from shared.protocol import FuoError

logger = logging.getLogger("fuoterm.client")


def _run_asyncio_loop(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


def _on_subscriber_done(fut: Future) -> None:
    if fut.cancelled():
        return
    exc = fut.exception()
    if exc is not None:
        logger.error("Push subscription stopped: %s; state will no longer update", exc)


def _sync(state: AppState, loop: asyncio.AbstractEventLoop, timeout: float) -> None:
    try:
        asyncio.run_coroutine_threadsafe(state.sync_now(), loop).result(timeout)
    except (FuoError, OSError, TimeoutError) as e:
        logger.warning("Sync failed, keeping previous state: %s", e)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="fuoterm", description="Now-playing line for a fuo server")
    parser.add_argument("--config", type=Path, default=None, help="path to fuoterm.toml")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    errors = config.validate()
    if errors:
        for err in errors:
            print(f"config error: {err}", file=sys.stderr)
        return 2

    setup_rotating_logger("fuoterm", Path(config.logging.dir), config.logging.level_no)
    logger.info("FuoTerm starting")

    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=_run_asyncio_loop, args=(loop,), daemon=True)
    thread.start()

    state = AppState(config)
    sync_timeout = max(config.client.sync_interval_s, 5.0)
    _sync(state, loop, sync_timeout)
    try:
        asyncio.run_coroutine_threadsafe(state.refresh_playlist(), loop).result(sync_timeout)
    except (FuoError, OSError, TimeoutError) as e:
        logger.warning("Could not load playlist: %s", e)

    subscriber = Subscriber(
        config.server.host, config.server.pubsub_port, state.on_message, config.client.topics
    )
    asyncio.run_coroutine_threadsafe(subscriber.run(), loop).add_done_callback(_on_subscriber_done)

    refresh_s = config.client.refresh_interval_ms / 1000.0
    sync_interval = config.client.sync_interval_s
    last_sync = time.monotonic()
    try:
        while True:
            if sync_interval > 0 and time.monotonic() - last_sync >= sync_interval:
                _sync(state, loop, sync_timeout)
                last_sync = time.monotonic()
            sys.stdout.write("\r\033[K" + format_status_line(state.snapshot()))
            sys.stdout.flush()
            time.sleep(refresh_s)
    except KeyboardInterrupt:
        sys.stdout.write("\n")
    finally:
        loop.call_soon_threadsafe(loop.stop)
        logger.info("FuoTerm stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
