"""Timed execution of relay cycles, one independent loop per pair."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import List, Optional

from .feeds import fetch_feed
from .models import DedupCursor, WebhookTarget
from .relay import Fetcher, RelaySettings, Sender, run_cycle
from .webhook import post_message

logger = logging.getLogger(__name__)

SINGLE_PAIR_INTERVAL = 30.0
MULTI_PAIR_INTERVAL = 300.0


def default_interval(pair_count: int) -> float:
    return SINGLE_PAIR_INTERVAL if pair_count <= 1 else MULTI_PAIR_INTERVAL


class PairScheduler:
    """Owns the dedup cursor of one (feed, webhook) pair."""

    def __init__(
        self,
        target: WebhookTarget,
        settings: RelaySettings,
        fetch: Fetcher = fetch_feed,
        send: Sender = post_message,
    ):
        self.target = target
        self.settings = settings
        self.cursor = DedupCursor.empty(settings.cursor_capacity)
        self._fetch = fetch
        self._send = send
        self._lock = threading.Lock()

    def tick(self) -> bool:
        """Run one cycle. Returns False when a previous cycle is still running."""
        if not self._lock.acquire(blocking=False):
            logger.warning(
                "[%s] Previous cycle still in flight; skipping tick", self.target.name
            )
            return False
        try:
            self.cursor = run_cycle(
                self.target,
                self.cursor,
                settings=self.settings,
                fetch=self._fetch,
                send=self._send,
            )
        finally:
            self._lock.release()
        return True

    def run_forever(self, stop_event: threading.Event, interval: float) -> None:
        """Tick now, then every ``interval`` seconds until ``stop_event`` is set."""
        logger.info("[%s] Scheduler started (interval: %.0fs)", self.target.name, interval)
        while not stop_event.is_set():
            self.tick()
            if stop_event.wait(interval):
                break
        logger.info("[%s] Scheduler stopped", self.target.name)


def run_all(
    targets: List[WebhookTarget],
    settings: RelaySettings,
    stop_event: Optional[threading.Event] = None,
    once: bool = False,
    fetch: Fetcher = fetch_feed,
    send: Sender = post_message,
) -> List[PairScheduler]:
    """Run every pair on its own worker thread."""
    if not targets:
        raise RuntimeError("No relay pairs configured.")

    stop_event = stop_event or threading.Event()
    interval = settings.interval or default_interval(len(targets))
    schedulers = [PairScheduler(target, settings, fetch=fetch, send=send) for target in targets]

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=len(schedulers), thread_name_prefix="relay"
    ) as executor:
        if once:
            futures = {executor.submit(scheduler.tick): scheduler for scheduler in schedulers}
        else:
            futures = {
                executor.submit(scheduler.run_forever, stop_event, interval): scheduler
                for scheduler in schedulers
            }
        try:
            for future in concurrent.futures.as_completed(futures):
                exc = future.exception()
                if exc is not None:
                    logger.error(
                        "[%s] Scheduler crashed: %s", futures[future].target.name, exc
                    )
        except KeyboardInterrupt:
            logger.info("Shutdown requested; stopping schedulers")
            stop_event.set()
            raise

    return schedulers
