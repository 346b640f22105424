"""
Transaction Status Poll
Runs the status checkers periodically in the background
"""

import logging
import random
import threading
from contextlib import nullcontext

logger = logging.getLogger(__name__)


class TransactionStatusPoll:
    """
    Periodically runs every checker's update_pending().

    A pass never overlaps with another one: ticks that fire while a pass is
    still running are skipped, not queued. stop() cancels future ticks but
    lets an in-flight pass finish.
    """

    def __init__(self, checkers, polling_interval_seconds, app=None, rng=random.random, logger=logger):
        if polling_interval_seconds <= 0:
            raise ValueError("Polling interval must be positive")
        self.checkers = list(checkers)
        self.polling_interval_seconds = polling_interval_seconds
        self.app = app
        self.rng = rng
        self.logger = logger
        self._stop_event = threading.Event()
        self._polling = threading.Lock()
        self._scheduler_thread = None

    @property
    def is_polling(self):
        return self._polling.locked()

    @property
    def is_running(self):
        return self._scheduler_thread is not None and self._scheduler_thread.is_alive()

    def start(self):
        if self.is_running:
            raise RuntimeError("Transaction status poll is already started")
        self._stop_event.clear()
        # to avoid a stampede when several service instances start at the same time
        start_jitter_seconds = self.rng() * self.polling_interval_seconds
        self.logger.info(
            f"Starting transaction status poll with {self.polling_interval_seconds}s interval "
            f"in {start_jitter_seconds:.3f}s"
        )
        self._scheduler_thread = threading.Thread(
            target=self._run, args=(start_jitter_seconds,), name='transaction-status-poll', daemon=True
        )
        self._scheduler_thread.start()

    def stop(self):
        self._stop_event.set()
        if self._scheduler_thread is not None and self._scheduler_thread is not threading.current_thread():
            self._scheduler_thread.join()
        self._scheduler_thread = None
        self.logger.info("Transaction status poll stopped")

    def _run(self, start_jitter_seconds):
        if self._stop_event.wait(start_jitter_seconds):
            return
        self._dispatch()
        while not self._stop_event.wait(self.polling_interval_seconds):
            self._dispatch()

    def _dispatch(self):
        # a slow pass must not delay the next tick, the guard in poll() decides whether it runs
        threading.Thread(target=self.poll, name='transaction-status-pass', daemon=True).start()

    def poll(self):
        """Run one pass unless another one is in progress. Returns whether the pass ran."""
        if not self._polling.acquire(blocking=False):
            self.logger.warning("Transaction status poll is already running, skipping")
            return False

        try:
            for checker in self.checkers:
                self._run_checker(checker)
        finally:
            self._polling.release()
        return True

    def _run_checker(self, checker):
        context = self.app.app_context() if self.app is not None else nullcontext()
        try:
            with context:
                checker.update_pending()
        except Exception as e:
            self.logger.error(f"Error updating pending transactions with {type(checker).__name__}: {e}", exc_info=e)
