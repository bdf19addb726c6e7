"""
============================================================================
DEADMAN RELAY - MAIN APPLICATION
============================================================================
Integrates the two halves of the service in one process:

    Dead-man switch
        • WebDAVStore (dead-man share)  — trigger directories + markers
        • DeadManEvaluator              — fire / suppress decisions
        • Scheduler                     — runs the sweep periodically

    Notification relay
        • WebDAVStore (relay share)     — tokens/<token>.yaml
        • TokenCache + RelayGate        — authorization + payload shaping
        • RelayServer                   — aiohttp on RELAY_PORT

Both deliver through one TelegramAlertSink.

Startup Order
-------------
1.  Load settings & configure logging
2.  Create the alert sink
3.  Dead-man: store → evaluator → scheduler job
4.  Relay:    store → token cache → gate → server
5.  Start scheduler, start server
6.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
    stop server → stop scheduler → close stores → close alert sink

Usage
-----
    python main.py                 # dead-man sweep + relay
    python main.py --no-relay      # dead-man sweep only
    python main.py --once          # one sweep, then exit

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from config.settings import Settings, get_settings
from monitoring.alerts import AlertSink, TelegramAlertSink
from monitoring.deadman import DeadManEvaluator
from monitoring.scheduler import Scheduler
from relay.gate import RelayGate
from relay.server import RelayServer
from relay.tokens import TokenCache
from storage.base import MarkerStore
from storage.webdav import WebDAVStore
from utils.helpers import TimeHelper
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")

SWEEP_JOB = "deadman_sweep"


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class DeadmanRelayApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order.
    """

    def __init__(
        self,
        settings: Settings,
        run_deadman: bool = True,
        run_relay: bool = True,
    ):
        self.settings = settings
        self.run_deadman = run_deadman and settings.deadman.enabled
        self.run_relay = run_relay and settings.relay.enabled

        # --- subsystems (populated during startup) ---
        self.alert_sink: Optional[AlertSink] = None
        self.stores: List[MarkerStore] = []
        self.evaluator: Optional[DeadManEvaluator] = None
        self.scheduler: Optional[Scheduler] = None
        self.token_cache: Optional[TokenCache] = None
        self.relay_server: Optional[RelayServer] = None

        self._shutdown_event = asyncio.Event()

    # ==================================================================
    # WIRING
    # ==================================================================

    def _secret(self, value) -> Optional[str]:
        return value.get_secret_value() if value else None

    def build(self) -> None:
        """Create every enabled subsystem without starting anything."""
        self.alert_sink = TelegramAlertSink(self.settings.telegram)

        if self.run_deadman:
            store = WebDAVStore.from_settings(
                self.settings.store, self._secret(self.settings.store.deadman_token)
            )
            self.stores.append(store)
            self.evaluator = DeadManEvaluator(store, self.alert_sink, self.settings.deadman)
            self.scheduler = Scheduler()
            self.scheduler.register_job(
                SWEEP_JOB,
                self.settings.deadman.check_interval,
                self.evaluator.evaluate_all_triggers,
                run_immediately=self.settings.deadman.run_on_startup,
            )
            logger.info(
                "  ✓ Dead-man sweep every "
                f"{TimeHelper.seconds_to_human_readable(self.settings.deadman.check_interval)}"
            )

        if self.run_relay:
            store = WebDAVStore.from_settings(
                self.settings.store, self._secret(self.settings.store.relay_token)
            )
            self.stores.append(store)
            self.token_cache = TokenCache(store, self.settings.relay.token_validity)
            gate = RelayGate(self.token_cache, self.alert_sink, self.settings.relay.public_token)
            self.relay_server = RelayServer(gate, self.settings.relay)

    # ==================================================================
    # LIFECYCLE
    # ==================================================================

    async def startup(self) -> None:
        logger.info("=" * 74)
        logger.info(f"  STARTING {self.settings.app_name} v{self.settings.app_version}")
        logger.info(f"  Environment: {self.settings.environment.value}")
        logger.info("=" * 74)
        logger.debug(f"Settings: {self.settings.to_dict()}")

        self.build()

        if self.scheduler:
            await self.scheduler.start()
        if self.relay_server:
            await self.relay_server.start()

        if not self.scheduler and not self.relay_server:
            logger.warning("  ⚠ Nothing enabled, the service will idle until stopped")

        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")

    async def run_once(self) -> bool:
        """Run a single dead-man sweep. Returns True if it completed."""
        self.build()
        if not self.scheduler:
            logger.error("  ✗ Dead-man sweep is disabled")
            return False
        return await self.scheduler.run_job_now(SWEEP_JOB)

    def request_shutdown(self) -> None:
        logger.info("  ⚡ Signal received, initiating graceful shutdown…")
        self._shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        await self._shutdown_event.wait()

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped in try/except so a failure in one subsystem
        doesn't prevent the others from cleaning up.
        """
        logger.info("  SHUTTING DOWN …")

        if self.relay_server:
            try:
                await self.relay_server.stop()
            except Exception as e:
                logger.error(f"  ✗ Relay stop error: {e}")

        if self.scheduler:
            try:
                await self.scheduler.stop()
            except Exception as e:
                logger.error(f"  ✗ Scheduler stop error: {e}")

        for store in self.stores:
            try:
                await store.close()
            except Exception as e:
                logger.error(f"  ✗ Store close error: {e}")

        if self.alert_sink:
            try:
                await self.alert_sink.close()
            except Exception as e:
                logger.error(f"  ✗ Alert sink close error: {e}")

        logger.info("  ✓ SHUTDOWN COMPLETE")


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: DeadmanRelayApplication) -> None:
    """Route SIGTERM / SIGINT to a graceful shutdown."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.request_shutdown)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still applies
            logger.debug(f"Signal handler for {sig.name} not installed")


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="deadman-relay",
        description="Dead-man switch monitor and authenticated notification relay",
    )
    parser.add_argument("--once", action="store_true", help="run a single dead-man sweep and exit")
    parser.add_argument("--no-deadman", action="store_true", help="do not run the dead-man sweep")
    parser.add_argument("--no-relay", action="store_true", help="do not serve the notification relay")
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        help="override LOG_LEVEL",
    )
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Async main: creates the app, starts it, and runs until shutdown.
    Returns the process exit code.
    """
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings, level=args.log_level)

    app = DeadmanRelayApplication(
        settings,
        run_deadman=not args.no_deadman,
        run_relay=not args.no_relay and not args.once,
    )

    if args.once:
        try:
            return 0 if await app.run_once() else 1
        finally:
            await app.shutdown()

    _install_signal_handlers(app)
    try:
        await app.startup()
        await app.wait_for_shutdown()
    except OSError as e:
        logger.error(f"  ✗ Startup failed: {e}")
        return 1
    finally:
        await app.shutdown()
    return 0


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
