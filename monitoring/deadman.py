"""
============================================================================
DEADMAN RELAY - DEAD-MAN SWITCH EVALUATOR
============================================================================
Decides, for every trigger directory in the store, whether the monitored
process has gone silent and whether a fresh alert is due.

Store layout per trigger
------------------------
    <trigger>/config.yaml        PingDelaySeconds, NotificationRepeatDelaySeconds?
    <trigger>/ping               touched by the monitored process
    <trigger>/lastNotification   written here after every alert
    <trigger>/error.log          append-only failure log

Only the modification timestamps of ``ping`` and ``lastNotification``
matter; their bodies are informational.

Decision
--------
    fire      when  now - ping            >  PingDelaySeconds
    suppress  when  now - lastNotification <= NotificationRepeatDelaySeconds
                    (defaults to PingDelaySeconds; never without a
                    previous notification)

Failure isolation
-----------------
Each trigger is evaluated on its own, bounded by ``trigger_timeout``.
Any failure is logged and appended to that trigger's error.log under an
exclusive store lock; the sweep then moves on to the next trigger.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError

from config.constants import StoreLayout, TriggerOutcome
from config.settings import DeadManSettings
from exceptions.base import ConfigError, DeadmanRelayException
from exceptions.monitoring import MissingPingError
from exceptions.store import ResourceNotFoundError
from monitoring.alerts import AlertSink, TextContent
from storage.base import MarkerStore
from utils.helpers import TimeHelper
from utils.logger import get_logger, log_execution_time


logger = get_logger("DeadMan")


# ============================================================================
# TRIGGER CONFIG
# ============================================================================

class TriggerConfig(BaseModel):
    """Per-trigger policy loaded from ``config.yaml``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    ping_delay_seconds: PositiveInt = Field(alias="PingDelaySeconds")
    notification_repeat_delay_seconds: Optional[PositiveInt] = Field(
        default=None, alias="NotificationRepeatDelaySeconds"
    )

    @property
    def effective_repeat_delay(self) -> int:
        return self.notification_repeat_delay_seconds or self.ping_delay_seconds

    @classmethod
    def from_yaml(cls, text: str, trigger: str) -> "TriggerConfig":
        """
        Parse and validate a trigger's config.yaml.

        Raises:
            ConfigError: invalid YAML, not a mapping, or an invalid policy
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"config.yaml is not valid YAML: {e}", trigger=trigger, cause=e) from e

        if not isinstance(data, dict):
            raise ConfigError("config.yaml must be a mapping", trigger=trigger)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid trigger config: {problems}", trigger=trigger, cause=e) from e


def decide(
    config: TriggerConfig,
    last_ping: datetime,
    last_notification: Optional[datetime],
    now: datetime,
) -> TriggerOutcome:
    """
    Apply the fire / suppress-repeat rules.

    Returns HEALTHY, SUPPRESSED or FIRED.
    """
    time_since_ping = (now - last_ping).total_seconds()
    if time_since_ping <= config.ping_delay_seconds:
        return TriggerOutcome.HEALTHY

    if last_notification is not None:
        time_since_notification = (now - last_notification).total_seconds()
        if time_since_notification <= config.effective_repeat_delay:
            return TriggerOutcome.SUPPRESSED

    return TriggerOutcome.FIRED


@dataclass(frozen=True)
class TriggerReport:
    """What happened to one trigger during a sweep."""
    trigger: str
    outcome: TriggerOutcome
    error: Optional[str] = None


# ============================================================================
# EVALUATOR
# ============================================================================

class DeadManEvaluator:
    """
    Runs one sweep over all triggers of a store.

    Parameters
    ----------
    store : MarkerStore
        The dead-man trigger store.
    alert_sink : AlertSink
        Receives an alert for every firing trigger.
    settings : DeadManSettings
        Source label and per-trigger timeout.
    clock : Callable[[], datetime]
        Returns the current timezone-aware instant.
    """

    def __init__(
        self,
        store: MarkerStore,
        alert_sink: AlertSink,
        settings: DeadManSettings,
        clock: Callable[[], datetime] = TimeHelper.get_utc_now,
    ):
        self.store = store
        self.alert_sink = alert_sink
        self.settings = settings
        self._clock = clock

    # ------------------------------------------------------------------
    # SWEEP
    # ------------------------------------------------------------------

    @log_execution_time
    async def evaluate_all_triggers(self) -> List[TriggerReport]:
        """
        Evaluate every trigger directory at the store root, one at a time.

        A failure to list the root propagates; per-trigger failures do not.
        """
        entries = await self.store.list_entries("")
        triggers = sorted(entry.name for entry in entries if entry.is_directory)

        reports = []
        for trigger in triggers:
            reports.append(await self._evaluate_guarded(trigger))

        fired = sum(1 for r in reports if r.outcome == TriggerOutcome.FIRED)
        failed = sum(1 for r in reports if r.outcome == TriggerOutcome.FAILED)
        logger.info(
            f"Sweep complete: {len(reports)} triggers, {fired} fired, {failed} failed"
        )
        return reports

    async def _evaluate_guarded(self, trigger: str) -> TriggerReport:
        logger.info(f"Checking trigger: {trigger}")
        try:
            outcome = await asyncio.wait_for(
                self.evaluate_trigger(trigger),
                timeout=self.settings.trigger_timeout,
            )
        except Exception as e:
            text = self._describe_error(e)
            logger.error(f"Trigger {trigger} failed: {text}")
            if isinstance(e, DeadmanRelayException):
                logger.debug(e.log_format())
            await self._append_error_log(trigger, text)
            return TriggerReport(trigger=trigger, outcome=TriggerOutcome.FAILED, error=text)

        logger.debug(f"Trigger {trigger}: {outcome.value}")
        return TriggerReport(trigger=trigger, outcome=outcome)

    # ------------------------------------------------------------------
    # SINGLE TRIGGER
    # ------------------------------------------------------------------

    async def evaluate_trigger(self, trigger: str) -> TriggerOutcome:
        """
        Evaluate one trigger and alert if it is due.

        Raises:
            ConfigError: config.yaml missing or invalid
            MissingPingError: no ping marker or no timestamp on it
            StoreError: the store failed
            DeliveryError: the alert could not be sent
        """
        config = await self.load_config(trigger)

        markers = {entry.name: entry for entry in await self.store.list_entries(trigger)}
        ping = markers.get(StoreLayout.PING_MARKER)
        if ping is None or ping.modified_at is None:
            raise MissingPingError(trigger)

        last_notification_entry = markers.get(StoreLayout.LAST_NOTIFICATION_MARKER)
        last_notification = last_notification_entry.modified_at if last_notification_entry else None

        now = self._clock()
        outcome = decide(config, ping.modified_at, last_notification, now)

        if outcome == TriggerOutcome.FIRED:
            await self.alert_sink.notify(
                self.settings.source_name,
                trigger,
                TextContent(
                    f"Last Ping was at {TimeHelper.format_http_date(ping.modified_at)} "
                    f"but should have been within {config.ping_delay_seconds} seconds"
                ),
            )
            await self.store.write_resource(
                StoreLayout.trigger_path(trigger, StoreLayout.LAST_NOTIFICATION_MARKER),
                TimeHelper.format_http_date(now).encode("utf-8"),
            )
            logger.warning(f"Trigger {trigger} fired, last ping {ping.modified_at.isoformat()}")
        elif outcome == TriggerOutcome.SUPPRESSED:
            logger.info(f"Trigger {trigger} is overdue, repeat alert suppressed")

        return outcome

    async def load_config(self, trigger: str) -> TriggerConfig:
        path = StoreLayout.trigger_path(trigger, StoreLayout.CONFIG_FILE)
        try:
            text = await self.store.read_text(path)
        except ResourceNotFoundError as e:
            raise ConfigError(f"{StoreLayout.CONFIG_FILE} not found", trigger=trigger, cause=e) from e
        return TriggerConfig.from_yaml(text, trigger)

    # ------------------------------------------------------------------
    # ERROR LOG
    # ------------------------------------------------------------------

    def _describe_error(self, error: Exception) -> str:
        if isinstance(error, asyncio.TimeoutError):
            return f"TimeoutError: evaluation exceeded {self.settings.trigger_timeout}s"
        if isinstance(error, DeadmanRelayException):
            return f"{type(error).__name__}: {error.message}"
        return f"{type(error).__name__}: {error}"

    async def _append_error_log(self, trigger: str, text: str) -> None:
        path = StoreLayout.trigger_path(trigger, StoreLayout.ERROR_LOG)
        line = f"[{self._clock().isoformat()}] {text}\n"
        try:
            await self.store.append_text(path, line)
        except Exception as e:
            logger.error(f"Failed to append to {path}: {e}")
