"""
============================================================================
DEADMAN RELAY - MONITORING PACKAGE
============================================================================
Dead-man switch evaluation and alert delivery:
    • DeadManEvaluator   — sweeps trigger directories and fires alerts
    • TelegramAlertSink  — delivers alerts to the operator's chat
    • Scheduler          — periodic background job runner

monitoring/
├── __init__.py          ← this file
├── deadman.py           ← DeadManEvaluator + TriggerConfig + decide()
├── alerts.py            ← AlertSink + alert content model
└── scheduler.py         ← Scheduler + ScheduledJob
============================================================================
"""

from monitoring.alerts import (
    AlertContent,
    AlertSink,
    StructuredContent,
    TelegramAlertSink,
    TextContent,
    render_alert_message,
)
from monitoring.deadman import DeadManEvaluator, TriggerConfig, TriggerReport, decide
from monitoring.scheduler import Scheduler, ScheduledJob

__all__ = [
    # Alerts
    "AlertContent",
    "AlertSink",
    "StructuredContent",
    "TelegramAlertSink",
    "TextContent",
    "render_alert_message",

    # Dead-man switch
    "DeadManEvaluator",
    "TriggerConfig",
    "TriggerReport",
    "decide",

    # Scheduler
    "Scheduler",
    "ScheduledJob",
]
