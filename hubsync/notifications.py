#!/usr/bin/env python3
"""
notifications.py

Teams notifications for Notion hub sync passes.

Warnings and errors raised while a pass runs are collected by a
``TeamsNotifier`` and sent as one MessageCard when the pass ends, together
with the pass counters. Without a webhook everything still goes to the log.
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Notification severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Counters shown on the summary card, in display order
STAT_LABELS = [
    ("hub_records", "Hub pages scanned"),
    ("source_records", "Source pages scanned"),
    ("created", "Hub pages created"),
    ("updated_hub", "Hub pages updated"),
    ("updated_source", "Source pages updated"),
    ("tombstoned", "Source pages tombstoned"),
    ("unchanged", "Already in sync"),
    ("skipped", "Skipped"),
    ("errors", "Record errors"),
    ("collections_failed", "Databases not readable"),
]


class TeamsNotifier:
    """Collects pass issues and reports them to a Teams webhook"""

    def __init__(self, webhook_url: str, fallback_to_console: bool = True):
        self.webhook_url = webhook_url
        self.fallback_to_console = fallback_to_console
        self.session_warnings = []
        self.session_errors = []
        self.session_info = []

    def _entry(self, message: str, details: Optional[Dict]) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": message,
            "details": details or {}
        }

    def add_warning(self, message: str, details: Optional[Dict] = None):
        """Track a warning-level issue"""
        self.session_warnings.append(self._entry(message, details))

    def add_error(self, message: str, details: Optional[Dict] = None):
        """Track an error-level issue"""
        self.session_errors.append(self._entry(message, details))

    def add_info(self, message: str, details: Optional[Dict] = None):
        """Track an informational message"""
        self.session_info.append(self._entry(message, details))

    def should_send_notification(self) -> bool:
        return len(self.session_warnings) > 0 or len(self.session_errors) > 0

    def get_notification_level(self) -> NotificationLevel:
        if self.session_errors:
            return NotificationLevel.ERROR
        elif self.session_warnings:
            return NotificationLevel.WARNING
        else:
            return NotificationLevel.INFO

    def build_card(self, title: str, stats: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Build the MessageCard payload for the tracked issues and pass counters."""
        level = self.get_notification_level()

        facts = [
            {"name": "Timestamp", "value": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")},
            {"name": "Severity", "value": level.value.upper()},
            {"name": "Errors", "value": str(len(self.session_errors))},
            {"name": "Warnings", "value": str(len(self.session_warnings))}
        ]
        sections = [{
            "activityTitle": title,
            "activitySubtitle": "Notion sources ↔ hub two-way sync",
            "facts": facts
        }]

        if stats:
            stats_text = ""
            for key, label in STAT_LABELS:
                if key in stats:
                    stats_text += f"• **{stats[key]:,}** {label}\n"
            if stats.get("dry_run"):
                stats_text += "\n🧪 *Dry run: nothing was written*\n"
            sections.append({"activityTitle": "📊 Pass Summary", "text": stats_text})

        for entries, heading in ((self.session_errors, "❌ Errors"), (self.session_warnings, "⚠️ Warnings")):
            if not entries:
                continue
            text = ""
            for i, entry in enumerate(entries[-5:], 1):  # Show last 5
                text += f"**{i}.** {entry['message']}\n"
                if entry['details']:
                    text += f"   *Details:* {json.dumps(entry['details'], default=str)}\n"
                text += f"   *Time:* {entry['timestamp']}\n\n"
            sections.append({
                "activityTitle": heading,
                "text": text[:1000] + ("..." if len(text) > 1000 else "")
            })

        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": self._get_theme_color(level),
            "summary": title,
            "sections": sections
        }

    def send_notification(self,
                          title: str = "Notion Hub Sync Alert",
                          stats: Optional[Dict[str, Any]] = None,
                          force_send: bool = False) -> bool:
        """Send Teams notification with collected issues"""
        if not force_send and not self.should_send_notification():
            logger.info("No issues to report - skipping notification")
            return True

        level = self.get_notification_level()
        card = self.build_card(title, stats)

        try:
            response = requests.post(
                self.webhook_url,
                headers={"Content-Type": "application/json"},
                json=card,
                timeout=30
            )

            if response.status_code in [200, 202]:  # Teams often returns 202 (Accepted)
                logger.info(f"✅ Teams notification sent successfully ({level.value.upper()})")
                return True
            logger.error(f"❌ Teams notification failed: {response.status_code} - {response.text}")
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Error sending Teams notification: {e}")

        if self.fallback_to_console:
            self._fallback_to_console(title, level)
        return False

    def _fallback_to_console(self, title: str, level: NotificationLevel):
        """Fallback to console output when Teams webhook is unavailable"""
        print(f"\n{'='*60}")
        print(f"📨 NOTIFICATION FALLBACK - {level.value.upper()}")
        print(f"📋 {title}")
        print(f"{'='*60}")

        if self.session_errors:
            print(f"\n❌ ERRORS ({len(self.session_errors)}):")
            for i, error in enumerate(self.session_errors[-5:], 1):
                print(f"   {i}. {error['message']}")
                if error.get('details'):
                    print(f"      Details: {error['details']}")

        if self.session_warnings:
            print(f"\n⚠️  WARNINGS ({len(self.session_warnings)}):")
            for i, warning in enumerate(self.session_warnings[-3:], 1):
                print(f"   {i}. {warning['message']}")

        print(f"{'='*60}\n")

    def _get_theme_color(self, level: NotificationLevel) -> str:
        colors = {
            NotificationLevel.INFO: "28a745",      # Green
            NotificationLevel.WARNING: "ffc107",   # Yellow
            NotificationLevel.ERROR: "dc3545"      # Red
        }
        return colors.get(level, "17a2b8")

    def clear_session(self):
        """Clear all tracked issues for new session"""
        self.session_warnings.clear()
        self.session_errors.clear()
        self.session_info.clear()
        logger.debug("Notification session cleared")


# Global notifier instance
_notifier: Optional[TeamsNotifier] = None


def initialize_notifier(webhook_url: str) -> TeamsNotifier:
    """Initialize global notification system"""
    global _notifier
    _notifier = TeamsNotifier(webhook_url)
    logger.info("📨 Teams notification system initialized")
    return _notifier


def get_notifier() -> Optional[TeamsNotifier]:
    return _notifier


def notify_warning(message: str, details: Optional[Dict] = None):
    logger.warning(message)  # Always log locally
    if _notifier:
        _notifier.add_warning(message, details)


def notify_error(message: str, details: Optional[Dict] = None):
    logger.error(message)  # Always log locally
    if _notifier:
        _notifier.add_error(message, details)


def notify_info(message: str, details: Optional[Dict] = None):
    logger.info(message)  # Always log locally
    if _notifier:
        _notifier.add_info(message, details)


def send_final_notification(title: str = "Notion Hub Sync Completed",
                            stats: Optional[Dict[str, Any]] = None) -> bool:
    """Send the end-of-pass notification if any issues were tracked"""
    if _notifier:
        return _notifier.send_notification(title, stats)
    return False


def reset_session():
    """Reset the current notification session"""
    if _notifier:
        _notifier.clear_session()
