"""
Prometheus-compatible metrics for observability.

Tracks key scheduling indicators:
- Bookings created and rejected (by reason code)
- Cancellations and refund initiations
- Staff auto-assignment outcomes
- Notification deliveries (by type, channel, status)

Usage:
    from salonbook.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_bookings_created(assignment="auto")
    metrics.increment_booking_rejections(code="STAFF_TIME_CONFLICT")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector for the scheduling backend.

    Counters:
    - bookings_created_total: Bookings persisted (labels: assignment)
    - booking_rejections_total: Rejected booking/cancellation attempts (labels: code)
    - bookings_cancelled_total: Successful cancellations
    - staff_auto_assignments_total: Auto-assignment searches (labels: outcome)
    - notifications_total: Notification attempts (labels: type, channel, status)
    - refunds_total: Refund initiations (labels: status)
    - reminders_sent_total: Reminder notifications dispatched

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Booking Metrics =====

    def increment_bookings_created(self, assignment: str, amount: int = 1):
        """
        Increment bookings created counter.

        Args:
            assignment: How staff was resolved (specific, auto, none)
            amount: Increment amount (default 1)
        """
        self._increment("bookings_created_total", {"assignment": assignment.lower()}, amount)

    def increment_booking_rejections(self, code: str, amount: int = 1):
        """Increment rejected booking operations by reason code."""
        self._increment("booking_rejections_total", {"code": code.upper()}, amount)

    def increment_cancellations(self, amount: int = 1):
        """Increment successful cancellations."""
        self._increment("bookings_cancelled_total", {}, amount)

    def increment_auto_assignments(self, outcome: str, amount: int = 1):
        """
        Increment auto-assignment searches.

        Args:
            outcome: assigned or none_available
            amount: Increment amount
        """
        self._increment("staff_auto_assignments_total", {"outcome": outcome.lower()}, amount)

    # ===== Side-effect Metrics =====

    def increment_notifications(self, notification_type: str, channel: str, status: str, amount: int = 1):
        """Increment notification attempts."""
        labels = {
            "type": notification_type.lower(),
            "channel": channel.lower(),
            "status": status.lower(),
        }
        self._increment("notifications_total", labels, amount)

    def increment_refunds(self, status: str, amount: int = 1):
        """Increment refund initiations (initiated, failed)."""
        self._increment("refunds_total", {"status": status.lower()}, amount)

    def increment_reminders(self, amount: int = 1):
        """Increment reminders dispatched by the reminder job."""
        self._increment("reminders_sent_total", {}, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        # Group counters by metric name
        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self._get_help_text(metric_name)
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                if labels_dict:
                    labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                    output_lines.append(f"{metric_name}{{{labels_str}}} {value}")
                else:
                    output_lines.append(f"{metric_name} {value}")

            output_lines.append("")  # Blank line between metrics

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        """Get help text for metric."""
        help_texts = {
            "bookings_created_total": "Total number of bookings created",
            "booking_rejections_total": "Total number of rejected booking operations",
            "bookings_cancelled_total": "Total number of cancelled bookings",
            "staff_auto_assignments_total": "Total number of staff auto-assignment searches",
            "notifications_total": "Total number of notification attempts",
            "refunds_total": "Total number of refund initiations",
            "reminders_sent_total": "Total number of booking reminders sent",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """
        Get current value of a specific counter.

        Args:
            metric_name: Name of the metric
            labels: Label filters

        Returns:
            Current counter value
        """
        return self._get_value(metric_name, labels)

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
