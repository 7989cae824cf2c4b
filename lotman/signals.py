"""
Lotman signals.

stock_alert_triggered
    Sent after a risk sweep finds alerts.
    kwargs: alerts (list[lotman.reorder.Alert], most urgent first)
"""

from django.dispatch import Signal

stock_alert_triggered = Signal()
