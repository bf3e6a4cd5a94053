"""
DevLoop Notifier Package.

Reload notifications to the target service.
Requires Python 3.11+.
"""

from notifier.http_client import create_http_client
from notifier.reload_notifier import ReloadNotifier

__all__ = ["ReloadNotifier", "create_http_client"]
