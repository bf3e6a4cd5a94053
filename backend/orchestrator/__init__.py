"""
DevLoop Orchestrator Package.

Watch session coordination and the command line entry point.
Requires Python 3.11+.
"""

from orchestrator.watch_orchestrator import TeardownError, WatchOrchestrator

__all__ = ["TeardownError", "WatchOrchestrator"]
