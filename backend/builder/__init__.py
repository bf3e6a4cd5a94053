"""
DevLoop Builder Package.

External build invocation.
Requires Python 3.11+.
"""

from builder.build_trigger import BuildRequest, BuildResult, BuildTrigger

__all__ = ["BuildRequest", "BuildResult", "BuildTrigger"]
