"""
qa-insights: data access for the test-execution analytics dashboard.

Serves test results, scenarios, historical runs and suite coverage from a
live search backend when it is reachable, and from a bundled local snapshot
otherwise.
"""

__version__ = "1.0.0"
