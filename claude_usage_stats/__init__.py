"""
Claude Usage Stats.

Cost and token reports built from local Claude usage logs.
"""

__version__ = "0.1.0"
