"""
Core modules for Claude Usage Stats.

This package contains the usage models, deduplication, pricing,
aggregation, report caching and the usage service.
"""
