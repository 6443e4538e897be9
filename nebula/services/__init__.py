"""
Services module for business logic separation.

This module contains the visitor tracking core: session dedup, geolocation,
the shared counter and its live notifications, the append-only visit log,
aggregation, and the dashboard refresh scheduler.
"""
