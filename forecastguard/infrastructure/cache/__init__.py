"""Cache Store Implementation.

Provides the durable, atomically written single-record cache file used by
the forecast cache.
Bounded Context: Cache Management
"""
