"""API Resilience Implementations.

Contains services for handling API rate limits, error classification and
retries with exponential backoff and jitter.
Bounded Context: API Resilience
"""
