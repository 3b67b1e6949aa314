"""Prometheus metrics for fill runs and alerts."""
