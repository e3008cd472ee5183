"""Calculators for the four keys metrics."""

from .metrics import FourKeysMetrics, compute_metrics, get_performance_levels

__all__ = ["FourKeysMetrics", "compute_metrics", "get_performance_levels"]
