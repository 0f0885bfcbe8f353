"""
Utilitaires AlarmFlow
=====================

Modules utilitaires pour logging et métriques.
"""

from src.utils.logging import setup_logging, get_logger
from src.utils.metrics import running_mean, describe, format_metrics

__all__ = [
    "setup_logging",
    "get_logger",
    "running_mean",
    "describe",
    "format_metrics",
]
