"""
AlarmFlow
=========

Découverte de la structure opérationnelle à partir des journaux d'alarmes
industriels: sessions par unité, réseau heuristique, variantes et conformance.

Modules:
    - sessions: Validation des événements et fenêtrage par unité
    - process_mining: Heuristics Miner, variantes, pipeline
    - utils: Utilitaires (logging, métriques)

Usage:
    >>> from src import extract_sessions, build_process_graph
    >>> 
    >>> result = extract_sessions(records)
    >>> net = build_process_graph(result.sessions, {'dependencyThreshold': 0.5})
"""

__version__ = "1.0.0"
__license__ = "MIT"

from src.exceptions import AlarmFlowError, ConfigurationError, InvalidInputError
from src.sessions import WindowingConfig, extract_sessions
from src.process_mining import (
    MiningConfig, ProcessMiningPipeline, build_process_graph, discover_process_variants
)

__all__ = [
    "AlarmFlowError",
    "ConfigurationError",
    "InvalidInputError",
    "WindowingConfig",
    "extract_sessions",
    "MiningConfig",
    "ProcessMiningPipeline",
    "build_process_graph",
    "discover_process_variants",
    "__version__",
]
