"""
Module Process Mining
=====================

Heuristics Miner pour les sessions d'alarmes.

Fonctionnalités:
    - Matrice de dépendance (succession directe, mesure de dépendance)
    - Relations causales, parallélisme, boucles
    - Réseau heuristique avec bornes START / END synthétiques
    - Variantes et conformance
    - Pipeline et interopérabilité PM4Py

Usage:
    >>> from src.process_mining import ProcessMiningPipeline
    >>> 
    >>> pipeline = ProcessMiningPipeline(records)
    >>> net = pipeline.build_process_graph()
    >>> variants = pipeline.discover_variants()
"""

from src.process_mining.config import MiningConfig
from src.process_mining.matrix import DependencyMatrix, build_dependency_matrix
from src.process_mining.relations import (
    CausalRelation, Loop, ParallelGroup,
    find_causal_relations, detect_parallel_activities, detect_loops
)
from src.process_mining.heuristic_net import HeuristicNet, Node, Edge, construct_heuristic_net
from src.process_mining.discovery import build_process_graph, create_dfg
from src.process_mining.conformance import (
    ProcessVariant, calculate_conformance, discover_process_variants
)
from src.process_mining.pipeline import ProcessMiningPipeline

__all__ = [
    "MiningConfig",
    "DependencyMatrix",
    "build_dependency_matrix",
    "CausalRelation",
    "Loop",
    "ParallelGroup",
    "find_causal_relations",
    "detect_parallel_activities",
    "detect_loops",
    "HeuristicNet",
    "Node",
    "Edge",
    "construct_heuristic_net",
    "build_process_graph",
    "create_dfg",
    "ProcessVariant",
    "calculate_conformance",
    "discover_process_variants",
    "ProcessMiningPipeline",
]
