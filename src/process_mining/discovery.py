"""
Découverte de processus
=======================

Heuristics Miner sur les sessions d'alarmes, résumé directly-follows, et
découverte de référence avec PM4Py.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from src.process_mining.config import MiningConfig
from src.process_mining.heuristic_net import HeuristicNet, construct_heuristic_net
from src.process_mining.matrix import ActivityInfo, DependencyMatrix, build_dependency_matrix
from src.process_mining.relations import (
    CausalRelation, Loop, ParallelGroup,
    detect_loops, detect_parallel_activities, find_causal_relations
)
from src.sessions.models import Session
from src.utils.logging import get_logger

logger = get_logger('process_mining.discovery')

Filters = Union[MiningConfig, Mapping[str, Any], None]


def _as_config(filters: Filters) -> MiningConfig:
    if isinstance(filters, MiningConfig):
        return filters
    return MiningConfig.from_filters(filters)


def build_process_graph(
    sessions: Sequence[Session],
    filters: Filters = None,
    matrix: Optional[DependencyMatrix] = None
) -> HeuristicNet:
    """
    Découvre le réseau heuristique des sessions.
    
    Args:
        sessions: Sessions extraites
        filters: MiningConfig, ou dict `filters` JSON (dependencyThreshold,
            frequencyThreshold, showLoops, showParallel)
        matrix: Matrice déjà calculée sur ces sessions (recalculée si None)
        
    Returns:
        HeuristicNet
    """
    config = _as_config(filters)
    if matrix is None:
        matrix = build_dependency_matrix(sessions)
    
    causal_relations = find_causal_relations(matrix, config.dependency_threshold)
    parallel_groups = detect_parallel_activities(matrix, config) if config.show_parallel else []
    loops = detect_loops(matrix, causal_relations, config) if config.show_loops else []
    
    logger.info(
        f"Réseau heuristique: {matrix.activity_count} activités, "
        f"{len(causal_relations)} relations causales, {len(loops)} boucles, "
        f"{len(parallel_groups)} groupes parallèles"
    )
    
    return construct_heuristic_net(matrix, causal_relations, parallel_groups, loops, config)


@dataclass(frozen=True)
class DFGSummary:
    """Résumé directly-follows: activités, arêtes causales, bornes et statistiques."""
    activities: List[ActivityInfo]
    edges: List[CausalRelation]
    start_activities: Dict[str, int]
    end_activities: Dict[str, int]
    parallel_groups: List[ParallelGroup]
    loops: List[Loop]
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activities': [
                {
                    'name': a.key.node_id,
                    'tag': a.key.tag,
                    'type': a.key.kind.value,
                    'count': a.count,
                    'isAlarm': a.is_alarm
                }
                for a in self.activities
            ],
            'edges': [e.to_dict() for e in self.edges],
            'startActivities': dict(self.start_activities),
            'endActivities': dict(self.end_activities),
            'parallelActivities': [g.to_dict() for g in self.parallel_groups],
            'loops': [l.to_dict() for l in self.loops],
            'stats': dict(self.stats)
        }


def create_dfg(
    sessions: Sequence[Session],
    config: Optional[MiningConfig] = None,
    matrix: Optional[DependencyMatrix] = None
) -> DFGSummary:
    """
    Calcule le résumé directly-follows et ses statistiques.
    
    Args:
        sessions: Sessions extraites
        config: Paramètres (MiningConfig par défaut si None)
        matrix: Matrice déjà calculée sur ces sessions (recalculée si None)
        
    Returns:
        DFGSummary
    """
    config = config or MiningConfig()
    if matrix is None:
        matrix = build_dependency_matrix(sessions)
    
    causal_relations = find_causal_relations(matrix, config.dependency_threshold)
    parallel_groups = detect_parallel_activities(matrix, config)
    loops = detect_loops(matrix, causal_relations, config)
    activities = matrix.activities()
    
    most_frequent = max(activities, key=lambda a: a.count, default=None)
    strongest = max(causal_relations, key=lambda r: r.dependency, default=None)
    
    stats = {
        'total_activities': matrix.activity_count,
        'total_edges': len(causal_relations),
        'parallel_gateways': len(parallel_groups),
        'loops': len(loops),
        'most_frequent_activity': most_frequent.key.node_id if most_frequent else None,
        'most_frequent_count': most_frequent.count if most_frequent else 0,
        'strongest_dependency': strongest.to_dict() if strongest else None,
        'avg_activities_per_case': (
            float(np.mean([len(s.events) for s in sessions])) if sessions else 0.0
        )
    }
    
    return DFGSummary(
        activities=activities,
        edges=causal_relations,
        start_activities={k.node_id: c for k, c in matrix.start_activities().items()},
        end_activities={k.node_id: c for k, c in matrix.end_activities().items()},
        parallel_groups=parallel_groups,
        loops=loops,
        stats=stats
    )


def discover_reference_heuristic(
    event_log: Any,
    dependency_threshold: float = 0.5,
    and_threshold: float = 0.65,
    loop_two_threshold: float = 0.5
) -> Dict[str, Any]:
    """
    Découvre un réseau de référence avec le Heuristics Miner de PM4Py.
    
    Sert de point de comparaison pour le réseau maison.
    
    Args:
        event_log: Event log ou DataFrame au format PM4Py
        dependency_threshold: Seuil de dépendance
        and_threshold: Seuil pour les AND-splits
        loop_two_threshold: Seuil pour les boucles de longueur 2
        
    Returns:
        Dict avec heuristics_net et algorithm
    """
    import pm4py
    
    heu_net = pm4py.discover_heuristics_net(
        event_log,
        dependency_threshold=dependency_threshold,
        and_threshold=and_threshold,
        loop_two_threshold=loop_two_threshold
    )
    
    return {
        'heuristics_net': heu_net,
        'algorithm': 'heuristic'
    }
