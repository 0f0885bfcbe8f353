"""
Réseau heuristique
==================

Assemble les activités visibles et les relations causales en un graphe
rendable: nœuds START / END synthétiques, rattachement des activités isolées,
superposition des boucles.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set

from src.process_mining.config import DISTINCT_ACTIVITIES, MiningConfig
from src.process_mining.matrix import DependencyMatrix, DependencyRecord
from src.process_mining.relations import CausalRelation, Loop, ParallelGroup
from src.sessions.events import ActivityKey
from src.utils.logging import get_logger

logger = get_logger('process_mining.heuristic_net')

START_ID = '__START__'
END_ID = '__END__'


class NodeKind(str, Enum):
    START = 'Start'
    END = 'End'
    ACTIVITY = 'Activity'


class EdgeKind(str, Enum):
    CAUSAL = 'causal'
    BOUNDARY = 'boundary'
    INFERRED = 'inferred'
    LOOP = 'loop'


@dataclass(frozen=True)
class Node:
    """Nœud du réseau (activité visible ou borne synthétique)."""
    id: str
    label: str
    kind: NodeKind
    occurrence_count: int = 0
    is_alarm: bool = False
    activity: Optional[ActivityKey] = None
    priority: Optional[str] = None
    is_start: bool = False
    is_end: bool = False
    parallel_group: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'label': self.label,
            'kind': self.kind.value,
            'occurrenceCount': self.occurrence_count,
            'isAlarm': self.is_alarm,
            'isStart': self.is_start,
            'isEnd': self.is_end
        }
        if self.activity is not None:
            data['activityType'] = self.activity.kind.value
        if self.priority is not None:
            data['priority'] = self.priority
        if self.parallel_group is not None:
            data['parallelGroup'] = self.parallel_group
        return data


@dataclass(frozen=True)
class Edge:
    """Arête orientée; `confidence_band` ne sert qu'au rendu."""
    source: str
    target: str
    kind: EdgeKind
    absolute_frequency: int = 0
    dependency: Optional[float] = None
    frequency: Optional[float] = None
    confidence_band: Optional[str] = None
    inferred: bool = False
    loop_member: bool = False
    loop_frequency: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from': self.source,
            'to': self.target,
            'kind': self.kind.value,
            'absoluteFrequency': self.absolute_frequency,
            'dependency': self.dependency,
            'frequency': self.frequency,
            'confidenceBand': self.confidence_band,
            'inferred': self.inferred,
            'loopMember': self.loop_member,
            'loopFrequency': self.loop_frequency
        }


@dataclass(frozen=True)
class HeuristicNet:
    """Graphe de processus découvert, en lecture seule pour les consommateurs."""
    nodes: List[Node]
    edges: List[Edge]
    loops: List[Loop] = field(default_factory=list)
    parallel_groups: List[ParallelGroup] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def edges_between(self, source: str, target: str) -> List[Edge]:
        return [e for e in self.edges if e.source == source and e.target == target]

    @property
    def has_start_node(self) -> bool:
        return self.node(START_ID) is not None

    @property
    def has_end_node(self) -> bool:
        return self.node(END_ID) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodes': [n.to_dict() for n in self.nodes],
            'edges': [e.to_dict() for e in self.edges],
            'loops': [l.to_dict() for l in self.loops],
            'parallelGroups': [g.to_dict() for g in self.parallel_groups]
        }


def confidence_band(dependency: float, config: MiningConfig) -> str:
    if dependency > config.high_confidence:
        return 'high'
    if dependency > config.medium_confidence:
        return 'medium'
    return 'low'


def _visible_activities(
    matrix: DependencyMatrix,
    causal_relations: Sequence[CausalRelation],
    config: MiningConfig
) -> List[ActivityKey]:
    """
    Activités visibles, dans l'ordre d'internement.
    
    Le diviseur de la fréquence relative est le nombre d'activités distinctes
    (par défaut) ou le nombre total d'événements, selon la configuration.
    """
    if config.visibility_normalization == DISTINCT_ACTIVITIES:
        divisor = matrix.activity_count
    else:
        divisor = matrix.total_events
    
    visible: Set[ActivityKey] = set()
    if divisor > 0:
        for info in matrix.activities():
            if info.count / divisor >= config.frequency_threshold:
                visible.add(info.key)
    
    for rel in causal_relations:
        visible.add(rel.source)
        visible.add(rel.target)
    
    return [key for key in matrix.index if key in visible]


def _most_frequent(tally: Dict[ActivityKey, int], visible: Sequence[ActivityKey]) -> List[ActivityKey]:
    candidates = [a for a in visible if a in tally]
    if not candidates:
        return []
    return [max(candidates, key=lambda a: tally[a])]


def _edge_from_record(rec: DependencyRecord, kind: EdgeKind, config: MiningConfig, **extra) -> Edge:
    return Edge(
        source=rec.source.node_id,
        target=rec.target.node_id,
        kind=kind,
        absolute_frequency=rec.absolute_frequency,
        dependency=rec.dependency,
        frequency=rec.frequency,
        confidence_band=confidence_band(rec.dependency, config),
        **extra
    )


def construct_heuristic_net(
    matrix: DependencyMatrix,
    causal_relations: Sequence[CausalRelation],
    parallel_groups: Sequence[ParallelGroup] = (),
    loops: Sequence[Loop] = (),
    config: Optional[MiningConfig] = None
) -> HeuristicNet:
    """
    Construit le réseau heuristique.
    
    Étapes, dans l'ordre:
        1. Visibilité des activités (fréquence relative ou extrémité causale)
        2. Débuts / fins réels, sinon nœuds START / END synthétiques
        3. Câblage des bornes synthétiques
        4. Arêtes causales entre nœuds visibles
        5. Rattachement des nœuds isolés (arêtes inférées)
        6. Superposition des boucles (si show_loops)
    
    Args:
        matrix: Matrice de dépendance (activités et comptages début / fin)
        causal_relations: Relations causales retenues
        parallel_groups: Groupes parallèles détectés
        loops: Boucles détectées
        config: Paramètres (MiningConfig par défaut si None)
        
    Returns:
        HeuristicNet
    """
    config = config or MiningConfig()
    
    visible = _visible_activities(matrix, causal_relations, config)
    visible_set = set(visible)
    if not visible:
        return HeuristicNet(nodes=[], edges=[])

    incoming: Dict[ActivityKey, Set[ActivityKey]] = {a: set() for a in visible}
    outgoing: Dict[ActivityKey, Set[ActivityKey]] = {a: set() for a in visible}
    for rel in causal_relations:
        if rel.source in visible_set and rel.target in visible_set:
            outgoing[rel.source].add(rel.target)
            incoming[rel.target].add(rel.source)
    
    starts = matrix.start_activities()
    ends = matrix.end_activities()
    
    # 2. Débuts et fins réels
    true_starts = [a for a in visible if a in starts and not incoming[a]]
    true_ends = [a for a in visible if a in ends and not outgoing[a]]
    if not true_ends:
        true_ends = [a for a in visible if not outgoing[a]]
    if not true_starts:
        true_starts = _most_frequent(starts, visible)
    if not true_ends:
        true_ends = _most_frequent(ends, visible)
    
    needs_start = len(true_starts) != 1
    needs_end = len(true_ends) != 1
    
    group_of: Dict[ActivityKey, int] = {}
    if config.show_parallel:
        for g, group in enumerate(parallel_groups):
            for activity in group.activities:
                group_of.setdefault(activity, g)
    
    nodes: List[Node] = []
    if needs_start:
        nodes.append(Node(id=START_ID, label='START', kind=NodeKind.START))
    if needs_end:
        nodes.append(Node(id=END_ID, label='END', kind=NodeKind.END))
    
    for activity in visible:
        info = matrix.info(matrix.index.id_of(activity))
        nodes.append(Node(
            id=activity.node_id,
            label=activity.tag,
            kind=NodeKind.ACTIVITY,
            occurrence_count=info.count,
            is_alarm=info.is_alarm,
            activity=activity,
            priority=info.priority,
            is_start=activity in true_starts,
            is_end=activity in true_ends and not outgoing[activity],
            parallel_group=group_of.get(activity)
        ))
    
    edges: List[Edge] = []
    
    # 3. Bornes synthétiques
    if needs_start:
        targets = true_starts or [a for a in visible if not incoming[a]]
        for activity in targets:
            edges.append(Edge(
                source=START_ID, target=activity.node_id, kind=EdgeKind.BOUNDARY,
                absolute_frequency=starts.get(activity, 0)
            ))
    if needs_end:
        sources = true_ends or [a for a in visible if not outgoing[a]]
        for activity in sources:
            edges.append(Edge(
                source=activity.node_id, target=END_ID, kind=EdgeKind.BOUNDARY,
                absolute_frequency=ends.get(activity, 0)
            ))
    
    # 4. Arêtes causales
    for rel in causal_relations:
        if rel.source in visible_set and rel.target in visible_set:
            edges.append(Edge(
                source=rel.source.node_id,
                target=rel.target.node_id,
                kind=EdgeKind.CAUSAL,
                absolute_frequency=rel.absolute_frequency,
                dependency=rel.dependency,
                frequency=rel.frequency,
                confidence_band=confidence_band(rel.dependency, config)
            ))
    
    # 5. Nœuds isolés
    connected = {e.source for e in edges} | {e.target for e in edges}
    for activity in visible:
        if activity.node_id in connected:
            continue
        
        recovered: Optional[Edge] = None
        if activity in starts and needs_start:
            recovered = Edge(
                source=START_ID, target=activity.node_id, kind=EdgeKind.INFERRED,
                absolute_frequency=starts[activity], inferred=True
            )
        elif activity in ends and needs_end:
            recovered = Edge(
                source=activity.node_id, target=END_ID, kind=EdgeKind.INFERRED,
                absolute_frequency=ends[activity], inferred=True
            )
        else:
            best: Optional[DependencyRecord] = None
            best_dependency = 0.0
            for other in visible:
                if other == activity:
                    continue
                for rec in (matrix.get(activity, other), matrix.get(other, activity)):
                    if rec is not None and rec.dependency > best_dependency:
                        best = rec
                        best_dependency = rec.dependency
            if best is not None:
                recovered = _edge_from_record(best, EdgeKind.INFERRED, config, inferred=True)
        
        if recovered is not None:
            edges.append(recovered)
            connected.update((recovered.source, recovered.target))
    
    # 6. Boucles
    if config.show_loops:
        for loop in loops:
            for source, target in loop.edges():
                if source not in visible_set or target not in visible_set:
                    continue
                position = next(
                    (k for k, e in enumerate(edges)
                     if e.source == source.node_id and e.target == target.node_id),
                    None
                )
                if position is not None:
                    edges[position] = replace(
                        edges[position], loop_member=True, loop_frequency=loop.frequency
                    )
                    continue
                rec = matrix.get(source, target)
                if rec is not None:
                    edges.append(_edge_from_record(
                        rec, EdgeKind.LOOP, config, loop_member=True, loop_frequency=loop.frequency
                    ))
                else:
                    edges.append(Edge(
                        source=source.node_id, target=target.node_id, kind=EdgeKind.LOOP,
                        loop_member=True, loop_frequency=loop.frequency
                    ))
    
    logger.debug(
        f"Réseau: {len(nodes)} nœuds, {len(edges)} arêtes "
        f"(START={needs_start}, END={needs_end})"
    )
    
    return HeuristicNet(
        nodes=nodes,
        edges=edges,
        loops=list(loops) if config.show_loops else [],
        parallel_groups=list(parallel_groups) if config.show_parallel else []
    )
