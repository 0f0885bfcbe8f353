"""
Relations entre activités
=========================

Filtrage causal, détection du parallélisme et des boucles à partir de la
matrice de dépendance.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from src.exceptions import ConfigurationError
from src.process_mining.config import MiningConfig, is_number
from src.process_mining.matrix import DependencyMatrix
from src.sessions.events import ActivityKey
from src.utils.logging import get_logger

logger = get_logger('process_mining.relations')

CYCLE = 'cycle'
LENGTH_TWO = 'length_two'


@dataclass(frozen=True)
class CausalRelation:
    """Arête causale retenue au-dessus du seuil de dépendance."""
    source: ActivityKey
    target: ActivityKey
    dependency: float
    frequency: float
    absolute_frequency: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from': self.source.node_id,
            'to': self.target.node_id,
            'dependency': self.dependency,
            'frequency': self.frequency,
            'absoluteFrequency': self.absolute_frequency
        }


@dataclass(frozen=True)
class ParallelGroup:
    """Activités exécutées sans ordre préférentiel (au moins deux)."""
    activities: Tuple[ActivityKey, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {'activities': [a.node_id for a in self.activities]}


@dataclass(frozen=True)
class Loop:
    """Cycle d'activités et fréquence de son maillon le plus faible."""
    activities: Tuple[ActivityKey, ...]
    frequency: float
    kind: str = CYCLE

    @property
    def members(self) -> frozenset:
        return frozenset(self.activities)

    def edges(self) -> List[Tuple[ActivityKey, ActivityKey]]:
        """Couples consécutifs, arête de fermeture comprise."""
        acts = self.activities
        return [(acts[i], acts[(i + 1) % len(acts)]) for i in range(len(acts))]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activities': [a.node_id for a in self.activities],
            'frequency': self.frequency,
            'kind': self.kind
        }


def _check_ratio(name: str, value: float) -> None:
    if not is_number(value) or not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} doit être un nombre dans [0, 1] (reçu {value!r})")


def find_causal_relations(
    matrix: DependencyMatrix,
    threshold: float = 0.5
) -> List[CausalRelation]:
    """
    Retient les couples dont la dépendance atteint le seuil.
    
    Pas de réduction transitive: les arêtes redondantes sont conservées.
    
    Args:
        matrix: Matrice de dépendance
        threshold: Seuil de dépendance dans [0, 1]
        
    Returns:
        Liste de CausalRelation
    """
    _check_ratio('threshold', threshold)
    
    return [
        CausalRelation(
            source=rec.source,
            target=rec.target,
            dependency=rec.dependency,
            frequency=rec.frequency,
            absolute_frequency=rec.absolute_frequency
        )
        for rec in matrix.dependencies()
        if rec.dependency >= threshold
    ]


def is_length_two_loop(matrix: DependencyMatrix, i: int, j: int, threshold: float) -> bool:
    """Couple (i, j) observé dans les deux sens avec des motifs i j i / j i j."""
    if not (matrix.succession_count(i, j) > 0 and matrix.succession_count(j, i) > 0):
        return False
    return matrix.length_two_loop_measure(i, j) >= threshold


def detect_parallel_activities(
    matrix: DependencyMatrix,
    config: Optional[MiningConfig] = None
) -> List[ParallelGroup]:
    """
    Regroupe les activités concurrentes.
    
    Un couple {A, B} observé dans les deux sens est candidat si la moyenne des
    |dépendances| reste sous le plafond et si les deux fréquences dépassent le
    plancher. Les couples formant une boucle de longueur deux (motifs A B A)
    sont exclus: l'alternance stricte n'est pas du parallélisme.
    
    Args:
        matrix: Matrice de dépendance
        config: Seuils (MiningConfig par défaut si None)
        
    Returns:
        Groupes d'au moins deux activités
    """
    config = config or MiningConfig()
    dep = matrix.dependency
    freq = matrix.frequency
    groups: List[Set[int]] = []
    
    for p, q in matrix.reciprocal_pairs():
        i, j = int(matrix.sources[p]), int(matrix.targets[p])
        avg_abs = (abs(dep[p]) + abs(dep[q])) / 2
        if avg_abs >= config.parallel_dependency_ceiling:
            continue
        if not (freq[p] > config.parallel_min_frequency and freq[q] > config.parallel_min_frequency):
            continue
        if is_length_two_loop(matrix, i, j, config.loop_two_threshold):
            continue
        
        touching = [g for g in groups if i in g or j in g]
        merged = {i, j}.union(*touching)
        groups = [g for g in groups if not any(g is t for t in touching)]
        groups.append(merged)
    
    groups.sort(key=min)
    result = [
        ParallelGroup(tuple(matrix.index.key(k) for k in sorted(group)))
        for group in groups
        if len(group) >= 2
    ]
    
    logger.debug(f"{len(result)} groupes parallèles")
    return result


def _can_reach(target: int, reverse: Dict[int, List[int]]) -> Set[int]:
    """Nœuds depuis lesquels `target` est atteignable."""
    reached = {target}
    queue = deque([target])
    while queue:
        node = queue.popleft()
        for prev in reverse.get(node, ()):
            if prev not in reached:
                reached.add(prev)
                queue.append(prev)
    return reached


def _simple_cycles(
    adjacency: Dict[int, List[int]],
    n: int,
    limit: Optional[int] = None
) -> List[List[int]]:
    """
    Cycles élémentaires par parcours en profondeur à pile explicite.
    
    Depuis chaque nœud de départ, le parcours se limite aux nœuds d'indice
    supérieur ou égal qui peuvent revenir au départ. L'énumération s'arrête
    dès que `limit` cycles ont été trouvés.
    """
    reverse: Dict[int, List[int]] = {}
    for src, targets in adjacency.items():
        for dst in targets:
            reverse.setdefault(dst, []).append(src)
    
    cycles = []
    on_path = np.zeros(n, dtype=bool)
    
    for start in adjacency:
        allowed = {k for k in _can_reach(start, reverse) if k >= start}
        
        path = [start]
        on_path[start] = True
        stack = [iter(adjacency.get(start, ()))]
        
        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                stack.pop()
                on_path[path.pop()] = False
                continue
            if nxt not in allowed:
                continue
            if on_path[nxt]:
                cycle = path[path.index(nxt):]
                if len(cycle) >= 2:
                    cycles.append(cycle)
                    if limit is not None and len(cycles) >= limit:
                        return cycles
                continue
            path.append(nxt)
            on_path[nxt] = True
            stack.append(iter(adjacency.get(nxt, ())))
    
    return cycles


def detect_loops(
    matrix: DependencyMatrix,
    causal_relations: Sequence[CausalRelation],
    config: Optional[MiningConfig] = None
) -> List[Loop]:
    """
    Détecte les boucles du modèle causal.
    
    Deux sources: les cycles du graphe des relations causales, et les boucles
    de longueur deux révélées par les motifs A B A (invisibles dans le graphe
    causal puisque dep(A, B) = -dep(B, A)). Les cycles sont dédupliqués par
    ensemble de membres. La fréquence d'une boucle est le plus petit comptage
    de succession le long du cycle, rapporté au nombre de sessions.
    
    Args:
        matrix: Matrice de dépendance
        causal_relations: Arêtes causales retenues
        config: Seuils (MiningConfig par défaut si None)
        
    Returns:
        Boucles dont la fréquence dépasse le plancher de bruit
    """
    config = config or MiningConfig()
    total = matrix.total_sessions
    if total == 0:
        return []
    
    adjacency: Dict[int, List[int]] = {}
    for rel in causal_relations:
        src = matrix.index.id_of(rel.source)
        dst = matrix.index.id_of(rel.target)
        if src is None or dst is None:
            continue
        adjacency.setdefault(src, []).append(dst)
    
    cycles = _simple_cycles(adjacency, matrix.activity_count, config.max_loops)
    if config.max_loops is not None and len(cycles) >= config.max_loops:
        logger.warning(
            f"Énumération des cycles interrompue à {config.max_loops} cycles "
            f"(max_loops); boucles incomplètes"
        )
    candidates: List[Tuple[List[int], str]] = [(cycle, CYCLE) for cycle in cycles]

    for p, _ in matrix.reciprocal_pairs():
        i, j = int(matrix.sources[p]), int(matrix.targets[p])
        if is_length_two_loop(matrix, i, j, config.loop_two_threshold):
            candidates.append(([i, j], LENGTH_TWO))
    
    seen: Set[frozenset] = set()
    loops = []
    for cycle, kind in candidates:
        members = frozenset(cycle)
        if members in seen:
            continue
        seen.add(members)
        
        weakest = min(
            matrix.succession_count(cycle[k], cycle[(k + 1) % len(cycle)])
            for k in range(len(cycle))
        )
        frequency = weakest / total
        if frequency > config.min_loop_frequency:
            loops.append(Loop(
                activities=tuple(matrix.index.key(k) for k in cycle),
                frequency=frequency,
                kind=kind
            ))
    
    logger.debug(f"{len(loops)} boucles retenues sur {len(seen)} candidates")
    return loops
