"""
Matrice de dépendance
=====================

Comptages de succession directe et mesure de dépendance du Heuristics Miner:

    dep(A, B) = (|A>B| - |B>A|) / (|A>B| + |B>A| + 1)

Chaque activité distincte reçoit un indice entier stable (ordre de première
apparition). Les comptages par activité sont des vecteurs numpy denses; les
comptages par couple ne portent que sur les couples observés, alignés sur des
tableaux triés par clé (source, cible).
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from src.sessions.events import ActivityKey, activity_key
from src.sessions.models import Session
from src.utils.logging import get_logger

logger = get_logger('process_mining.matrix')


class ActivityIndex:
    """Internement des clés d'activité en indices 0..n-1."""

    def __init__(self):
        self._keys: List[ActivityKey] = []
        self._ids: Dict[ActivityKey, int] = {}

    def intern(self, key: ActivityKey) -> int:
        idx = self._ids.get(key)
        if idx is None:
            idx = self._ids[key] = len(self._keys)
            self._keys.append(key)
        return idx

    def id_of(self, key: ActivityKey) -> Optional[int]:
        return self._ids.get(key)

    def key(self, idx: int) -> ActivityKey:
        return self._keys[idx]

    def __contains__(self, key: object) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[ActivityKey]:
        return iter(self._keys)


@dataclass(frozen=True)
class ActivityInfo:
    """Fréquence et métadonnées d'une activité."""
    key: ActivityKey
    count: int
    is_alarm: bool
    priority: Optional[str] = None


@dataclass(frozen=True)
class DependencyRecord:
    """Mesures pour un couple ordonné d'activités distinctes."""
    source: ActivityKey
    target: ActivityKey
    dependency: float
    frequency: float
    absolute_frequency: int


class DependencyMatrix:
    """
    Matrice de dépendance, en lecture seule une fois construite.
    
    Seuls les couples observés sont stockés: la mémoire croît avec le nombre
    de couples distincts, pas avec le carré du nombre d'activités.
    
    Attributes:
        index: Internement des activités
        counts: Occurrences par activité
        start_counts / end_counts: Activités de début / fin de session
        sources / targets: Couples distincts observés (i != j), triés ligne par ligne
        succession: succession[p] = nombre de fois où targets[p] suit directement sources[p]
        reverse: Position du couple inverse (j, i), -1 s'il n'a jamais été observé
        dependency: Mesure de dépendance de chaque couple observé
        frequency: succession / total_sessions
        total_sessions: Nombre de sessions (normalisation des fréquences)
    """

    def __init__(
        self,
        index: ActivityIndex,
        counts: np.ndarray,
        start_counts: np.ndarray,
        end_counts: np.ndarray,
        sources: np.ndarray,
        targets: np.ndarray,
        succession: np.ndarray,
        length_two: Dict[Tuple[int, int], int],
        total_sessions: int,
        priorities: Sequence[Optional[str]]
    ):
        self.index = index
        self.counts = counts
        self.start_counts = start_counts
        self.end_counts = end_counts
        self.sources = sources
        self.targets = targets
        self.succession = succession
        self.total_sessions = total_sessions
        self._length_two = dict(length_two)
        self._priorities = list(priorities)
        
        n = len(index)
        keys = sources.astype(np.int64) * n + targets
        reverse_keys = targets.astype(np.int64) * n + sources
        if len(keys) > 0:
            position = np.minimum(np.searchsorted(keys, reverse_keys), len(keys) - 1)
            self.reverse = np.where(keys[position] == reverse_keys, position, -1)
        else:
            self.reverse = np.zeros(0, dtype=np.intp)
        
        s = succession.astype(float)
        r = np.where(self.reverse >= 0, s[self.reverse], 0.0)
        self.dependency = (s - r) / (s + r + 1.0)
        if total_sessions > 0:
            self.frequency = s / total_sessions
        else:
            self.frequency = np.zeros_like(s)
        
        self._positions: Dict[Tuple[int, int], int] = {
            pair: p for p, pair in enumerate(zip(sources.tolist(), targets.tolist()))
        }
        
        for array in (self.counts, self.start_counts, self.end_counts, self.sources,
                      self.targets, self.succession, self.reverse, self.dependency,
                      self.frequency):
            array.setflags(write=False)

    @property
    def activity_count(self) -> int:
        """Nombre d'activités distinctes."""
        return len(self.index)

    @property
    def pair_count(self) -> int:
        """Nombre de couples distincts observés."""
        return len(self.sources)

    @property
    def total_events(self) -> int:
        return int(self.counts.sum())

    def info(self, idx: int) -> ActivityInfo:
        key = self.index.key(idx)
        return ActivityInfo(
            key=key,
            count=int(self.counts[idx]),
            is_alarm=key.is_alarm,
            priority=self._priorities[idx]
        )

    def activities(self) -> List[ActivityInfo]:
        return [self.info(i) for i in range(self.activity_count)]

    def start_activities(self) -> Dict[ActivityKey, int]:
        return {self.index.key(i): int(c) for i, c in enumerate(self.start_counts) if c > 0}

    def end_activities(self) -> Dict[ActivityKey, int]:
        return {self.index.key(i): int(c) for i, c in enumerate(self.end_counts) if c > 0}

    def position(self, i: int, j: int) -> Optional[int]:
        """Position du couple (i, j) dans les tableaux alignés, None s'il n'a pas été observé."""
        return self._positions.get((i, j))

    def succession_count(self, i: int, j: int) -> int:
        p = self.position(i, j)
        return 0 if p is None else int(self.succession[p])

    def length_two_count(self, i: int, j: int) -> int:
        """Nombre de motifs i j i."""
        return self._length_two.get((i, j), 0)

    def _record_at(self, p: int) -> DependencyRecord:
        return DependencyRecord(
            source=self.index.key(int(self.sources[p])),
            target=self.index.key(int(self.targets[p])),
            dependency=float(self.dependency[p]),
            frequency=float(self.frequency[p]),
            absolute_frequency=int(self.succession[p])
        )

    def record(self, i: int, j: int) -> Optional[DependencyRecord]:
        """Mesures du couple (i, j), None s'il n'a jamais été observé."""
        p = self.position(i, j)
        if p is None:
            return None
        return self._record_at(p)

    def get(self, source: ActivityKey, target: ActivityKey) -> Optional[DependencyRecord]:
        i = self.index.id_of(source)
        j = self.index.id_of(target)
        if i is None or j is None:
            return None
        return self.record(i, j)

    def direct_succession(self, source: ActivityKey, target: ActivityKey) -> int:
        i = self.index.id_of(source)
        j = self.index.id_of(target)
        if i is None or j is None:
            return 0
        return self.succession_count(i, j)

    def dependencies(self) -> Iterator[DependencyRecord]:
        """Couples observés, parcourus ligne par ligne."""
        for p in range(self.pair_count):
            yield self._record_at(p)

    def reciprocal_pairs(self) -> Iterator[Tuple[int, int]]:
        """Positions (p, q) des couples observés dans les deux sens, source < cible en p."""
        both = (self.reverse >= 0) & (self.sources < self.targets)
        for p in np.nonzero(both)[0].tolist():
            yield p, int(self.reverse[p])

    def length_two_loop_measure(self, i: int, j: int) -> float:
        """(|i j i| + |j i j|) / (|i j i| + |j i j| + 1)."""
        patterns = float(self.length_two_count(i, j) + self.length_two_count(j, i))
        return patterns / (patterns + 1.0)

    def to_dataframe(self) -> pd.DataFrame:
        """Table des couples observés (une ligne par couple ordonné)."""
        rows = [
            {
                'from': rec.source.node_id,
                'to': rec.target.node_id,
                'dependency': rec.dependency,
                'frequency': rec.frequency,
                'absolute_frequency': rec.absolute_frequency
            }
            for rec in self.dependencies()
        ]
        return pd.DataFrame(rows, columns=['from', 'to', 'dependency', 'frequency', 'absolute_frequency'])


def _unique_pairs(first: np.ndarray, second: np.ndarray, n: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Couples distincts (first != second) triés par clé, avec leurs comptages."""
    mask = first != second
    keys, counts = np.unique(first[mask].astype(np.int64) * n + second[mask], return_counts=True)
    if len(keys) == 0:
        empty = np.zeros(0, dtype=np.intp)
        return empty, empty.copy(), np.zeros(0, dtype=np.int64)
    return (keys // n).astype(np.intp), (keys % n).astype(np.intp), counts.astype(np.int64)


def build_dependency_matrix(sessions: Sequence[Session]) -> DependencyMatrix:
    """
    Construit la matrice de dépendance à partir des sessions.
    
    Args:
        sessions: Sessions extraites
        
    Returns:
        DependencyMatrix
    """
    index = ActivityIndex()
    priorities: List[Optional[str]] = []
    sequences: List[np.ndarray] = []
    
    for session in sessions:
        if not session.events:
            continue
        ids = []
        for event in session.events:
            idx = index.intern(activity_key(event))
            if idx == len(priorities):
                priorities.append(None)
            if event.priority is not None:
                priorities[idx] = event.priority
            ids.append(idx)
        sequences.append(np.asarray(ids, dtype=np.intp))
    
    n = len(index)
    empty = np.zeros(0, dtype=np.intp)
    
    def concat(parts: List[np.ndarray]) -> np.ndarray:
        return np.concatenate(parts) if parts else empty
    
    counts = np.bincount(concat(sequences), minlength=n).astype(np.int64)
    start_counts = np.bincount(concat([seq[:1] for seq in sequences]), minlength=n).astype(np.int64)
    end_counts = np.bincount(concat([seq[-1:] for seq in sequences]), minlength=n).astype(np.int64)
    
    sources, targets, succession = _unique_pairs(
        concat([seq[:-1] for seq in sequences]),
        concat([seq[1:] for seq in sequences]),
        n
    )
    
    # Motifs i j i avec i != j
    firsts, middles = [], []
    for seq in sequences:
        if len(seq) >= 3:
            first, middle, last = seq[:-2], seq[1:-1], seq[2:]
            mask = first == last
            firsts.append(first[mask])
            middles.append(middle[mask])
    l2_sources, l2_targets, l2_counts = _unique_pairs(concat(firsts), concat(middles), n)
    length_two = {
        (i, j): c for i, j, c in zip(l2_sources.tolist(), l2_targets.tolist(), l2_counts.tolist())
    }
    
    matrix = DependencyMatrix(
        index=index,
        counts=counts,
        start_counts=start_counts,
        end_counts=end_counts,
        sources=sources,
        targets=targets,
        succession=succession,
        length_two=length_two,
        total_sessions=len(sessions),
        priorities=priorities
    )
    
    logger.debug(
        f"Matrice: {n} activités, {matrix.pair_count} couples observés, "
        f"{len(sessions)} sessions"
    )
    return matrix
