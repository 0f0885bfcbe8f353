"""
Variantes et conformance
========================

Regroupe les sessions par signature de transitions et mesure leur
conformance au processus principal (adjacence des relations causales).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from src.process_mining.config import MiningConfig
from src.process_mining.matrix import DependencyMatrix, build_dependency_matrix
from src.process_mining.relations import CausalRelation, find_causal_relations
from src.sessions.events import ActivityKey, activity_key
from src.sessions.models import Session
from src.utils.logging import get_logger
from src.utils.metrics import running_mean

logger = get_logger('process_mining.conformance')

MainProcess = Mapping[ActivityKey, Set[ActivityKey]]

DEVIATION_MARKER = '*'
SIGNATURE_SEPARATOR = ' → '


@dataclass(frozen=True)
class ProcessVariant:
    """Signature observée et agrégats des sessions qui la partagent."""
    signature: str
    events: Tuple[str, ...]
    count: int
    session_ids: Tuple[int, ...]
    avg_duration: float
    avg_alarms: float
    avg_actions: float
    conformance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'signature': self.signature,
            'events': list(self.events),
            'count': self.count,
            'sessionIds': list(self.session_ids),
            'avgDuration': self.avg_duration,
            'avgAlarms': self.avg_alarms,
            'avgActions': self.avg_actions,
            'conformance': self.conformance
        }


def build_main_process(causal_relations: Sequence[CausalRelation]) -> Dict[ActivityKey, Set[ActivityKey]]:
    """Adjacence source -> successeurs attendus."""
    main_process: Dict[ActivityKey, Set[ActivityKey]] = {}
    for rel in causal_relations:
        main_process.setdefault(rel.source, set()).add(rel.target)
    return main_process


def _transitions(session: Session) -> List[Tuple[ActivityKey, ActivityKey]]:
    keys = [activity_key(e) for e in session.events]
    return list(zip(keys, keys[1:]))


def calculate_conformance(session: Session, main_process: MainProcess) -> float:
    """
    Part des transitions de la session présentes dans le processus principal.
    
    Vaut 1 pour une session de moins de deux événements.
    """
    transitions = _transitions(session)
    if not transitions:
        return 1.0
    
    conforming = sum(1 for a, b in transitions if b in main_process.get(a, ()))
    return conforming / len(transitions)


def variant_signature(session: Session, main_process: MainProcess) -> str:
    """Libellés courts des activités, '*' après chaque transition hors modèle."""
    keys = [activity_key(e) for e in session.events]
    parts = []
    for i, key in enumerate(keys):
        parts.append(key.short_label)
        if i < len(keys) - 1 and keys[i + 1] not in main_process.get(key, ()):
            parts.append(DEVIATION_MARKER)
    return SIGNATURE_SEPARATOR.join(parts)


class _VariantAccumulator:

    def __init__(self, signature: str, session: Session, conformance: float):
        self.signature = signature
        self.events = tuple(activity_key(e).node_id for e in session.events)
        self.count = 1
        self.session_ids = [session.id]
        self.avg_duration = float(session.duration)
        self.avg_alarms = float(session.alarm_count)
        self.avg_actions = float(session.action_count)
        self.conformance = conformance

    def add(self, session: Session) -> None:
        self.count += 1
        self.session_ids.append(session.id)
        self.avg_duration = running_mean(self.avg_duration, self.count, session.duration)
        self.avg_alarms = running_mean(self.avg_alarms, self.count, session.alarm_count)
        self.avg_actions = running_mean(self.avg_actions, self.count, session.action_count)

    def freeze(self) -> ProcessVariant:
        return ProcessVariant(
            signature=self.signature,
            events=self.events,
            count=self.count,
            session_ids=tuple(self.session_ids),
            avg_duration=self.avg_duration,
            avg_alarms=self.avg_alarms,
            avg_actions=self.avg_actions,
            conformance=self.conformance
        )


def discover_process_variants(
    sessions: Sequence[Session],
    config: Optional[MiningConfig] = None,
    matrix: Optional[DependencyMatrix] = None
) -> List[ProcessVariant]:
    """
    Découvre les variantes de processus.
    
    Le processus principal est l'adjacence des relations causales au seuil
    de dépendance configuré. Deux sessions de même signature ont la même
    séquence d'activités et les mêmes écarts, donc la même conformance.
    
    Args:
        sessions: Sessions extraites
        config: Paramètres (MiningConfig par défaut si None)
        matrix: Matrice déjà calculée sur ces sessions (recalculée si None)
        
    Returns:
        Variantes triées par nombre d'occurrences décroissant, tronquées à max_variants
    """
    config = config or MiningConfig()
    if matrix is None:
        matrix = build_dependency_matrix(sessions)
    
    main_process = build_main_process(
        find_causal_relations(matrix, config.dependency_threshold)
    )
    
    variants: Dict[str, _VariantAccumulator] = {}
    for session in sessions:
        signature = variant_signature(session, main_process)
        accumulator = variants.get(signature)
        if accumulator is None:
            variants[signature] = _VariantAccumulator(
                signature, session, calculate_conformance(session, main_process)
            )
        else:
            accumulator.add(session)
    
    ranked = sorted(variants.values(), key=lambda v: v.count, reverse=True)
    logger.debug(f"{len(ranked)} variantes distinctes sur {len(sessions)} sessions")
    
    return [v.freeze() for v in ranked[:config.max_variants]]
