"""
Analyse de sessions
===================

Recherche de sessions similaires et détail d'une session (grappes d'alarmes,
temps de réponse opérateur).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from src.sessions.events import Event
from src.sessions.models import Session

# Poids du score de similarité
TAG_WEIGHT = 0.4
UNIT_BONUS = 0.2
ALARM_PATTERN_WEIGHT = 0.5
DESCRIPTION_WEIGHT = 0.3

ALARM_CLUSTER_GAP_MS = 60 * 1000
ALARM_FLOOD_FREQUENCY = 10


@dataclass(frozen=True)
class SimilarSession:
    """Session candidate et détail du score."""
    session: Session
    score: float
    matches: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session.id,
            'score': self.score,
            'matches': self.matches
        }


def _alarm_tags(session: Session) -> List[str]:
    return [e.tag for e in session.events if e.is_alarm]


def find_similar_sessions(
    target: Session,
    sessions: Sequence[Session],
    max_results: int = 10,
    min_similarity: float = 0.3,
    include_descriptions: bool = False
) -> List[SimilarSession]:
    """
    Classe les sessions les plus proches d'une session cible.
    
    Le score combine le recouvrement de repères, l'unité commune, le motif
    d'alarmes partagé et, en option, la concordance des descriptions.
    
    Args:
        target: Session de référence
        sessions: Sessions candidates (la cible est ignorée)
        max_results: Nombre maximal de résultats
        min_similarity: Score minimal retenu
        include_descriptions: Prendre en compte les descriptions de repères
        
    Returns:
        Liste triée par score décroissant
    """
    target_tags = set(target.tags)
    target_alarms = _alarm_tags(target)
    results = []
    
    for session in sessions:
        if session.id == target.id:
            continue
        
        score = 0.0
        matches: Dict[str, Any] = {}
        
        session_tags = set(session.tags)
        common_tags = target_tags & session_tags
        largest = max(len(target_tags), len(session_tags))
        tag_score = len(common_tags) / largest if largest else 0.0
        score += tag_score * TAG_WEIGHT
        matches['tags'] = {'common': sorted(common_tags), 'score': tag_score}
        
        if session.unit == target.unit:
            score += UNIT_BONUS
            matches['unit'] = True
        
        session_alarms = _alarm_tags(session)
        if target_alarms and session_alarms:
            session_alarm_set = set(session_alarms)
            common_alarms = [tag for tag in target_alarms if tag in session_alarm_set]
            pattern_score = len(common_alarms) / max(len(target_alarms), len(session_alarms))
            score += pattern_score * ALARM_PATTERN_WEIGHT
            matches['alarmPattern'] = {'common': common_alarms, 'score': pattern_score}
        
        if include_descriptions:
            described = [tag for tag in target.tag_descriptions if tag in session.tag_descriptions]
            if described:
                agreeing = 0
                for tag in described:
                    mine = target.tag_descriptions[tag]
                    theirs = session.tag_descriptions[tag]
                    if mine.desc1 == theirs.desc1 or mine.desc2 == theirs.desc2:
                        agreeing += 1
                desc_score = agreeing / len(described)
                score += desc_score * DESCRIPTION_WEIGHT
                matches['descriptions'] = {
                    'matches': agreeing,
                    'total': len(described),
                    'score': desc_score
                }
        
        if score >= min_similarity:
            results.append(SimilarSession(session=session, score=score, matches=matches))
    
    results.sort(key=lambda r: r.score, reverse=True)
    return results[:max_results]


@dataclass
class AlarmCluster:
    """Rafale d'alarmes rapprochées et actions opérateur associées."""
    alarms: List[Event]
    start_time: int
    end_time: int
    actions: List[Event] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'alarms': [e.to_dict() for e in self.alarms],
            'actions': [e.to_dict() for e in self.actions],
            'startTime': self.start_time,
            'endTime': self.end_time
        }


@dataclass(frozen=True)
class SessionDetails:
    """Vue détaillée d'une session."""
    session: Session
    alarm_clusters: List[AlarmCluster]
    avg_operator_response_time: Optional[float]
    has_alarm_flood: bool
    operator_effectiveness: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.session.to_dict()
        data.update({
            'alarmClusters': [c.to_dict() for c in self.alarm_clusters],
            'avgOperatorResponseTime': self.avg_operator_response_time,
            'hasAlarmFlood': self.has_alarm_flood,
            'operatorEffectiveness': self.operator_effectiveness
        })
        return data


def _cluster_alarms(events: Sequence[Event]) -> List[AlarmCluster]:
    clusters: List[AlarmCluster] = []
    current: Optional[AlarmCluster] = None
    
    for event in events:
        if event.is_alarm:
            if current is not None and event.timestamp - current.end_time < ALARM_CLUSTER_GAP_MS:
                current.alarms.append(event)
                current.end_time = event.timestamp
            else:
                if current is not None:
                    clusters.append(current)
                current = AlarmCluster(
                    alarms=[event], start_time=event.timestamp, end_time=event.timestamp
                )
        elif event.is_change and current is not None:
            current.actions.append(event)
    
    if current is not None:
        clusters.append(current)
    return clusters


def _response_times(events: Sequence[Event]) -> List[int]:
    """Délai entre chaque alarme et la première action qui la suit."""
    times = []
    for i, event in enumerate(events[:-1]):
        if not event.is_alarm:
            continue
        for later in events[i + 1:]:
            if later.is_change:
                times.append(later.timestamp - event.timestamp)
                break
    return times


def get_session_details(session_id: int, sessions: Sequence[Session]) -> Optional[SessionDetails]:
    """
    Détaille une session: grappes d'alarmes, réponse opérateur, inondation.
    
    Args:
        session_id: Identifiant de la session
        sessions: Sessions extraites
        
    Returns:
        SessionDetails, ou None si l'identifiant est inconnu
    """
    session = next((s for s in sessions if s.id == session_id), None)
    if session is None:
        return None
    
    response_times = _response_times(session.events)
    
    return SessionDetails(
        session=session,
        alarm_clusters=_cluster_alarms(session.events),
        avg_operator_response_time=float(np.mean(response_times)) if response_times else None,
        has_alarm_flood=session.alarm_frequency > ALARM_FLOOD_FREQUENCY,
        operator_effectiveness=(
            session.action_count / session.alarm_count if session.alarm_count > 0 else 0.0
        )
    )
