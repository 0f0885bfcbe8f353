"""
Modèles de sessions
===================

Valeurs immuables produites par l'extraction de sessions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from src.sessions.events import Event


@dataclass(frozen=True)
class TagDescription:
    """Dernière description connue d'un repère."""
    desc1: str = ''
    desc2: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {'desc1': self.desc1, 'desc2': self.desc2}


@dataclass(frozen=True)
class EventDescription:
    """Événement décrit, dans l'ordre de la session."""
    tag: str
    desc1: str
    desc2: str
    timestamp: int
    is_alarm: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tag': self.tag,
            'desc1': self.desc1,
            'desc2': self.desc2,
            'timestamp': self.timestamp,
            'isAlarm': self.is_alarm
        }


@dataclass(frozen=True)
class Session:
    """
    Séquence bornée d'événements d'une unité.
    
    Attributes:
        id: Rang de la session (0-based) après tri par start_time
        unit: Unité propriétaire
        events: Événements ordonnés par timestamp
        start_time / end_time: Premier et dernier timestamp (ms)
        duration: end_time - start_time (ms)
        alarm_count / action_count: Compteurs d'alarmes et d'actions
        alarm_frequency: Alarmes par 10 minutes (0 si durée nulle)
        tags: Repères distincts, dans l'ordre d'apparition
        units: Unités distinctes (une seule hors fusion)
        tag_descriptions: Dernière description par repère
        event_descriptions: Événements porteurs d'une description
    """
    id: int
    unit: str
    events: Tuple[Event, ...]
    start_time: int
    end_time: int
    duration: int
    alarm_count: int
    action_count: int
    alarm_frequency: float
    tags: Tuple[str, ...]
    units: Tuple[str, ...]
    tag_descriptions: Dict[str, TagDescription] = field(default_factory=dict)
    event_descriptions: Tuple[EventDescription, ...] = ()

    @property
    def event_count(self) -> int:
        return len(self.events)

    def to_dict(self, include_events: bool = True) -> Dict[str, Any]:
        """Convertit en dictionnaire (interface JSON)."""
        data = {
            'id': self.id,
            'unit': self.unit,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'duration': self.duration,
            'eventCount': self.event_count,
            'alarmCount': self.alarm_count,
            'actionCount': self.action_count,
            'alarmFrequency': self.alarm_frequency,
            'distinctTags': list(self.tags),
            'distinctUnits': list(self.units),
            'tagDescriptions': {tag: d.to_dict() for tag, d in self.tag_descriptions.items()},
            'eventDescriptions': [d.to_dict() for d in self.event_descriptions],
        }
        if include_events:
            data['events'] = [e.to_dict() for e in self.events]
        return data


@dataclass
class UnitStatistics:
    """Agrégats par unité, recalculés à chaque extraction."""
    unit: str
    session_count: int = 0
    total_events: int = 0
    total_alarms: int = 0
    total_actions: int = 0
    total_duration: int = 0
    avg_session_duration: float = 0.0
    avg_alarm_frequency: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'unit': self.unit,
            'sessionCount': self.session_count,
            'totalEvents': self.total_events,
            'totalAlarms': self.total_alarms,
            'totalActions': self.total_actions,
            'totalDuration': self.total_duration,
            'avgSessionDuration': self.avg_session_duration,
            'avgAlarmFrequency': self.avg_alarm_frequency
        }


@dataclass(frozen=True)
class SessionExtractionResult:
    """Résultat d'une extraction: sessions retenues et statistiques par unité."""
    sessions: List[Session]
    unit_statistics: List[UnitStatistics]
    rejected_session_count: int = 0
    rejected_event_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessions': [s.to_dict() for s in self.sessions],
            'unitStatistics': [u.to_dict() for u in self.unit_statistics],
            'rejectedSessionCount': self.rejected_session_count,
            'rejectedEventCount': self.rejected_event_count
        }
