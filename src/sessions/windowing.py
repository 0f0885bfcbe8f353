"""
Extraction de sessions
======================

Découpe un flux d'événements non ordonné en sessions bornées par unité.

Une fenêtre est ouverte par unité simultanément: l'horloge de timeout d'une
unité n'avance qu'avec ses propres événements, si bien que des événements
d'autres unités intercalés ne ferment jamais sa session.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from src.sessions.config import MS_PER_MINUTE, WindowingConfig
from src.sessions.events import Event, events_from_records, sort_events
from src.sessions.models import (
    EventDescription, Session, SessionExtractionResult, TagDescription
)
from src.sessions.statistics import get_unit_statistics
from src.utils.logging import get_logger

logger = get_logger('sessions.windowing')


class _OpenSession:
    """Session en cours de construction, propriété exclusive du fenêtrage."""

    def __init__(self, unit: str, first: Event):
        self.unit = unit
        self.events: List[Event] = []
        self.start_time = first.timestamp
        self.end_time = first.timestamp
        self.alarms = 0
        self.actions = 0
        self.tags: Dict[str, None] = {}
        self.descriptions: Dict[str, TagDescription] = {}
        self.event_descriptions: List[EventDescription] = []

    def expired_by(self, event: Event, config: WindowingConfig) -> bool:
        gap = event.timestamp - self.end_time
        span = event.timestamp - self.start_time
        return gap > config.timeout_ms or span > config.max_duration_ms

    def add(self, event: Event) -> None:
        self.events.append(event)
        self.end_time = event.timestamp

        if event.is_alarm:
            self.alarms += 1
        if event.is_change:
            self.actions += 1
        self.tags[event.tag] = None

        if event.desc1 or event.desc2:
            desc1 = event.desc1 or ''
            desc2 = event.desc2 or ''
            self.descriptions[event.tag] = TagDescription(desc1, desc2)
            self.event_descriptions.append(EventDescription(
                tag=event.tag,
                desc1=desc1,
                desc2=desc2,
                timestamp=event.timestamp,
                is_alarm=event.is_alarm
            ))

    def finalize(self, config: WindowingConfig) -> Optional[Session]:
        """Fige la session, ou None si elle sort des bornes min/max."""
        count = len(self.events)
        if not config.min_events <= count <= config.max_events:
            return None

        duration = self.end_time - self.start_time
        duration_minutes = duration / MS_PER_MINUTE
        alarm_frequency = (self.alarms / duration_minutes) * 10 if duration_minutes > 0 else 0.0

        return Session(
            id=-1,
            unit=self.unit,
            events=tuple(self.events),
            start_time=self.start_time,
            end_time=self.end_time,
            duration=duration,
            alarm_count=self.alarms,
            action_count=self.actions,
            alarm_frequency=alarm_frequency,
            tags=tuple(self.tags),
            units=(self.unit,),
            tag_descriptions=dict(self.descriptions),
            event_descriptions=tuple(self.event_descriptions)
        )


def split_sessions(
    events: List[Event],
    config: Optional[WindowingConfig] = None
) -> Tuple[List[Session], int, int]:
    """
    Fenêtrage proprement dit, sur des événements déjà validés.
    
    Args:
        events: Événements dans un ordre quelconque
        config: Paramètres de fenêtrage
        
    Returns:
        Tuple (sessions triées par start_time, sessions rejetées, événements rejetés)
    """
    config = config or WindowingConfig()
    
    finalized: List[Session] = []
    rejected_sessions = 0
    rejected_events = 0
    
    def close(open_session: _OpenSession) -> None:
        nonlocal rejected_sessions, rejected_events
        session = open_session.finalize(config)
        if session is None:
            rejected_sessions += 1
            rejected_events += len(open_session.events)
        else:
            finalized.append(session)
    
    active: Dict[str, _OpenSession] = {}
    
    for event in sort_events(events):
        unit = event.unit or config.default_unit
        current = active.get(unit)
        
        if current is not None and current.expired_by(event, config):
            close(current)
            current = None
        
        if current is None:
            current = _OpenSession(unit, event)
            active[unit] = current
        
        current.add(event)
    
    # Fin du flux: toutes les fenêtres encore ouvertes sont closes
    for open_session in active.values():
        close(open_session)
    
    finalized.sort(key=lambda s: s.start_time)
    sessions = [replace(session, id=index) for index, session in enumerate(finalized)]
    
    return sessions, rejected_sessions, rejected_events


def extract_sessions(
    data: Any,
    config: Optional[WindowingConfig] = None
) -> SessionExtractionResult:
    """
    Extrait les sessions par unité et les statistiques associées.
    
    Args:
        data: Liste d'événements (dicts JSON ou Event)
        config: Paramètres de fenêtrage (valeurs par défaut si None)
        
    Returns:
        SessionExtractionResult
        
    Raises:
        InvalidInputError: entrée non liste ou événement sans timestamp / tag
    """
    events = events_from_records(data)
    sessions, rejected_sessions, rejected_events = split_sessions(events, config)
    
    logger.info(
        f"{len(sessions)} sessions extraites de {len(events)} événements "
        f"({rejected_sessions} rejetées, {rejected_events} événements hors bornes)"
    )
    
    return SessionExtractionResult(
        sessions=sessions,
        unit_statistics=get_unit_statistics(sessions),
        rejected_session_count=rejected_sessions,
        rejected_event_count=rejected_events
    )
