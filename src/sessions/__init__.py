"""
Module Sessions
===============

Découpage des journaux d'alarmes en sessions par unité.

Fonctionnalités:
    - Validation des événements (pydantic)
    - Identification des activités (alarme / action / événement)
    - Fenêtrage concurrent par unité
    - Statistiques par unité
    - Sessions similaires et détail de session

Usage:
    >>> from src.sessions import extract_sessions
    >>> 
    >>> result = extract_sessions(records)
    >>> print(len(result.sessions), result.unit_statistics[0].avg_alarm_frequency)
"""

from src.sessions.config import WindowingConfig
from src.sessions.events import (
    ActivityKey, ActivityKind, Event, activity_key, events_from_dataframe, events_from_records
)
from src.sessions.models import Session, SessionExtractionResult, UnitStatistics
from src.sessions.windowing import extract_sessions, split_sessions
from src.sessions.statistics import get_unit_statistics
from src.sessions.similarity import find_similar_sessions, get_session_details

__all__ = [
    "WindowingConfig",
    "ActivityKey",
    "ActivityKind",
    "Event",
    "activity_key",
    "events_from_dataframe",
    "events_from_records",
    "Session",
    "SessionExtractionResult",
    "UnitStatistics",
    "extract_sessions",
    "split_sessions",
    "get_unit_statistics",
    "find_similar_sessions",
    "get_session_details",
]
