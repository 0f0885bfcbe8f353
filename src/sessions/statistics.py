"""
Statistiques par unité
======================
"""

from typing import Dict, List, Sequence

from src.sessions.models import Session, UnitStatistics
from src.utils.metrics import running_mean


def get_unit_statistics(sessions: Sequence[Session]) -> List[UnitStatistics]:
    """
    Agrège les sessions par unité, en une seule passe.
    
    La fréquence d'alarme moyenne est mise à jour de façon incrémentale.
    
    Args:
        sessions: Sessions finalisées
        
    Returns:
        Une entrée par unité, dans l'ordre de première apparition
    """
    stats_by_unit: Dict[str, UnitStatistics] = {}
    
    for session in sessions:
        stats = stats_by_unit.get(session.unit)
        if stats is None:
            stats = stats_by_unit[session.unit] = UnitStatistics(unit=session.unit)
        
        stats.session_count += 1
        stats.total_events += session.event_count
        stats.total_alarms += session.alarm_count
        stats.total_actions += session.action_count
        stats.total_duration += session.duration
        stats.avg_alarm_frequency = running_mean(
            stats.avg_alarm_frequency, stats.session_count, session.alarm_frequency
        )
    
    for stats in stats_by_unit.values():
        stats.avg_session_duration = (
            stats.total_duration / stats.session_count if stats.session_count > 0 else 0.0
        )
    
    return list(stats_by_unit.values())
