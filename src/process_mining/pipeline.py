"""
Pipeline Process Mining
=======================

Pipeline complet pour l'analyse des journaux d'alarmes: extraction des
sessions, réseau heuristique, variantes et KPIs.
"""

import pandas as pd
from dataclasses import replace
from typing import Any, Dict, List, Optional

from src.process_mining.config import MiningConfig
from src.process_mining.conformance import ProcessVariant, discover_process_variants
from src.process_mining.discovery import (
    DFGSummary, Filters, build_process_graph, create_dfg, discover_reference_heuristic
)
from src.process_mining.heuristic_net import HeuristicNet
from src.process_mining.matrix import DependencyMatrix, build_dependency_matrix
from src.sessions.config import WindowingConfig
from src.sessions.events import Event, activity_key, events_from_dataframe, events_from_records
from src.sessions.models import Session, SessionExtractionResult
from src.sessions.windowing import extract_sessions
from src.utils.logging import get_logger
from src.utils.metrics import describe

logger = get_logger('process_mining.pipeline')

CASE_COLUMN = 'case:concept:name'
ACTIVITY_COLUMN = 'concept:name'
TIMESTAMP_COLUMN = 'time:timestamp'
RESOURCE_COLUMN = 'org:resource'


class ProcessMiningPipeline:
    """
    Pipeline de Process Mining sur un lot d'événements d'alarme.
    
    Un pipeline correspond à un lot: les sessions et la matrice sont calculées
    à la demande puis réutilisées; rien n'est partagé entre deux pipelines.
    
    Fonctionnalités:
        - Chargement des événements (liste JSON ou DataFrame)
        - Extraction des sessions par unité
        - Réseau heuristique et résumé directly-follows
        - Variantes et conformance
        - KPIs et export vers PM4Py
    
    Example:
        >>> pipeline = ProcessMiningPipeline(records)
        >>> net = pipeline.build_process_graph({'dependencyThreshold': 0.6})
        >>> kpis = pipeline.compute_kpis()
    """
    
    def __init__(
        self,
        events: Any = None,
        windowing_config: Optional[WindowingConfig] = None,
        mining_config: Optional[MiningConfig] = None
    ):
        """
        Args:
            events: Événements (liste de dicts / Event, ou DataFrame)
            windowing_config: Paramètres de fenêtrage
            mining_config: Paramètres de mining par défaut
        """
        self.windowing_config = windowing_config or WindowingConfig()
        self.mining_config = mining_config or MiningConfig()
        
        self.events: List[Event] = []
        self._extraction: Optional[SessionExtractionResult] = None
        self._matrix: Optional[DependencyMatrix] = None
        
        if events is not None:
            self.load_events(events)
    
    def load_events(self, data: Any) -> 'ProcessMiningPipeline':
        """
        Charge et valide les événements.
        
        Args:
            data: Liste d'enregistrements ou DataFrame
            
        Returns:
            self
        """
        if isinstance(data, pd.DataFrame):
            self.events = events_from_dataframe(data)
        else:
            self.events = events_from_records(data)
        
        self._extraction = None
        self._matrix = None
        
        logger.info(f"{len(self.events)} événements chargés")
        return self
    
    def extract_sessions(self) -> SessionExtractionResult:
        """Extrait (une fois) les sessions et statistiques par unité."""
        if self._extraction is None:
            self._extraction = extract_sessions(self.events, self.windowing_config)
        return self._extraction
    
    @property
    def sessions(self) -> List[Session]:
        return self.extract_sessions().sessions
    
    def get_matrix(self) -> DependencyMatrix:
        """Matrice de dépendance des sessions extraites."""
        if self._matrix is None:
            self._matrix = build_dependency_matrix(self.sessions)
        return self._matrix
    
    def _config(self, filters: Filters) -> MiningConfig:
        if filters is None:
            return self.mining_config
        if isinstance(filters, MiningConfig):
            return filters
        return MiningConfig.from_filters(filters)
    
    def build_process_graph(self, filters: Filters = None) -> HeuristicNet:
        """
        Découvre le réseau heuristique.
        
        Args:
            filters: MiningConfig ou dict `filters` (configuration du pipeline si None)
            
        Returns:
            HeuristicNet
        """
        return build_process_graph(self.sessions, self._config(filters), matrix=self.get_matrix())
    
    def discover_variants(self, filters: Filters = None) -> List[ProcessVariant]:
        """Variantes de processus triées par fréquence."""
        return discover_process_variants(self.sessions, self._config(filters), matrix=self.get_matrix())
    
    def create_dfg(self, filters: Filters = None) -> DFGSummary:
        """Résumé directly-follows."""
        return create_dfg(self.sessions, self._config(filters), matrix=self.get_matrix())
    
    def get_dataframe(self) -> pd.DataFrame:
        """
        Retourne les événements des sessions retenues sous forme de DataFrame.
        
        Colonnes au format PM4Py: une session est un cas, une activité typée
        est un nom d'activité, l'unité est la ressource.
        """
        rows = []
        for session in self.sessions:
            for event in session.events:
                rows.append({
                    CASE_COLUMN: str(session.id),
                    ACTIVITY_COLUMN: activity_key(event).node_id,
                    TIMESTAMP_COLUMN: event.timestamp,
                    RESOURCE_COLUMN: session.unit,
                    'tag': event.tag,
                    'is_alarm': event.is_alarm,
                    'is_change': event.is_change,
                    'priority': event.priority
                })
        
        columns = [CASE_COLUMN, ACTIVITY_COLUMN, TIMESTAMP_COLUMN, RESOURCE_COLUMN,
                   'tag', 'is_alarm', 'is_change', 'priority']
        df = pd.DataFrame(rows, columns=columns)
        df[TIMESTAMP_COLUMN] = pd.to_datetime(df[TIMESTAMP_COLUMN], unit='ms', utc=True)
        return df
    
    def compute_kpis(self) -> Dict[str, float]:
        """
        Calcule les KPIs du journal d'alarmes.
        
        KPIs:
            - n_sessions: Nombre de sessions retenues
            - n_rejected_sessions: Sessions hors bornes
            - n_units: Nombre d'unités
            - n_activities: Nombre d'activités distinctes
            - duration_mean / duration_median / duration_p95: Durée des sessions (min)
            - avg_alarm_frequency: Alarmes par 10 minutes, moyenne des sessions
            - n_variants: Nombre de variantes
            - top_variant_pct: Part de la variante la plus fréquente
            - mean_conformance: Conformance moyenne pondérée par session
            
        Returns:
            Dict des KPIs
        """
        extraction = self.extract_sessions()
        sessions = extraction.sessions
        
        if not sessions:
            return {}
        
        kpis: Dict[str, float] = {
            'n_sessions': len(sessions),
            'n_rejected_sessions': extraction.rejected_session_count,
            'n_units': len(extraction.unit_statistics),
            'n_activities': self.get_matrix().activity_count,
        }
        
        durations = describe(s.duration / 60000 for s in sessions)
        kpis['duration_mean'] = durations['mean']
        kpis['duration_median'] = durations['median']
        kpis['duration_p95'] = durations['p95']
        
        frame = pd.DataFrame([
            {'unit': s.unit, 'alarm_frequency': s.alarm_frequency} for s in sessions
        ])
        kpis['avg_alarm_frequency'] = float(frame['alarm_frequency'].mean())
        
        variants = discover_process_variants(
            sessions,
            replace(self.mining_config, max_variants=len(sessions)),
            matrix=self.get_matrix()
        )
        counts = pd.Series([v.count for v in variants])
        conformances = pd.Series([v.conformance for v in variants])
        
        kpis['n_variants'] = len(variants)
        kpis['top_variant_pct'] = float(counts.iloc[0] / len(sessions) * 100)
        kpis['mean_conformance'] = float((counts * conformances).sum() / counts.sum())
        
        return kpis
    
    def to_event_log(self) -> Any:
        """Convertit les sessions en event log PM4Py."""
        import pm4py
        
        df = pm4py.format_dataframe(
            self.get_dataframe(),
            case_id=CASE_COLUMN,
            activity_key=ACTIVITY_COLUMN,
            timestamp_key=TIMESTAMP_COLUMN
        )
        return pm4py.convert_to_event_log(df)
    
    def discover_reference_model(self) -> Dict[str, Any]:
        """Réseau heuristique PM4Py sur les mêmes sessions, pour comparaison."""
        return discover_reference_heuristic(
            self.to_event_log(),
            dependency_threshold=self.mining_config.dependency_threshold,
            loop_two_threshold=self.mining_config.loop_two_threshold
        )
    
    def run(self, filters: Filters = None) -> Dict[str, Any]:
        """
        Exécute toute la chaîne et retourne les sorties sérialisables.
        
        Returns:
            Dict avec sessions, unitStatistics, graph, variants et dfg
        """
        extraction = self.extract_sessions()
        
        return {
            'sessions': [s.to_dict() for s in extraction.sessions],
            'unitStatistics': [u.to_dict() for u in extraction.unit_statistics],
            'graph': self.build_process_graph(filters).to_dict(),
            'variants': [v.to_dict() for v in self.discover_variants(filters)],
            'dfg': self.create_dfg(filters).to_dict()
        }
