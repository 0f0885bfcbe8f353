"""
Tests d'intégration AlarmFlow
=============================
"""

import pytest
import numpy as np
import pandas as pd
import sys
from pathlib import Path


@pytest.fixture
def generated_log():
    """Journal synthétique du script de démonstration."""
    sys.path.insert(0, str(Path(__file__).parent.parent / 'scripts'))
    from run_mining import generate_alarm_log

    return generate_alarm_log(n_episodes=60, n_units=3, seed=7)


# Tests Pipeline
class TestPipeline:
    """Tests pour le pipeline de process mining."""

    def test_pipeline_init(self):
        """Test initialisation pipeline."""
        from src.process_mining import MiningConfig, ProcessMiningPipeline

        pipeline = ProcessMiningPipeline()

        assert pipeline.events == []
        assert pipeline.sessions == []
        assert pipeline.mining_config == MiningConfig()

    def test_kpis_empty(self):
        """Test KPIs sur log vide."""
        from src.process_mining import ProcessMiningPipeline

        pipeline = ProcessMiningPipeline([])

        assert pipeline.compute_kpis() == {}

    def test_kpis(self, random_records):
        """Test KPIs sur un journal aléatoire."""
        from src.process_mining import ProcessMiningPipeline

        pipeline = ProcessMiningPipeline(random_records)
        kpis = pipeline.compute_kpis()

        assert kpis['n_sessions'] == len(pipeline.sessions)
        assert kpis['n_units'] == 3
        assert kpis['n_activities'] == pipeline.get_matrix().activity_count
        assert kpis['duration_median'] <= kpis['duration_p95']
        assert 0 < kpis['top_variant_pct'] <= 100
        assert 0.0 <= kpis['mean_conformance'] <= 1.0

    def test_matrix_cached(self, random_records):
        """Test matrice réutilisée puis invalidée au rechargement."""
        from src.process_mining import ProcessMiningPipeline

        pipeline = ProcessMiningPipeline(random_records)
        matrix = pipeline.get_matrix()

        assert pipeline.get_matrix() is matrix

        pipeline.load_events(random_records[:50])
        assert pipeline.get_matrix() is not matrix

    def test_load_dataframe(self, random_records):
        """Test chargement depuis un DataFrame."""
        from src.process_mining import ProcessMiningPipeline

        from_list = ProcessMiningPipeline(random_records)
        from_frame = ProcessMiningPipeline(pd.DataFrame(random_records))

        assert len(from_frame.events) == len(random_records)
        assert [s.events for s in from_frame.sessions] == [s.events for s in from_list.sessions]

    def test_get_dataframe(self, random_records):
        """Test export au format PM4Py."""
        from src.process_mining import ProcessMiningPipeline
        from src.process_mining.pipeline import ACTIVITY_COLUMN, CASE_COLUMN, TIMESTAMP_COLUMN

        pipeline = ProcessMiningPipeline(random_records)
        df = pipeline.get_dataframe()

        assert len(df) == sum(s.event_count for s in pipeline.sessions)
        assert df[CASE_COLUMN].nunique() == len(pipeline.sessions)
        assert pd.api.types.is_datetime64_any_dtype(df[TIMESTAMP_COLUMN])
        assert df[ACTIVITY_COLUMN].str.match(r'^\[[ACE]\] ').all()

    def test_run(self, generated_log):
        """Test chaîne complète sérialisable."""
        from src.process_mining import ProcessMiningPipeline

        result = ProcessMiningPipeline(generated_log).run({'dependencyThreshold': 0.6})

        assert set(result) == {'sessions', 'unitStatistics', 'graph', 'variants', 'dfg'}
        assert result['sessions']
        assert result['graph']['nodes']
        assert result['variants'][0]['count'] >= result['variants'][-1]['count']
        assert result['dfg']['stats']['total_activities'] > 0

    def test_invalid_filters(self, generated_log):
        """Test filtres hors bornes."""
        from src.exceptions import ConfigurationError
        from src.process_mining import ProcessMiningPipeline

        pipeline = ProcessMiningPipeline(generated_log)

        with pytest.raises(ConfigurationError):
            pipeline.build_process_graph({'dependencyThreshold': 2})

    def test_invalid_input(self):
        """Test entrée invalide."""
        from src.exceptions import InvalidInputError
        from src.process_mining import ProcessMiningPipeline

        with pytest.raises(InvalidInputError):
            ProcessMiningPipeline({'timestamp': 0, 'tag': 'A'})


# Tests interopérabilité PM4Py
@pytest.mark.integration
class TestPM4Py:
    """Tests d'export vers PM4Py."""

    def test_event_log(self, generated_log):
        """Test conversion en event log."""
        pytest.importorskip('pm4py')
        from src.process_mining import ProcessMiningPipeline

        pipeline = ProcessMiningPipeline(generated_log)
        log = pipeline.to_event_log()

        assert len(log) == len(pipeline.sessions)

    @pytest.mark.slow
    def test_reference_model(self, generated_log):
        """Test réseau heuristique de référence."""
        pytest.importorskip('pm4py')
        from src.process_mining import ProcessMiningPipeline

        result = ProcessMiningPipeline(generated_log).discover_reference_model()

        assert result['algorithm'] == 'heuristic'
        assert result['heuristics_net'] is not None


# Tests utils
class TestUtils:
    """Tests pour les utilitaires."""

    def test_running_mean(self):
        """Test moyenne incrémentale."""
        from src.utils.metrics import running_mean

        avg = 0.0
        values = [3.0, 5.0, 10.0]
        for n, value in enumerate(values, start=1):
            avg = running_mean(avg, n, value)

        assert avg == pytest.approx(np.mean(values))

    def test_describe(self):
        """Test statistiques descriptives."""
        from src.utils.metrics import describe

        stats = describe([1, 2, 3, 4])

        assert stats['mean'] == pytest.approx(2.5)
        assert stats['median'] == pytest.approx(2.5)
        assert stats['min'] == 1.0 and stats['max'] == 4.0
        assert describe([]) == {}

    def test_format_metrics(self):
        """Test formatage métriques."""
        from src.utils.metrics import format_metrics

        formatted = format_metrics({'n_sessions': 12, 'mean_conformance': 0.85}, prefix='  ')

        assert formatted == '  n_sessions: 12\n  mean_conformance: 0.8500'

    def test_logger_hierarchy(self):
        """Test préfixe des loggers."""
        from src.utils.logging import get_logger

        assert get_logger('sessions.windowing').name == 'alarmflow.sessions.windowing'
        assert get_logger('alarmflow.matrix').name == 'alarmflow.matrix'

    def test_setup_logging(self, tmp_path):
        """Test handlers non dupliqués et fichier de log."""
        from src.utils.logging import setup_logging

        setup_logging('DEBUG')
        logger = setup_logging('INFO', log_file=str(tmp_path / 'logs' / 'mining.log'))

        try:
            assert len(logger.handlers) == 2
            logger.info('test')
            assert (tmp_path / 'logs' / 'mining.log').exists()
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
