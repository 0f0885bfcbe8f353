"""
Tests de l'extraction de sessions
=================================
"""

import pytest
import pandas as pd

MINUTE = 60 * 1000


class TestEvents:
    """Validation des événements et clés d'activité."""

    def test_alarm_and_action_are_distinct_activities(self):
        """Test alarme et action sur le même repère."""
        from src.sessions import Event, ActivityKind, activity_key

        alarm = Event(timestamp=0, tag='PUMP01', is_alarm=True)
        action = Event(timestamp=1, tag='PUMP01', is_change=True)

        assert activity_key(alarm) != activity_key(action)
        assert activity_key(alarm).kind is ActivityKind.ALARM
        assert activity_key(alarm).node_id == '[A] PUMP01'
        assert activity_key(action).node_id == '[C] PUMP01'

    def test_alarm_flag_wins(self):
        """Test priorité du drapeau alarme."""
        from src.sessions import Event, ActivityKind, activity_key

        both = Event(timestamp=0, tag='X', is_alarm=True, is_change=True)
        neither = Event(timestamp=0, tag='X')

        assert activity_key(both).kind is ActivityKind.ALARM
        assert activity_key(neither).kind is ActivityKind.EVENT
        assert activity_key(neither).node_id == '[E] X'

    def test_parse_node_id(self):
        """Test inverse de node_id."""
        from src.sessions.events import ActivityKey, ActivityKind, parse_node_id

        key = ActivityKey(ActivityKind.ACTION, 'FV-101')

        assert parse_node_id(key.node_id) == key
        assert parse_node_id('__START__') is None

    def test_json_aliases(self, make_record):
        """Test clés camelCase et descriptions capitalisées."""
        from src.sessions import events_from_records

        data = make_record(0, 'PUMP01', Desc1='Pompe', priority=1)
        event = events_from_records([data])[0]

        assert event.is_alarm
        assert event.desc1 == 'Pompe'
        assert event.priority == '1'
        assert event.to_dict()['isAlarm'] is True

    def test_missing_timestamp_reports_index(self, make_record):
        """Test index de l'événement invalide."""
        from src.exceptions import InvalidInputError
        from src.sessions import events_from_records

        records = [make_record(0, 'A'), {'unit': 'U1', 'tag': 'B'}]

        with pytest.raises(InvalidInputError) as exc_info:
            events_from_records(records)

        assert exc_info.value.index == 1
        assert 'timestamp' in str(exc_info.value)

    def test_empty_tag_rejected(self):
        """Test repère vide."""
        from src.exceptions import InvalidInputError
        from src.sessions import events_from_records

        with pytest.raises(InvalidInputError):
            events_from_records([{'timestamp': 0, 'tag': ''}])

    def test_not_a_list(self, make_record):
        """Test entrée qui n'est pas une liste."""
        from src.exceptions import InvalidInputError
        from src.sessions import events_from_records

        with pytest.raises(InvalidInputError):
            events_from_records(make_record(0, 'A'))

        with pytest.raises(ValueError):
            events_from_records('not events')

    def test_events_from_dataframe(self):
        """Test conversion d'un DataFrame avec timestamps datetime."""
        from src.sessions import events_from_dataframe

        df = pd.DataFrame({
            'time': pd.to_datetime(['2024-01-01 00:00:00', '2024-01-01 00:00:01']),
            'TAG': ['TI-101', 'FV-101'],
            'unit': ['U1', None],
            'isAlarm': [True, False],
            'isChange': [False, True]
        })

        events = events_from_dataframe(df, timestamp='time', tag='TAG')

        assert len(events) == 2
        assert events[0].timestamp == 1704067200000
        assert events[1].timestamp - events[0].timestamp == 1000
        assert events[0].is_alarm and events[1].is_change
        assert events[1].unit is None

    def test_dataframe_missing_column(self):
        """Test colonne obligatoire absente."""
        from src.exceptions import InvalidInputError
        from src.sessions import events_from_dataframe

        with pytest.raises(InvalidInputError):
            events_from_dataframe(pd.DataFrame({'timestamp': [0]}))

    def test_null_flags_are_false(self):
        """Test drapeaux isAlarm / isChange à null."""
        from src.sessions import ActivityKind, activity_key, events_from_records

        events = events_from_records([
            {'timestamp': 0, 'tag': 'A', 'isAlarm': None},
            {'timestamp': 1, 'tag': 'B', 'isAlarm': None, 'isChange': True},
            {'timestamp': 2, 'tag': 'C', 'isAlarm': float('nan')}
        ])

        assert not events[0].is_alarm and not events[0].is_change
        assert activity_key(events[0]).kind is ActivityKind.EVENT
        assert activity_key(events[1]).kind is ActivityKind.ACTION
        assert not events[2].is_alarm

    def test_dataframe_blank_flags(self):
        """Test cellules de drapeaux vides dans un DataFrame."""
        from src.sessions import events_from_dataframe

        df = pd.DataFrame({
            'timestamp': [0, 1000],
            'tag': ['A', 'B'],
            'unit': ['U', 'U'],
            'isAlarm': [True, None],
            'isChange': [None, True]
        })

        events = events_from_dataframe(df)

        assert len(events) == 2
        assert events[0].is_alarm and not events[0].is_change
        assert events[1].is_change and not events[1].is_alarm


class TestWindowing:
    """Fenêtrage par unité."""

    def test_single_session(self, make_record):
        """Test exemple de base: deux alarmes et deux actions."""
        from src.sessions import extract_sessions

        records = [
            make_record(0, 'P1', kind='a'),
            make_record(1000, 'V1', kind='c'),
            make_record(2000, 'P2', kind='a'),
            make_record(3000, 'V2', kind='c'),
        ]

        result = extract_sessions(records)

        assert len(result.sessions) == 1
        session = result.sessions[0]
        assert session.id == 0
        assert session.unit == 'U1'
        assert session.event_count == 4
        assert session.alarm_count == 2
        assert session.action_count == 2
        assert session.duration == 3000
        assert session.alarm_frequency == pytest.approx(400.0)
        assert session.tags == ('P1', 'V1', 'P2', 'V2')

        data = session.to_dict()
        assert data['alarmCount'] == 2
        assert data['distinctUnits'] == ['U1']
        assert len(data['events']) == 4

    def test_too_short_sessions_rejected(self, make_record):
        """Test deux événements espacés de 10 minutes."""
        from src.sessions import extract_sessions

        records = [make_record(0, 'A'), make_record(10 * MINUTE, 'B')]

        result = extract_sessions(records)

        assert result.sessions == []
        assert result.rejected_session_count == 2
        assert result.rejected_event_count == 2

    def test_gap_equal_to_timeout_stays_open(self, make_record):
        """Test borne du timeout: égalité dans la même session."""
        from src.sessions import WindowingConfig, extract_sessions

        config = WindowingConfig(min_events=1)

        same = extract_sessions([make_record(0, 'A'), make_record(5 * MINUTE, 'B')], config)
        split = extract_sessions([make_record(0, 'A'), make_record(5 * MINUTE + 1, 'B')], config)

        assert len(same.sessions) == 1
        assert len(split.sessions) == 2

    def test_max_duration_splits(self, make_record):
        """Test découpage au-delà de la durée maximale."""
        from src.sessions import extract_sessions

        records = [make_record(k * 4 * MINUTE, f'T{k % 5}') for k in range(40)]

        result = extract_sessions(records)

        assert [s.event_count for s in result.sessions] == [31, 9]
        assert result.sessions[0].duration == 120 * MINUTE
        assert result.sessions[1].start_time == 31 * 4 * MINUTE

    def test_zero_duration_frequency(self, make_record):
        """Test fréquence d'alarme nulle pour une durée nulle."""
        from src.sessions import extract_sessions

        records = [make_record(0, f'T{k}') for k in range(4)]

        session = extract_sessions(records).sessions[0]

        assert session.duration == 0
        assert session.alarm_frequency == 0

    def test_interleaved_units_do_not_close_sessions(self, make_record):
        """Test événements d'une autre unité intercalés."""
        from src.sessions import extract_sessions

        records = [
            make_record(0, 'A', unit='U1'),
            make_record(500, 'X', unit='U2'),
            make_record(1000, 'B', unit='U1'),
            make_record(1500, 'Y', unit='U2'),
            make_record(2000, 'C', unit='U1'),
            make_record(3000, 'D', unit='U1'),
        ]

        result = extract_sessions(records)

        assert len(result.sessions) == 1
        assert result.sessions[0].tags == ('A', 'B', 'C', 'D')
        assert result.rejected_event_count == 2

    def test_unit_isolation(self, random_records):
        """Test sessions d'une unité indépendantes des autres unités."""
        from src.sessions import extract_sessions

        mixed = extract_sessions(random_records).sessions
        alone = extract_sessions([r for r in random_records if r['unit'] == 'U2']).sessions

        mixed_u2 = [s.events for s in mixed if s.unit == 'U2']

        assert mixed_u2 == [s.events for s in alone]

    def test_coverage_and_bounds(self, random_records):
        """Test couverture des événements et bornes des sessions."""
        from src.sessions import WindowingConfig, extract_sessions

        config = WindowingConfig()
        result = extract_sessions(random_records, config)

        kept = sum(s.event_count for s in result.sessions)
        assert kept + result.rejected_event_count == len(random_records)

        for session in result.sessions:
            assert config.min_events <= session.event_count <= config.max_events
            stamps = [e.timestamp for e in session.events]
            assert stamps == sorted(stamps)
            assert all(b - a <= config.timeout_ms for a, b in zip(stamps, stamps[1:]))
            assert stamps[-1] - stamps[0] <= config.max_duration_ms
            assert all(e.unit == session.unit for e in session.events)

    def test_ids_follow_start_time(self, random_records):
        """Test identifiants dans l'ordre des débuts de session."""
        from src.sessions import extract_sessions

        sessions = extract_sessions(random_records).sessions

        assert [s.id for s in sessions] == list(range(len(sessions)))
        starts = [s.start_time for s in sessions]
        assert starts == sorted(starts)

    def test_default_unit(self):
        """Test unité par défaut pour les événements sans unité."""
        from src.sessions import WindowingConfig, extract_sessions

        records = [{'timestamp': k * 1000, 'tag': f'T{k}'} for k in range(4)]

        assert extract_sessions(records).sessions[0].unit == 'Unknown'

        config = WindowingConfig(default_unit='Plant')
        assert extract_sessions(records, config).sessions[0].unit == 'Plant'

    def test_tag_descriptions_keep_latest(self, make_record):
        """Test dernière description connue par repère."""
        from src.sessions import extract_sessions

        records = [
            make_record(0, 'P1', desc1='Pompe', desc2='arrêt'),
            make_record(1000, 'P1', desc1='Pompe', desc2='défaut'),
            make_record(2000, 'P2'),
            make_record(3000, 'P3'),
        ]

        session = extract_sessions(records).sessions[0]

        assert session.tag_descriptions['P1'].desc2 == 'défaut'
        assert 'P2' not in session.tag_descriptions
        assert len(session.event_descriptions) == 2

    def test_invalid_config(self):
        """Test paramètres de fenêtrage invalides."""
        from src.exceptions import ConfigurationError
        from src.sessions import WindowingConfig

        with pytest.raises(ConfigurationError):
            WindowingConfig(min_events=-1)
        with pytest.raises(ConfigurationError):
            WindowingConfig(min_events=10, max_events=5)

    def test_config_types(self):
        """Test paramètres de fenêtrage de type incorrect."""
        from src.exceptions import ConfigurationError
        from src.sessions import WindowingConfig

        with pytest.raises(ConfigurationError):
            WindowingConfig(min_events=2.5)
        with pytest.raises(ConfigurationError):
            WindowingConfig(max_events='400')
        with pytest.raises(ConfigurationError):
            WindowingConfig(session_timeout_minutes='5')
        with pytest.raises(ConfigurationError):
            WindowingConfig(max_duration_hours=None)
        with pytest.raises(ConfigurationError):
            WindowingConfig(default_unit=3)

        assert WindowingConfig(session_timeout_minutes=2.5).timeout_ms == 150_000


class TestUnitStatistics:
    """Statistiques par unité."""

    def test_aggregates(self, make_records):
        """Test agrégats et moyennes."""
        from src.sessions import extract_sessions

        records = (
            make_records(['a:P1', 'a:P2', 'a:P3', 'a:P4'])
            + make_records(['a:Q1', 'a:Q2', 'c:Q3', 'c:Q4'], start=500_000, unit='U2')
            + make_records(['a:P1', 'a:P2', 'c:V1', 'c:V2'], start=1_000_000, step=MINUTE)
        )

        result = extract_sessions(records)
        stats = {u.unit: u for u in result.unit_statistics}

        assert [u.unit for u in result.unit_statistics] == ['U1', 'U2']
        u1 = stats['U1']
        assert u1.session_count == 2
        assert u1.total_events == 8
        assert u1.total_alarms == 6
        assert u1.total_actions == 2
        assert u1.total_duration == 3000 + 3 * MINUTE
        assert u1.avg_session_duration == pytest.approx(91500.0)
        assert u1.avg_alarm_frequency == pytest.approx((800.0 + 20.0 / 3) / 2)
        assert stats['U2'].to_dict()['sessionCount'] == 1


class TestSessionAnalysis:
    """Sessions similaires et détail de session."""

    @pytest.fixture
    def sessions(self, make_records):
        from src.sessions import extract_sessions

        records = (
            make_records(['a:X', 'a:Y', 'c:Z', 'c:Z'])
            + make_records(['a:X', 'a:Y', 'c:Z', 'c:Z'], start=3_600_000)
            + make_records(['a:Q', 'a:R', 'c:S', 'c:S'], start=7_200_000, unit='U2')
        )
        return extract_sessions(records).sessions

    def test_find_similar_sessions(self, sessions):
        """Test classement des sessions similaires."""
        from src.sessions import find_similar_sessions

        similar = find_similar_sessions(sessions[0], sessions)

        assert len(similar) == 1
        assert similar[0].session.id == 1
        assert similar[0].score == pytest.approx(1.1)
        assert similar[0].matches['unit'] is True
        assert similar[0].to_dict()['sessionId'] == 1

    def test_similarity_with_descriptions(self, make_record):
        """Test bonus de concordance des descriptions."""
        from src.sessions import extract_sessions, find_similar_sessions

        records = []
        for start in (0, 3_600_000):
            records += [
                make_record(start, 'X', desc1='Pompe'),
                make_record(start + 1000, 'Y'),
                make_record(start + 2000, 'Z', kind='c'),
                make_record(start + 3000, 'Z', kind='c'),
            ]
        sessions = extract_sessions(records).sessions

        similar = find_similar_sessions(sessions[0], sessions, include_descriptions=True)

        assert similar[0].score == pytest.approx(1.4)
        assert similar[0].matches['descriptions']['matches'] == 1

    def test_session_details(self, make_records):
        """Test grappes d'alarmes et temps de réponse."""
        from src.sessions import extract_sessions, get_session_details

        records = make_records(['a:X', 'a:Y', 'c:V'], step=10_000) + make_records(['a:Z'], start=200_000)
        sessions = extract_sessions(records).sessions

        details = get_session_details(0, sessions)

        assert len(details.alarm_clusters) == 2
        assert len(details.alarm_clusters[0].alarms) == 2
        assert len(details.alarm_clusters[0].actions) == 1
        assert details.avg_operator_response_time == pytest.approx(15000.0)
        assert details.operator_effectiveness == pytest.approx(1 / 3)
        assert not details.has_alarm_flood
        assert details.to_dict()['operatorEffectiveness'] == pytest.approx(1 / 3)

    def test_alarm_flood(self, sessions):
        """Test détection d'inondation d'alarmes."""
        from src.sessions import get_session_details

        assert get_session_details(0, sessions).has_alarm_flood

    def test_unknown_session(self, sessions):
        """Test identifiant inconnu."""
        from src.sessions import get_session_details

        assert get_session_details(99, sessions) is None
