"""
Configuration pytest
====================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Ajouter le répertoire racine au path
sys.path.insert(0, str(Path(__file__).parent.parent))

MINUTE = 60 * 1000
HOUR = 60 * MINUTE


def record(timestamp, tag, unit='U1', kind='a', **extra):
    """Enregistrement JSON; kind 'a' alarme, 'c' action, 'e' événement."""
    data = {
        'timestamp': timestamp,
        'unit': unit,
        'tag': tag,
        'isAlarm': kind == 'a',
        'isChange': kind == 'c',
    }
    data.update(extra)
    return data


def records_from_tokens(tokens, start=0, step=1000, unit='U1'):
    """Jetons 'a:TAG' / 'c:TAG' / 'e:TAG' espacés de `step` ms."""
    records = []
    for k, token in enumerate(tokens):
        kind, tag = token.split(':', 1)
        records.append(record(start + k * step, tag, unit=unit, kind=kind))
    return records


@pytest.fixture
def make_record():
    """Fabrique d'enregistrements JSON."""
    return record


@pytest.fixture
def make_records():
    """Fabrique de séquences d'enregistrements à partir de jetons."""
    return records_from_tokens


@pytest.fixture
def make_sessions():
    """Construit une session par séquence de jetons, dans l'ordre donné."""
    from src.sessions import WindowingConfig, extract_sessions
    
    def _make(sequences):
        records = []
        for i, tokens in enumerate(sequences):
            records.extend(records_from_tokens(tokens, start=i * 3 * HOUR))
        config = WindowingConfig(min_events=1, max_events=10_000)
        return extract_sessions(records, config).sessions
    
    return _make


@pytest.fixture
def linear_sequences():
    """Processus linéaire T1 -> V1 -> T2 -> V2, dix fois."""
    return [['a:T1', 'c:V1', 'a:T2', 'c:V2']] * 10


@pytest.fixture
def alternating_sequence():
    """Alternance stricte A, B, A, B, A, B."""
    return [['a:A', 'c:B'] * 3]


@pytest.fixture(scope="session")
def random_records():
    """Journal aléatoire multi-unités, non trié."""
    rng = np.random.RandomState(42)
    tags = ['TI-101', 'FV-101', 'PI-201', 'LV-301', 'XV-302']
    records = []
    for unit in ['U1', 'U2', 'U3']:
        current = 0
        for _ in range(150):
            current += int(rng.choice([2_000, 30_000, 90_000, 8 * MINUTE]))
            kind = 'a' if rng.random() < 0.6 else 'c'
            records.append(record(current, str(rng.choice(tags)), unit=unit, kind=kind))
    order = rng.permutation(len(records))
    return [records[i] for i in order]


# Markers
def pytest_configure(config):
    """Configure les markers pytest."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: integration tests")
