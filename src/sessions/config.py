"""
Configuration du fenêtrage
==========================

Constantes de découpage des sessions, passées explicitement à chaque appel.
"""

import numbers
from dataclasses import dataclass
from typing import Any

from src.exceptions import ConfigurationError

MS_PER_MINUTE = 60 * 1000


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class WindowingConfig:
    """Paramètres de l'extraction de sessions."""
    
    # Bornes sur le nombre d'événements d'une session retenue
    min_events: int = 4
    max_events: int = 400
    
    # Durée maximale d'une session et silence qui la clôt
    max_duration_hours: float = 2
    session_timeout_minutes: float = 5
    
    # Unité attribuée aux événements qui n'en ont pas
    default_unit: str = 'Unknown'
    
    def __post_init__(self):
        for name in ('min_events', 'max_events'):
            value = getattr(self, name)
            if not _is_integer(value):
                raise ConfigurationError(f"{name} doit être un entier (reçu {value!r})")
        for name in ('max_duration_hours', 'session_timeout_minutes'):
            value = getattr(self, name)
            if not _is_number(value):
                raise ConfigurationError(f"{name} doit être un nombre (reçu {value!r})")
        for name in ('min_events', 'max_events', 'max_duration_hours', 'session_timeout_minutes'):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(f"{name} doit être positif ou nul (reçu {value})")
        if not isinstance(self.default_unit, str):
            raise ConfigurationError(f"default_unit doit être une chaîne (reçu {self.default_unit!r})")
        if self.min_events > self.max_events:
            raise ConfigurationError(
                f"min_events ({self.min_events}) > max_events ({self.max_events})"
            )
    
    @property
    def timeout_ms(self) -> float:
        return self.session_timeout_minutes * MS_PER_MINUTE
    
    @property
    def max_duration_ms(self) -> float:
        return self.max_duration_hours * 60 * MS_PER_MINUTE
