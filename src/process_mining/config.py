"""
Configuration du mining
=======================

Seuils du Heuristics Miner. Les constantes de bruit (parallélisme, boucles)
sont des réglages empiriques, exposés pour pouvoir être surchargés.
"""

import numbers
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from src.exceptions import ConfigurationError

DISTINCT_ACTIVITIES = 'distinct_activities'
TOTAL_EVENTS = 'total_events'

# Clés camelCase acceptées dans l'objet `filters` de l'interface JSON
_FILTER_KEYS = {
    'dependencyThreshold': 'dependency_threshold',
    'frequencyThreshold': 'frequency_threshold',
    'showLoops': 'show_loops',
    'showParallel': 'show_parallel',
    'parallelDependencyCeiling': 'parallel_dependency_ceiling',
    'parallelMinFrequency': 'parallel_min_frequency',
    'minLoopFrequency': 'min_loop_frequency',
    'loopTwoThreshold': 'loop_two_threshold',
    'visibilityNormalization': 'visibility_normalization',
    'maxVariants': 'max_variants',
    'maxLoops': 'max_loops',
}

_RATIOS = (
    'dependency_threshold',
    'frequency_threshold',
    'parallel_dependency_ceiling',
    'parallel_min_frequency',
    'min_loop_frequency',
    'loop_two_threshold',
    'high_confidence',
    'medium_confidence',
)

_FLAGS = ('show_loops', 'show_parallel')


def is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class MiningConfig:
    """Paramètres de découverte du réseau heuristique."""
    
    # Relations causales et visibilité des activités
    dependency_threshold: float = 0.5
    frequency_threshold: float = 0.02
    visibility_normalization: str = DISTINCT_ACTIVITIES
    
    # Options d'affichage
    show_loops: bool = True
    show_parallel: bool = True
    
    # Parallélisme: |dépendance| moyenne sous le plafond, fréquences au-dessus du plancher
    parallel_dependency_ceiling: float = 0.2
    parallel_min_frequency: float = 0.05
    
    # Boucles: plancher de bruit et seuil de la mesure longueur-deux (A B A)
    min_loop_frequency: float = 0.01
    loop_two_threshold: float = 0.5
    
    # Bandes de confiance des arêtes (rendu uniquement)
    high_confidence: float = 0.8
    medium_confidence: float = 0.6
    
    # Variantes
    max_variants: int = 50
    
    # Boucles: nombre maximal de cycles énumérés (None: sans limite)
    max_loops: Optional[int] = 1000
    
    def __post_init__(self):
        for name in _RATIOS:
            value = getattr(self, name)
            if not is_number(value):
                raise ConfigurationError(f"{name} doit être un nombre (reçu {value!r})")
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} doit être dans [0, 1] (reçu {value})")
        for name in _FLAGS:
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} doit être un booléen (reçu {getattr(self, name)!r})")
        if self.visibility_normalization not in (DISTINCT_ACTIVITIES, TOTAL_EVENTS):
            raise ConfigurationError(
                f"visibility_normalization inconnue: {self.visibility_normalization}"
            )
        if not is_integer(self.max_variants) or self.max_variants < 0:
            raise ConfigurationError(
                f"max_variants doit être un entier positif (reçu {self.max_variants!r})"
            )
        if self.max_loops is not None and (not is_integer(self.max_loops) or self.max_loops < 1):
            raise ConfigurationError(
                f"max_loops doit être un entier strictement positif (reçu {self.max_loops!r})"
            )
    
    @classmethod
    def from_filters(cls, filters: Optional[Mapping[str, Any]] = None) -> 'MiningConfig':
        """
        Construit la configuration depuis l'objet `filters` JSON.
        
        Accepte les clés camelCase ou les noms de champs Python.
        
        Args:
            filters: Dict de filtres, None pour les valeurs par défaut
            
        Returns:
            MiningConfig
        """
        if not filters:
            return cls()
        
        field_names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in filters.items():
            name = _FILTER_KEYS.get(key, key)
            if name not in field_names:
                raise ConfigurationError(f"Filtre inconnu: {key}")
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)
