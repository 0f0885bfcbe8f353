"""
Exceptions AlarmFlow
====================

Taxonomie des erreurs levées aux frontières de l'extraction et du mining.
Les résultats dégénérés (aucune session, aucune arête) ne sont pas des erreurs.
"""

from typing import Optional


class AlarmFlowError(Exception):
    """Erreur de base du projet."""


class InvalidInputError(AlarmFlowError, ValueError):
    """Entrée invalide: pas une liste, ou champ obligatoire manquant."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        if index is not None:
            message = f"Événement #{index}: {message}"
        super().__init__(message)


class ConfigurationError(AlarmFlowError, ValueError):
    """Paramètre de configuration hors bornes."""
