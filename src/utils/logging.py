"""
Configuration du logging
========================
"""

import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = 'alarmflow'


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure le logging pour AlarmFlow.
    
    Args:
        level: Niveau de log (DEBUG, INFO, WARNING, ERROR)
        log_file: Fichier de log optionnel
        format_string: Format personnalisé
        
    Returns:
        Logger racine configuré
    """
    if format_string is None:
        format_string = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
    
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))
    
    # Éviter les handlers dupliqués si appelé plusieurs fois
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    
    # Handler console
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(console_handler)
    
    # Handler fichier optionnel
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(file_handler)
    
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Récupère un logger de la hiérarchie AlarmFlow.
    
    Args:
        name: Nom du logger, préfixé par 'alarmflow' si nécessaire
        
    Returns:
        Logger
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + '.'):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
