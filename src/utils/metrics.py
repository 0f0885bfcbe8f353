"""
Métriques et calculs
====================
"""

import numpy as np
from typing import Dict, Iterable


def running_mean(current: float, count: int, value: float) -> float:
    """
    Moyenne incrémentale: avg <- (avg * (n - 1) + x) / n.
    
    Args:
        current: Moyenne sur les n - 1 premières valeurs
        count: Nombre de valeurs, nouvelle valeur comprise (n >= 1)
        value: Nouvelle valeur
        
    Returns:
        Moyenne sur n valeurs
    """
    return (current * (count - 1) + value) / count


def describe(values: Iterable[float]) -> Dict[str, float]:
    """Statistiques descriptives (mean, median, p95, std, min, max)."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return {}
    
    return {
        'mean': float(np.mean(arr)),
        'median': float(np.median(arr)),
        'p95': float(np.percentile(arr, 95)),
        'std': float(np.std(arr)),
        'min': float(np.min(arr)),
        'max': float(np.max(arr))
    }


def format_metrics(metrics: Dict[str, float], prefix: str = '') -> str:
    """Formate les métriques pour affichage."""
    lines = []
    for key, value in metrics.items():
        name = f"{prefix}{key}" if prefix else key
        if isinstance(value, float):
            lines.append(f"{name}: {value:.4f}")
        else:
            lines.append(f"{name}: {value}")
    return '\n'.join(lines)
