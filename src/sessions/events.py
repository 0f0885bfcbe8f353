"""
Événements et activités
=======================

Forme canonique des événements d'alarme consommés par l'extraction de sessions,
et identification des activités (clé typée alarme / action / événement).

Usage:
    >>> events = events_from_records([
    ...     {'timestamp': 0, 'unit': 'U1', 'tag': 'PUMP01', 'isAlarm': True},
    ... ])
    >>> activity_key(events[0]).node_id
    '[A] PUMP01'
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.exceptions import InvalidInputError


class Event(BaseModel):
    """Événement horodaté (alarme ou action opérateur), immuable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    timestamp: int = Field(..., description="Horodatage epoch en millisecondes")
    tag: str = Field(..., min_length=1, description="Repère de l'équipement")
    unit: Optional[str] = Field(default=None, description="Unité opérationnelle")
    is_alarm: bool = Field(default=False, alias='isAlarm')
    is_change: bool = Field(default=False, alias='isChange')
    priority: Optional[str] = None
    desc1: Optional[str] = Field(default=None, validation_alias=AliasChoices('desc1', 'Desc1'))
    desc2: Optional[str] = Field(default=None, validation_alias=AliasChoices('desc2', 'Desc2'))

    @field_validator('priority', mode='before')
    @classmethod
    def _priority_as_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @field_validator('is_alarm', 'is_change', mode='before')
    @classmethod
    def _missing_flag_is_false(cls, value: Any) -> Any:
        # Cellule vide: None, ou NaN d'une colonne pandas
        if value is None or (isinstance(value, float) and value != value):
            return False
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dictionnaire (clés camelCase de l'interface JSON)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ActivityKind(str, Enum):
    """Type d'activité."""
    ALARM = 'Alarm'
    ACTION = 'Action'
    EVENT = 'Event'


_PREFIXES = {
    ActivityKind.ALARM: 'A',
    ActivityKind.ACTION: 'C',
    ActivityKind.EVENT: 'E',
}

_SYMBOLS = {
    ActivityKind.ALARM: '⚠️',
    ActivityKind.ACTION: '✓',
    ActivityKind.EVENT: '•',
}


class ActivityKey(NamedTuple):
    """
    Clé d'activité (type, repère).
    
    Une alarme PUMP01 et une action PUMP01 sont deux activités distinctes.
    """
    kind: ActivityKind
    tag: str

    @property
    def node_id(self) -> str:
        return f"[{_PREFIXES[self.kind]}] {self.tag}"

    @property
    def short_label(self) -> str:
        return f"{_SYMBOLS[self.kind]} {self.tag}"

    @property
    def is_alarm(self) -> bool:
        return self.kind is ActivityKind.ALARM


def activity_key(event: Event) -> ActivityKey:
    """
    Identifie l'activité d'un événement.
    
    L'alarme l'emporte si les deux drapeaux sont levés; aucun drapeau
    donne une activité de type Event.
    """
    if event.is_alarm:
        return ActivityKey(ActivityKind.ALARM, event.tag)
    if event.is_change:
        return ActivityKey(ActivityKind.ACTION, event.tag)
    return ActivityKey(ActivityKind.EVENT, event.tag)


def parse_node_id(node_id: str) -> Optional[ActivityKey]:
    """Inverse de ActivityKey.node_id; None si l'identifiant n'est pas reconnu."""
    for kind, prefix in _PREFIXES.items():
        head = f"[{prefix}] "
        if node_id.startswith(head) and len(node_id) > len(head):
            return ActivityKey(kind, node_id[len(head):])
    return None


def _describe_validation_error(exc: ValidationError) -> str:
    fields = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error['loc']) or '<root>'
        fields.append(f"{location} ({error['msg']})")
    return "champs invalides: " + ', '.join(fields)


def events_from_records(records: Any) -> List[Event]:
    """
    Valide une liste d'enregistrements et retourne les événements.
    
    Args:
        records: Liste de dicts (ou d'Event déjà construits)
        
    Returns:
        Liste d'Event dans l'ordre d'entrée
        
    Raises:
        InvalidInputError: si l'entrée n'est pas une liste ou si un
            enregistrement n'a pas de timestamp / tag valide
    """
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
        raise InvalidInputError(
            f"une liste d'événements est attendue, reçu {type(records).__name__}"
        )
    
    events = []
    for index, record in enumerate(records):
        if isinstance(record, Event):
            events.append(record)
            continue
        if not isinstance(record, Mapping):
            raise InvalidInputError(
                f"enregistrement de type {type(record).__name__}", index=index
            )
        try:
            events.append(Event.model_validate(record))
        except ValidationError as exc:
            raise InvalidInputError(_describe_validation_error(exc), index=index) from exc
    
    return events


def events_from_dataframe(
    df: pd.DataFrame,
    timestamp: str = 'timestamp',
    tag: str = 'tag',
    unit: str = 'unit',
    columns: Optional[Dict[str, str]] = None
) -> List[Event]:
    """
    Convertit un DataFrame d'alarmes en événements.
    
    Les timestamps datetime sont convertis en epoch millisecondes.
    
    Args:
        df: DataFrame source
        timestamp: Nom de la colonne timestamp
        tag: Nom de la colonne repère
        unit: Nom de la colonne unité
        columns: Renommages supplémentaires {colonne source: champ Event}
        
    Returns:
        Liste d'Event
    """
    missing = {timestamp, tag} - set(df.columns)
    if missing:
        raise InvalidInputError(f"colonnes manquantes: {', '.join(sorted(missing))}")
    
    mapping = {timestamp: 'timestamp', tag: 'tag'}
    if unit in df.columns:
        mapping[unit] = 'unit'
    if columns:
        mapping.update(columns)
    
    frame = df.rename(columns=mapping)
    
    if pd.api.types.is_datetime64_any_dtype(frame['timestamp']):
        stamps = pd.to_datetime(frame['timestamp'], utc=True)
        epoch = pd.Timestamp(0, tz='UTC')
        frame = frame.assign(timestamp=(stamps - epoch) // pd.Timedelta(milliseconds=1))
    
    frame = frame.astype(object).where(pd.notna(frame), None)
    return events_from_records(frame.to_dict('records'))


def sort_events(events: Iterable[Event]) -> List[Event]:
    """Tri stable par timestamp croissant."""
    return sorted(events, key=lambda e: e.timestamp)
