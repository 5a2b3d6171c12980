"""Modèle de données : entités, diagnostics, table d'alias et bornes."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Union

from alchimiste.config import check_entity_kind

SCHEMA_VERSION = "1.0.0"

SEVERITIES = ("error", "warning", "info")

# Table d'alias versionnée (SCHEMA_VERSION) : en-tête connu -> champ canonique.
# Les noms canoniques eux-mêmes font partie de la table.
FIELD_ALIASES: dict[str, dict[str, str]] = {
    "client": {
        "ClientID": "ClientID",
        "Client ID": "ClientID",
        "Client_ID": "ClientID",
        "client_id": "ClientID",
        "ID": "ClientID",
        "ClientName": "ClientName",
        "Client Name": "ClientName",
        "Client_Name": "ClientName",
        "client_name": "ClientName",
        "Name": "ClientName",
        "PriorityLevel": "PriorityLevel",
        "Priority": "PriorityLevel",
        "Priority Level": "PriorityLevel",
        "Priority_Level": "PriorityLevel",
        "priority_level": "PriorityLevel",
        "RequestedTaskIDs": "RequestedTaskIDs",
        "Requested Tasks": "RequestedTaskIDs",
        "Requested_Tasks": "RequestedTaskIDs",
        "requested_tasks": "RequestedTaskIDs",
        "Tasks": "RequestedTaskIDs",
        "GroupTag": "GroupTag",
        "Group": "GroupTag",
        "Group Tag": "GroupTag",
        "Group_Tag": "GroupTag",
        "group_tag": "GroupTag",
        "AttributesJSON": "AttributesJSON",
        "Attributes": "AttributesJSON",
        "Attributes JSON": "AttributesJSON",
        "Attributes_JSON": "AttributesJSON",
        "attributes_json": "AttributesJSON",
    },
    "worker": {
        "WorkerID": "WorkerID",
        "Worker ID": "WorkerID",
        "Worker_ID": "WorkerID",
        "worker_id": "WorkerID",
        "ID": "WorkerID",
        "WorkerName": "WorkerName",
        "Worker Name": "WorkerName",
        "Worker_Name": "WorkerName",
        "worker_name": "WorkerName",
        "Name": "WorkerName",
        "Skills": "Skills",
        "Skills Set": "Skills",
        "Skills_Set": "Skills",
        "skills_set": "Skills",
        "AvailableSlots": "AvailableSlots",
        "Available Slots": "AvailableSlots",
        "Available_Slots": "AvailableSlots",
        "available_slots": "AvailableSlots",
        "Slots": "AvailableSlots",
        "MaxLoadPerPhase": "MaxLoadPerPhase",
        "Max Load": "MaxLoadPerPhase",
        "Max Load Per Phase": "MaxLoadPerPhase",
        "Max_Load_Per_Phase": "MaxLoadPerPhase",
        "max_load_per_phase": "MaxLoadPerPhase",
        "WorkerGroup": "WorkerGroup",
        "Group": "WorkerGroup",
        "Worker Group": "WorkerGroup",
        "Worker_Group": "WorkerGroup",
        "worker_group": "WorkerGroup",
        "QualificationLevel": "QualificationLevel",
        "Qualification": "QualificationLevel",
        "Qualification Level": "QualificationLevel",
        "Qualification_Level": "QualificationLevel",
        "qualification_level": "QualificationLevel",
    },
    "task": {
        "TaskID": "TaskID",
        "Task ID": "TaskID",
        "Task_ID": "TaskID",
        "task_id": "TaskID",
        "ID": "TaskID",
        "TaskName": "TaskName",
        "Task Name": "TaskName",
        "Task_Name": "TaskName",
        "task_name": "TaskName",
        "Name": "TaskName",
        "Category": "Category",
        "Task Category": "Category",
        "Task_Category": "Category",
        "task_category": "Category",
        "Duration": "Duration",
        "Task Duration": "Duration",
        "Task_Duration": "Duration",
        "task_duration": "Duration",
        "RequiredSkills": "RequiredSkills",
        "Required Skills": "RequiredSkills",
        "Required_Skills": "RequiredSkills",
        "required_skills": "RequiredSkills",
        "Skills": "RequiredSkills",
        "PreferredPhases": "PreferredPhases",
        "Preferred Phases": "PreferredPhases",
        "Preferred_Phases": "PreferredPhases",
        "preferred_phases": "PreferredPhases",
        "Phases": "PreferredPhases",
        "MaxConcurrent": "MaxConcurrent",
        "Max Concurrent": "MaxConcurrent",
        "Max_Concurrent": "MaxConcurrent",
        "max_concurrent": "MaxConcurrent",
        "Concurrent": "MaxConcurrent",
    },
}

# Bornes des champs numériques scalaires (ramenés dans la plage)
NUMERIC_BOUNDS: dict[str, dict[str, tuple[int, int]]] = {
    "client": {"PriorityLevel": (1, 5)},
    "worker": {"MaxLoadPerPhase": (1, 10), "QualificationLevel": (1, 5)},
    "task": {"Duration": (1, 10), "MaxConcurrent": (1, 5)},
}

# Bornes des listes d'entiers (entrées hors plage retirées)
INT_LIST_BOUNDS: dict[str, dict[str, tuple[int, int]]] = {
    "client": {},
    "worker": {"AvailableSlots": (1, 20)},
    "task": {"PreferredPhases": (1, 20)},
}

STRING_LIST_FIELDS: dict[str, tuple[str, ...]] = {
    "client": ("RequestedTaskIDs",),
    "worker": ("Skills",),
    "task": ("RequiredSkills",),
}

JSON_FIELDS: dict[str, tuple[str, ...]] = {
    "client": ("AttributesJSON",),
    "worker": (),
    "task": (),
}

TEXT_DEFAULTS: dict[str, dict[str, str]] = {
    "client": {"ClientName": "", "GroupTag": "Standard"},
    "worker": {"WorkerName": "", "WorkerGroup": "General"},
    "task": {"TaskName": "", "Category": "General"},
}

ID_FIELDS = {"client": "ClientID", "worker": "WorkerID", "task": "TaskID"}
NAME_FIELDS = {"client": "ClientName", "worker": "WorkerName", "task": "TaskName"}
ID_PREFIXES = {"client": "C", "worker": "W", "task": "T"}


@dataclass
class Client:
    """Client demandant des tâches."""

    kind: ClassVar[str] = "client"

    client_id: str
    client_name: str = ""
    priority_level: int = 1
    requested_task_ids: list[str] = field(default_factory=list)
    group_tag: str = "Standard"
    attributes_json: str = "{}"


@dataclass
class Worker:
    """Ressource disposant de compétences et de créneaux."""

    kind: ClassVar[str] = "worker"

    worker_id: str
    worker_name: str = ""
    skills: list[str] = field(default_factory=list)
    available_slots: list[int] = field(default_factory=list)
    max_load_per_phase: int = 1
    worker_group: str = "General"
    qualification_level: int = 1


@dataclass
class Task:
    """Tâche à allouer."""

    kind: ClassVar[str] = "task"

    task_id: str
    task_name: str = ""
    category: str = "General"
    duration: int = 1
    required_skills: list[str] = field(default_factory=list)
    preferred_phases: list[int] = field(default_factory=list)
    max_concurrent: int = 1


Entity = Union[Client, Worker, Task]

ENTITY_CLASSES: dict[str, type] = {"client": Client, "worker": Worker, "task": Task}

# Champ canonique -> attribut Python, dans l'ordre des colonnes exportées
CANONICAL_ATTRS: dict[str, dict[str, str]] = {
    "client": {
        "ClientID": "client_id",
        "ClientName": "client_name",
        "PriorityLevel": "priority_level",
        "RequestedTaskIDs": "requested_task_ids",
        "GroupTag": "group_tag",
        "AttributesJSON": "attributes_json",
    },
    "worker": {
        "WorkerID": "worker_id",
        "WorkerName": "worker_name",
        "Skills": "skills",
        "AvailableSlots": "available_slots",
        "MaxLoadPerPhase": "max_load_per_phase",
        "WorkerGroup": "worker_group",
        "QualificationLevel": "qualification_level",
    },
    "task": {
        "TaskID": "task_id",
        "TaskName": "task_name",
        "Category": "category",
        "Duration": "duration",
        "RequiredSkills": "required_skills",
        "PreferredPhases": "preferred_phases",
        "MaxConcurrent": "max_concurrent",
    },
}


def canonical_fields(kind: str) -> tuple[str, ...]:
    """Champs canoniques d'un type d'entité, dans l'ordre du schéma."""
    return tuple(CANONICAL_ATTRS[check_entity_kind(kind)])


def entity_id(entity: Entity) -> str:
    """Identifiant de l'entité (ClientID, WorkerID ou TaskID)."""
    return get_field(entity, ID_FIELDS[entity.kind])


def get_field(entity: Entity, canonical: str) -> Any:
    """Lit un champ par son nom canonique (None si absent)."""
    return getattr(entity, CANONICAL_ATTRS[entity.kind][canonical], None)


def entity_to_record(entity: Entity) -> dict[str, Any]:
    """Convertit une entité en dict {champ canonique: valeur}."""
    return {name: getattr(entity, attr) for name, attr in CANONICAL_ATTRS[entity.kind].items()}


def entity_from_record(kind: str, record: dict[str, Any]) -> Entity:
    """
    Construit une entité depuis un dict {champ canonique: valeur} sans conversion.

    Sert aux éditions externes ; la cohérence est vérifiée par le moteur de validation.
    """
    attrs = CANONICAL_ATTRS[check_entity_kind(kind)]
    cls = ENTITY_CLASSES[kind]
    known = {f.name for f in fields(cls)}
    kwargs = {attrs[k]: v for k, v in record.items() if k in attrs and attrs[k] in known}
    kwargs.setdefault(attrs[ID_FIELDS[kind]], "")
    return cls(**kwargs)


@dataclass(frozen=True)
class ValidationError:
    """Diagnostic de validation (jamais modifié après création)."""

    id: str
    entity_type: str
    entity_id: str
    row: int
    field: str
    message: str
    severity: str  # error, warning, info
    suggested_fix: str | None = None
    auto_fixable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "row": self.row,
            "field": self.field,
            "message": self.message,
            "severity": self.severity,
            "suggested_fix": self.suggested_fix,
            "auto_fixable": self.auto_fixable,
        }


def make_issue(
    source: str,
    entity_type: str,
    entity_id: str,
    row: int,
    field_name: str,
    message: str,
    severity: str,
    suggested_fix: str | None = None,
    *,
    auto_fixable: bool = False,
) -> ValidationError:
    """
    Crée un diagnostic avec un identifiant déterministe.

    L'identifiant est un condensé du contenu : deux exécutions sur les mêmes
    données produisent les mêmes identifiants.
    """
    if severity not in SEVERITIES:
        raise ValueError(f"sévérité invalide: {severity!r}")
    key = "\x1f".join([source, entity_type, entity_id, str(row), field_name, message])
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
    return ValidationError(
        id=f"{source[:3]}_{digest}",
        entity_type=entity_type,
        entity_id=entity_id,
        row=row,
        field=field_name,
        message=message,
        severity=severity,
        suggested_fix=suggested_fix,
        auto_fixable=auto_fixable,
    )


@dataclass(frozen=True)
class ParsingResult:
    """Résultat de l'ingestion d'un fichier pour un type d'entité."""

    entity_kind: str
    file_name: str
    data: list[Entity]
    headers: list[str]
    mapped_headers: dict[str, str]
    total_rows: int
    processed_rows: int
    errors: list[ValidationError]
    warnings: list[ValidationError]
    suggestions: list[Any]  # list[FieldMapping]
    unmapped_headers: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)

    @property
    def issues(self) -> list[ValidationError]:
        """Erreurs puis avertissements de la transformation."""
        return [*self.errors, *self.warnings]
