"""Moteur de validation : contrôles par entité puis contrôles croisés."""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from alchimiste.config import ENTITY_KINDS, Config
from alchimiste.schema import (
    ID_FIELDS,
    INT_LIST_BOUNDS,
    JSON_FIELDS,
    NAME_FIELDS,
    NUMERIC_BOUNDS,
    SEVERITIES,
    STRING_LIST_FIELDS,
    TEXT_DEFAULTS,
    Client,
    Entity,
    Task,
    ValidationError,
    Worker,
    entity_id,
    get_field,
    make_issue,
)

logger = logging.getLogger(__name__)

SOURCE = "validation"
# Ligne des diagnostics portant sur l'ensemble des données (pas sur une ligne)
DATASET_ROW = -1


def quality_score(errors: int, warnings: int, config: Config | None = None) -> float:
    """
    Score qualité 0-100 : 100 - min(100, poids_erreur*erreurs + poids_avertissement*avertissements).

    Les diagnostics ``info`` ne pénalisent pas le score.
    """
    config = config or Config()
    penalty = config.error_weight * errors + config.warning_weight * warnings
    return 100.0 - min(100.0, penalty)


def count_by_kind(issues: Sequence[ValidationError]) -> dict[str, dict[str, int]]:
    """Retourne {type_entité: {sévérité: nombre}} pour les trois types d'entité."""
    counts = {kind: {sev: 0 for sev in SEVERITIES} for kind in ENTITY_KINDS}
    for issue in issues:
        counts.setdefault(issue.entity_type, {sev: 0 for sev in SEVERITIES})[issue.severity] += 1
    return counts


@dataclass
class ValidationReport:
    """Diagnostics produits par une passe de validation et score agrégé."""

    issues: list[ValidationError] = field(default_factory=list)
    score: float = 100.0
    counts_by_kind: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def errors(self) -> list[ValidationError]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationError]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def infos(self) -> list[ValidationError]:
        return [i for i in self.issues if i.severity == "info"]

    def for_entity(self, entity_type: str, ident: str) -> list[ValidationError]:
        return [i for i in self.issues if i.entity_type == entity_type and i.entity_id == ident]


class ValidationEngine:
    """
    Valide les trois collections d'entités une fois entièrement construites.

    Ne modifie jamais les entités : chaque problème devient un ValidationError.
    Peut être relancé après des éditions externes (corrections manuelles ou
    automatiques) sur les mêmes collections.
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    def _issue(
        self,
        kind: str,
        ident: str,
        row: int,
        field_name: str,
        message: str,
        severity: str,
        fix: str | None = None,
        *,
        auto_fixable: bool = False,
    ) -> ValidationError:
        return make_issue(SOURCE, kind, ident, row, field_name, message, severity, fix, auto_fixable=auto_fixable)

    def validate(
        self,
        clients: Sequence[Client] = (),
        workers: Sequence[Worker] = (),
        tasks: Sequence[Task] = (),
    ) -> ValidationReport:
        """
        Exécute tous les contrôles et calcule le score.

        Args:
            clients: Collection de clients.
            workers: Collection de workers.
            tasks: Collection de tâches (complète : les références client en dépendent).

        Returns:
            ValidationReport.
        """
        issues: list[ValidationError] = []
        for kind, entities in (("client", clients), ("worker", workers), ("task", tasks)):
            issues.extend(self.check_duplicates(kind, entities))
            for row, entity in enumerate(entities):
                issues.extend(self.validate_entity(entity, row))

        issues.extend(self.check_task_references(clients, tasks))
        if self.config.cross_entity_checks and workers and tasks:
            issues.extend(self.check_skill_coverage(workers, tasks))
            issues.extend(self.check_phase_capacity(workers, tasks))

        n_errors = sum(1 for i in issues if i.severity == "error")
        n_warnings = sum(1 for i in issues if i.severity == "warning")
        report = ValidationReport(
            issues=issues,
            score=quality_score(n_errors, n_warnings, self.config),
            counts_by_kind=count_by_kind(issues),
        )
        logger.info(
            "Validation: %d erreurs, %d avertissements, %d infos (score %.0f)",
            n_errors, n_warnings, len(report.infos), report.score,
        )
        return report

    # --- Contrôles par collection / par entité ---

    def check_duplicates(self, kind: str, entities: Sequence[Entity]) -> list[ValidationError]:
        """N occurrences d'un même identifiant produisent N-1 erreurs (la première n'est pas signalée)."""
        id_field = ID_FIELDS[kind]
        first_row: dict[str, int] = {}
        issues: list[ValidationError] = []
        for row, entity in enumerate(entities):
            ident = entity_id(entity)
            if not ident:
                continue
            if ident in first_row:
                issues.append(
                    self._issue(
                        kind, ident, row, id_field,
                        f"{id_field} en double : {ident} (première occurrence ligne {first_row[ident]})",
                        "error",
                        f"Attribuer un {id_field} unique",
                    )
                )
            else:
                first_row[ident] = row
        return issues

    def validate_entity(self, entity: Entity, row: int) -> list[ValidationError]:
        """Contrôles d'une entité isolée : champs requis, bornes, listes, JSON, longueurs."""
        kind = entity.kind
        ident = entity_id(entity) or f"ROW_{row}"
        issues: list[ValidationError] = []

        def add(field_name: str, message: str, severity: str, fix: str | None = None, *, auto: bool = False) -> None:
            issues.append(self._issue(kind, ident, row, field_name, message, severity, fix, auto_fixable=auto))

        for name in (ID_FIELDS[kind], NAME_FIELDS[kind]):
            value = get_field(entity, name)
            if not isinstance(value, str) or not value.strip():
                add(name, f"{name} requis", "error", f"Renseigner {name}")

        for name, (lo, hi) in NUMERIC_BOUNDS[kind].items():
            value = get_field(entity, name)
            if isinstance(value, bool) or not isinstance(value, int):
                add(name, f"{name} doit être un entier (valeur : {value!r})", "error", "Saisir un entier")
            elif not lo <= value <= hi:
                fixed = min(max(value, lo), hi)
                add(
                    name, f"{name} hors plage ({lo}-{hi}) : {value}", "error",
                    f"Ramener à {fixed}", auto=True,
                )

        for name in STRING_LIST_FIELDS[kind]:
            issues.extend(self._check_list(entity, ident, row, name, None))
        for name, bounds in INT_LIST_BOUNDS[kind].items():
            issues.extend(self._check_list(entity, ident, row, name, bounds))

        for name in JSON_FIELDS[kind]:
            value = get_field(entity, name)
            if not isinstance(value, str):
                add(name, f"{name} doit être un texte JSON", "error", "Encoder la valeur en JSON")
                continue
            if value.strip():
                try:
                    json.loads(value)
                except json.JSONDecodeError as e:
                    add(name, f"JSON invalide dans {name} : {e.msg}", "error", "Vérifier la syntaxe JSON")
            if len(value) > self.config.max_json_size:
                add(
                    name, f"{name} trop volumineux ({len(value)} > {self.config.max_json_size} caractères)", "error",
                    "Réduire le contenu JSON",
                )

        for name in (ID_FIELDS[kind], *TEXT_DEFAULTS[kind]):
            value = get_field(entity, name)
            if isinstance(value, str) and len(value) > self.config.max_string_length:
                add(
                    name, f"{name} trop long ({len(value)} > {self.config.max_string_length} caractères)", "error",
                    f"Tronquer à {self.config.max_string_length} caractères", auto=True,
                )

        if isinstance(entity, Worker) and self.config.cross_entity_checks:
            slots = entity.available_slots
            load = entity.max_load_per_phase
            if isinstance(slots, list) and slots and isinstance(load, int) and load > len(slots):
                add(
                    "MaxLoadPerPhase",
                    f"MaxLoadPerPhase ({load}) supérieur au nombre de créneaux disponibles ({len(slots)})",
                    "warning",
                    f"Réduire MaxLoadPerPhase à {len(slots)}",
                )
        return issues

    def _check_list(
        self, entity: Entity, ident: str, row: int, name: str, bounds: tuple[int, int] | None
    ) -> list[ValidationError]:
        kind = entity.kind
        value = get_field(entity, name)
        issues: list[ValidationError] = []

        def add(message: str, severity: str, fix: str | None = None, *, auto: bool = False) -> None:
            issues.append(self._issue(kind, ident, row, name, message, severity, fix, auto_fixable=auto))

        if not isinstance(value, list):
            add(f"{name} doit être une liste (valeur : {value!r})", "error", "Saisir une liste séparée par des virgules")
            return issues

        if bounds is None:
            invalid = [v for v in value if not isinstance(v, str) or not v.strip()]
            if invalid:
                add(f"{name} contient des entrées vides ou non textuelles : {invalid!r}", "error",
                    "Retirer les entrées invalides", auto=True)
            if not value and name != "RequestedTaskIDs":
                add(f"{name} est vide", "warning", f"Renseigner au moins une valeur pour {name}")
        else:
            lo, hi = bounds
            invalid = [
                v for v in value if isinstance(v, bool) or not isinstance(v, int) or not lo <= v <= hi
            ]
            if invalid:
                add(f"{name} : entrées hors plage ({lo}-{hi}) ou non entières : {invalid!r}", "error",
                    "Retirer les entrées invalides", auto=True)

        if len(value) > self.config.max_list_length:
            add(f"{name} trop longue ({len(value)} > {self.config.max_list_length} éléments)", "error",
                f"Limiter {name} à {self.config.max_list_length} éléments")

        hashable = [v for v in value if isinstance(v, (str, int))]
        duplicates = sorted({str(v) for v, n in Counter(hashable).items() if n > 1})
        if duplicates:
            add(f"{name} contient des doublons : {', '.join(duplicates)}", "warning",
                "Supprimer les doublons", auto=True)
        return issues

    # --- Contrôles croisés ---

    def check_task_references(
        self, clients: Sequence[Client], tasks: Sequence[Task]
    ) -> list[ValidationError]:
        """Chaque RequestedTaskIDs d'un client doit désigner une tâche existante (sinon warning)."""
        task_ids = {entity_id(t) for t in tasks}
        issues: list[ValidationError] = []
        for row, client in enumerate(clients):
            requested = client.requested_task_ids if isinstance(client.requested_task_ids, list) else []
            for task_id in requested:
                if task_id not in task_ids:
                    issues.append(
                        self._issue(
                            "client", entity_id(client) or f"ROW_{row}", row, "RequestedTaskIDs",
                            f"Tâche référencée introuvable : {task_id}",
                            "warning",
                            f"Retirer {task_id} ou ajouter la tâche {task_id}",
                        )
                    )
        return issues

    def check_skill_coverage(
        self, workers: Sequence[Worker], tasks: Sequence[Task]
    ) -> list[ValidationError]:
        """Compétences requises sans worker (warning) et compétences de workers inutilisées (info)."""
        worker_skills = {s for w in workers if isinstance(w.skills, list) for s in w.skills}
        task_skills = {s for t in tasks if isinstance(t.required_skills, list) for s in t.required_skills}
        issues: list[ValidationError] = []

        for row, task in enumerate(tasks):
            required = task.required_skills if isinstance(task.required_skills, list) else []
            for skill in required:
                if skill not in worker_skills:
                    issues.append(
                        self._issue(
                            "task", entity_id(task) or f"ROW_{row}", row, "RequiredSkills",
                            f"Compétence requise non couverte par un worker : {skill}",
                            "warning",
                            f"Ajouter un worker avec la compétence {skill} ou retirer l'exigence",
                        )
                    )

        reported: set[str] = set()
        for row, worker in enumerate(workers):
            skills = worker.skills if isinstance(worker.skills, list) else []
            for skill in skills:
                if skill in task_skills or skill in reported:
                    continue
                reported.add(skill)
                issues.append(
                    self._issue(
                        "worker", entity_id(worker) or f"ROW_{row}", row, "Skills",
                        f"Compétence non requise par aucune tâche : {skill}",
                        "info",
                    )
                )
        return issues

    def check_phase_capacity(
        self, workers: Sequence[Worker], tasks: Sequence[Task]
    ) -> list[ValidationError]:
        """
        Compare, phase par phase, la demande des tâches à la capacité des workers.

        Demande d'une phase : somme des Duration des tâches qui la préfèrent.
        Capacité : somme des MaxLoadPerPhase des workers disponibles sur ce créneau.
        """
        demand: dict[int, int] = defaultdict(int)
        capacity: dict[int, int] = defaultdict(int)
        for task in tasks:
            if isinstance(task.preferred_phases, list) and isinstance(task.duration, int):
                for phase in {p for p in task.preferred_phases if isinstance(p, int)}:
                    demand[phase] += task.duration
        for worker in workers:
            if isinstance(worker.available_slots, list) and isinstance(worker.max_load_per_phase, int):
                for slot in {s for s in worker.available_slots if isinstance(s, int)}:
                    capacity[slot] += worker.max_load_per_phase

        issues: list[ValidationError] = []
        for phase in sorted(demand):
            if demand[phase] > capacity[phase]:
                issues.append(
                    self._issue(
                        "task", f"PHASE_{phase}", DATASET_ROW, "PreferredPhases",
                        f"Phase {phase} saturée : demande {demand[phase]} > capacité {capacity[phase]}",
                        "warning",
                        "Répartir les tâches sur d'autres phases ou ajouter des créneaux",
                    )
                )
        return issues


def validate_dataset(
    clients: Sequence[Client] = (),
    workers: Sequence[Worker] = (),
    tasks: Sequence[Task] = (),
    config: Config | None = None,
) -> ValidationReport:
    """Raccourci : ValidationEngine(config).validate(clients, workers, tasks)."""
    return ValidationEngine(config).validate(clients, workers, tasks)
