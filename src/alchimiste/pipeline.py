"""Orchestration : extraction -> mapping -> transformation, puis validation conjointe."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from alchimiste.config import ENTITY_KINDS, AlchimisteError, Config, check_entity_kind
from alchimiste.io_excel import RawTable, extract_table, read_table_file
from alchimiste.mapping import HeaderMapper
from alchimiste.schema import Client, Entity, ParsingResult, Task, Worker
from alchimiste.transform import apply_header_mapping, transform_rows
from alchimiste.validation import ValidationEngine, ValidationReport

logger = logging.getLogger(__name__)

# Un fichier d'entrée : chemin sur disque ou (nom, contenu) en mémoire
FileSource = Union[str, Path, tuple[str, bytes]]


@dataclass
class BatchSummary:
    total_files: int = 0
    successful_files: int = 0
    failed_files: list[str] = field(default_factory=list)
    total_entities: int = 0
    total_errors: int = 0
    total_warnings: int = 0


@dataclass
class BatchResult:
    """Résultats par type d'entité (fichiers réussis uniquement) et résumé du lot."""

    results: dict[str, ParsingResult] = field(default_factory=dict)
    summary: BatchSummary = field(default_factory=BatchSummary)

    def entities(self, entity_kind: str) -> list[Entity]:
        result = self.results.get(entity_kind)
        return list(result.data) if result else []


@dataclass
class PipelineResult:
    batch: BatchResult
    validation: ValidationReport

    @property
    def clients(self) -> list[Client]:
        return self.batch.entities("client")  # type: ignore[return-value]

    @property
    def workers(self) -> list[Worker]:
        return self.batch.entities("worker")  # type: ignore[return-value]

    @property
    def tasks(self) -> list[Task]:
        return self.batch.entities("task")  # type: ignore[return-value]


def parse_table(
    table: RawTable,
    entity_kind: str,
    *,
    file_name: str = "<buffer>",
    config: Config | None = None,
) -> ParsingResult:
    """
    Mappe les en-têtes d'une table brute puis transforme chaque ligne.

    Les problèmes de ligne sont retournés comme diagnostics, jamais levés.
    """
    kind = check_entity_kind(entity_kind)
    config = config or Config()
    mapping_result = HeaderMapper(config).map_headers(table.headers, kind)
    rows = apply_header_mapping(table.rows, mapping_result.mapping)
    row_results = transform_rows(kind, rows)

    entities = [r.entity for r in row_results if r.entity is not None]
    issues = [issue for r in row_results for issue in r.issues]
    result = ParsingResult(
        entity_kind=kind,
        file_name=file_name,
        data=entities,
        headers=list(table.headers),
        mapped_headers=dict(mapping_result.mapping),
        total_rows=len(table.rows),
        processed_rows=len(entities),
        errors=[i for i in issues if i.severity == "error"],
        warnings=[i for i in issues if i.severity != "error"],
        suggestions=mapping_result.suggestions,
        unmapped_headers=mapping_result.unmapped,
        missing_fields=mapping_result.missing_fields,
    )
    logger.info(
        "%s (%s): %d/%d lignes transformées, %d erreurs, %d avertissements",
        file_name, kind, result.processed_rows, result.total_rows, len(result.errors), len(result.warnings),
    )
    if mapping_result.unmapped:
        logger.info("%s: en-têtes non mappés: %s", file_name, ", ".join(mapping_result.unmapped))
    return result


def parse_file(
    data: bytes,
    file_name: str,
    entity_kind: str,
    *,
    extension: str | None = None,
    config: Config | None = None,
) -> ParsingResult:
    """
    Parse un fichier en mémoire pour un type d'entité.

    Args:
        data: Contenu du fichier.
        file_name: Nom du fichier (l'extension en est déduite si non fournie).
        entity_kind: client, worker ou task.
        extension: Extension déclarée (csv, xlsx, xls).

    Raises:
        ExtractError: Fichier rejeté en entier (aucun résultat partiel).
    """
    config = config or Config()
    ext = extension if extension is not None else Path(file_name).suffix
    table = extract_table(data, ext, name=file_name, max_size=config.max_file_size)
    return parse_table(table, entity_kind, file_name=file_name, config=config)


def parse_path(filepath: str | Path, entity_kind: str, *, config: Config | None = None) -> ParsingResult:
    """Parse un fichier sur disque pour un type d'entité."""
    config = config or Config()
    table = read_table_file(filepath, max_size=config.max_file_size)
    return parse_table(table, entity_kind, file_name=Path(filepath).name, config=config)


def _source_name(source: FileSource) -> str:
    if isinstance(source, tuple):
        return source[0]
    return Path(source).name


def _parse_source(source: FileSource, entity_kind: str, config: Config) -> ParsingResult:
    if isinstance(source, tuple):
        name, data = source
        return parse_file(data, name, entity_kind, config=config)
    return parse_path(source, entity_kind, config=config)


def parse_files(files: Mapping[str, FileSource], config: Config | None = None) -> BatchResult:
    """
    Parse au plus un fichier par type d'entité, en parallèle.

    L'échec d'un fichier n'empêche pas le traitement des autres : il est
    consigné dans summary.failed_files sous la forme "<nom>: <raison>".

    Args:
        files: {type_entité: chemin ou (nom, contenu)}.
        config: Configuration (max_workers borne le parallélisme).

    Returns:
        BatchResult.
    """
    config = config or Config()
    for kind in files:
        check_entity_kind(kind)

    batch = BatchResult(summary=BatchSummary(total_files=len(files)))
    parsed: dict[str, ParsingResult] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(config.max_workers, len(files) or 1))) as ex:
        futs = {ex.submit(_parse_source, source, kind, config): (kind, source) for kind, source in files.items()}
        for fut in as_completed(futs):
            kind, source = futs[fut]
            name = _source_name(source)
            try:
                parsed[kind] = fut.result()
            except AlchimisteError as e:
                logger.warning("%s: fichier rejeté (%s)", name, e)
                batch.summary.failed_files.append(f"{name}: {e}")
            except Exception as e:
                logger.exception("%s: échec inattendu", name)
                batch.summary.failed_files.append(f"{name}: {e}")

    # Ordre stable : client, worker, task
    batch.results = {kind: parsed[kind] for kind in ENTITY_KINDS if kind in parsed}
    batch.summary.failed_files.sort()
    batch.summary.successful_files = len(batch.results)
    for result in batch.results.values():
        batch.summary.total_entities += result.processed_rows
        batch.summary.total_errors += len(result.errors)
        batch.summary.total_warnings += len(result.warnings)
    return batch


def run_pipeline(files: Mapping[str, FileSource], config: Config | None = None) -> PipelineResult:
    """
    Parse tous les fichiers puis valide les trois collections ensemble.

    La validation ne démarre qu'une fois toutes les collections construites
    (les références client -> tâche exigent la collection de tâches complète).
    """
    config = config or Config()
    batch = parse_files(files, config)
    validation = ValidationEngine(config).validate(
        batch.entities("client"),  # type: ignore[arg-type]
        batch.entities("worker"),  # type: ignore[arg-type]
        batch.entities("task"),  # type: ignore[arg-type]
    )
    return PipelineResult(batch=batch, validation=validation)
