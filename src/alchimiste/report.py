"""Agrégation des diagnostics, rapport qualité et onglet REPORT."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd

from alchimiste import __version__
from alchimiste.config import ENTITY_KINDS, Config
from alchimiste.export import build_mapping_df, entities_to_dataframe
from alchimiste.io_excel import save_xlsx
from alchimiste.pipeline import BatchSummary, PipelineResult
from alchimiste.schema import SCHEMA_VERSION, ValidationError
from alchimiste.validation import count_by_kind, quality_score

# (score minimal, statut), du meilleur au moins bon
QUALITY_LEVELS = ((95.0, "excellent"), (80.0, "good"), (60.0, "needs-attention"))
CRITICAL = "critical"
WARNINGS_REVIEW_THRESHOLD = 5

ISSUE_COLUMNS = [
    "id", "entity_type", "entity_id", "row", "field",
    "message", "severity", "suggested_fix", "auto_fixable",
]
SHEET_NAMES = {"client": "Clients", "worker": "Workers", "task": "Tasks"}


def quality_status(score: float) -> str:
    """excellent (>= 95), good (>= 80), needs-attention (>= 60), sinon critical."""
    for threshold, status in QUALITY_LEVELS:
        if score >= threshold:
            return status
    return CRITICAL


@dataclass
class DiagnosticsReport:
    """Vue agrégée : diagnostics de transformation + validation, score et recommandations."""

    issues: list[ValidationError]
    score: float
    status: str
    counts_by_kind: dict[str, dict[str, int]]
    entity_counts: dict[str, int]
    summary: BatchSummary
    recommendations: list[str] = field(default_factory=list)
    unmapped_headers: dict[str, list[str]] = field(default_factory=dict)
    missing_fields: dict[str, list[str]] = field(default_factory=dict)

    @property
    def n_errors(self) -> int:
        return sum(1 for i in self.issues if i.severity == "error")

    @property
    def n_warnings(self) -> int:
        return sum(1 for i in self.issues if i.severity == "warning")

    @property
    def n_infos(self) -> int:
        return sum(1 for i in self.issues if i.severity == "info")


def _records_with_errors(issues: list[ValidationError], kind: str) -> int:
    return len({i.entity_id for i in issues if i.entity_type == kind and i.severity == "error" and i.row >= 0})


def build_recommendations(report: DiagnosticsReport) -> list[str]:
    """Recommandations ordonnées : erreurs, avertissements, fichiers rejetés, puis par type d'entité."""
    recs: list[str] = []
    if report.n_errors:
        recs.append(f"Corriger {report.n_errors} erreur(s) bloquante(s)")
    if report.n_warnings > WARNINGS_REVIEW_THRESHOLD:
        recs.append(f"Revoir {report.n_warnings} avertissement(s) pour améliorer les données")
    for failed in report.summary.failed_files:
        recs.append(f"Fichier rejeté : {failed}")
    for kind in ENTITY_KINDS:
        n = _records_with_errors(report.issues, kind)
        if n:
            recs.append(f"Vérifier {n} enregistrement(s) {kind}")
        missing = report.missing_fields.get(kind)
        if missing:
            recs.append(f"Champs {kind} sans colonne source : {', '.join(missing)}")
    return recs


def build_report(result: PipelineResult, config: Config | None = None) -> DiagnosticsReport:
    """
    Agrège les diagnostics de tous les fichiers et de la validation.

    Le score est recalculé sur l'ensemble des diagnostics (transformation + validation).
    """
    config = config or Config()
    issues: list[ValidationError] = []
    for parsed in result.batch.results.values():
        issues.extend(parsed.issues)
    issues.extend(result.validation.issues)

    n_errors = sum(1 for i in issues if i.severity == "error")
    n_warnings = sum(1 for i in issues if i.severity == "warning")
    score = quality_score(n_errors, n_warnings, config)
    report = DiagnosticsReport(
        issues=issues,
        score=score,
        status=quality_status(score),
        counts_by_kind=count_by_kind(issues),
        entity_counts={kind: len(result.batch.entities(kind)) for kind in ENTITY_KINDS},
        summary=result.batch.summary,
        unmapped_headers={k: list(r.unmapped_headers) for k, r in result.batch.results.items()},
        missing_fields={k: list(r.missing_fields) for k, r in result.batch.results.items()},
    )
    report.recommendations = build_recommendations(report)
    return report


def build_issues_df(issues: list[ValidationError]) -> pd.DataFrame:
    """DataFrame de l'onglet ISSUES (une ligne par diagnostic)."""
    return pd.DataFrame([i.to_dict() for i in issues], columns=ISSUE_COLUMNS)


def build_report_df(report: DiagnosticsReport, config: Config) -> pd.DataFrame:
    """
    Construit le DataFrame pour l'onglet REPORT.

    Contient : résumé du lot, score et statut, compteurs par type d'entité,
    paramètres, recommandations, horodatage, version.
    """
    summary = report.summary
    rows = [
        ("Metric", "Value"),
        ("total_files", summary.total_files),
        ("successful_files", summary.successful_files),
        ("failed_files", "; ".join(summary.failed_files)),
        ("total_entities", summary.total_entities),
        ("nb_errors", report.n_errors),
        ("nb_warnings", report.n_warnings),
        ("nb_infos", report.n_infos),
        ("quality_score", report.score),
        ("quality_status", report.status),
        ("", ""),
        ("Entities", ""),
    ]
    for kind in ENTITY_KINDS:
        counts = report.counts_by_kind.get(kind, {})
        rows.append(
            (
                kind,
                f"{report.entity_counts.get(kind, 0)} entités, {counts.get('error', 0)} erreurs, "
                f"{counts.get('warning', 0)} avertissements, {counts.get('info', 0)} infos",
            )
        )
    rows.extend(
        [
            ("", ""),
            ("Parameters", ""),
            ("auto_accept_confidence", config.auto_accept_confidence),
            ("similarity_threshold", config.similarity_threshold),
            ("partial_word_threshold", config.partial_word_threshold),
            ("apply_pending_mappings", config.apply_pending_mappings),
            ("error_weight", config.error_weight),
            ("warning_weight", config.warning_weight),
            ("cross_entity_checks", config.cross_entity_checks),
            ("", ""),
            ("Recommendations", ""),
        ]
    )
    for i, rec in enumerate(report.recommendations):
        rows.append((f"recommendation_{i}", rec))
    rows.extend(
        [
            ("", ""),
            ("schema_version", SCHEMA_VERSION),
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )
    return pd.DataFrame(rows, columns=["Key", "Value"])


def write_workbook(
    output_path: str | Path,
    result: PipelineResult,
    report: DiagnosticsReport,
    config: Config,
) -> None:
    """Écrit le classeur de sortie : une feuille par type d'entité, MAPPING, ISSUES et REPORT."""
    sheets: dict[str, pd.DataFrame] = {}
    for kind in ENTITY_KINDS:
        if kind in result.batch.results:
            sheets[SHEET_NAMES[kind]] = entities_to_dataframe(result.batch.entities(kind), kind)
    sheets["MAPPING"] = build_mapping_df(list(result.batch.results.values()))
    sheets["ISSUES"] = build_issues_df(report.issues)
    sheets["REPORT"] = build_report_df(report, config)
    save_xlsx(output_path, sheets)


def print_report_console(report: DiagnosticsReport) -> None:
    """Affiche un résumé du rapport en console."""
    summary = report.summary
    print("\n=== Alchimiste Report ===")
    print(f"  Fichiers:         {summary.successful_files}/{summary.total_files}")
    for failed in summary.failed_files:
        print(f"    rejeté: {failed}")
    for kind in ENTITY_KINDS:
        counts = report.counts_by_kind.get(kind, {})
        print(
            f"  {kind.capitalize():<17} {report.entity_counts.get(kind, 0)} "
            f"(erreurs {counts.get('error', 0)}, avertissements {counts.get('warning', 0)})"
        )
    for kind, headers in report.unmapped_headers.items():
        if headers:
            print(f"  Non mappés ({kind}): {', '.join(headers)}")
    print(f"  Erreurs:          {report.n_errors}")
    print(f"  Avertissements:   {report.n_warnings}")
    print(f"  Infos:            {report.n_infos}")
    print(f"  Score qualité:    {report.score:.0f}/100 ({report.status})")
    for rec in report.recommendations:
        print(f"  - {rec}")
    print(f"  Version:          {__version__}")
    print(f"  Timestamp:        {datetime.now().isoformat()}")
    print("=========================\n")
