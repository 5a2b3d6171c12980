"""Export des entités nettoyées (CSV, DataFrame) et du mapping d'en-têtes."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from alchimiste.schema import Entity, ParsingResult, canonical_fields, entity_to_record

CSV_DELIMITER = ","
LIST_SEPARATOR = ", "


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        # Les listes sont toujours entre guillemets, même à un seul élément
        return _quote(LIST_SEPARATOR.join(str(v) for v in value))
    text = "" if value is None else str(value)
    if any(c in text for c in (CSV_DELIMITER, '"', "\n", "\r")):
        return _quote(text)
    return text


def _union_headers(records: list[dict[str, Any]]) -> list[str]:
    headers: list[str] = []
    for record in records:
        for key in record:
            if key not in headers:
                headers.append(key)
    return headers


def entities_to_csv(entities: Sequence[Entity]) -> str:
    """
    Sérialise une collection d'entités en texte CSV.

    L'en-tête est l'union ordonnée des champs canoniques de toutes les entités.
    Les listes sont jointes par ", " et toujours entre guillemets ; les autres
    valeurs ne le sont que si elles contiennent le séparateur, un guillemet ou
    un saut de ligne. Collection vide : chaîne vide.
    """
    records = [entity_to_record(e) for e in entities]
    if not records:
        return ""
    headers = _union_headers(records)
    lines = [CSV_DELIMITER.join(_format_value(h) for h in headers)]
    for record in records:
        lines.append(CSV_DELIMITER.join(_format_value(record.get(h, "")) for h in headers))
    return "\n".join(lines) + "\n"


def write_csv(entities: Sequence[Entity], output_path: str | Path) -> None:
    """Écrit entities_to_csv(entities) dans un fichier UTF-8."""
    Path(output_path).write_text(entities_to_csv(entities), encoding="utf-8")


def entities_to_dataframe(entities: Sequence[Entity], entity_kind: str | None = None) -> pd.DataFrame:
    """
    DataFrame des entités (une colonne par champ canonique, listes jointes par ", ").

    Avec entity_kind, les colonnes sont celles du schéma même si la collection est vide.
    """
    records = [
        {k: LIST_SEPARATOR.join(str(x) for x in v) if isinstance(v, list) else v for k, v in entity_to_record(e).items()}
        for e in entities
    ]
    columns = list(canonical_fields(entity_kind)) if entity_kind else _union_headers(records)
    return pd.DataFrame(records, columns=columns or None)


def build_mapping_df(results: Sequence[ParsingResult]) -> pd.DataFrame:
    """
    Table des propositions de mapping : une ligne par en-tête brut et par fichier.

    Colonnes : entity_kind, file_name, raw_header, canonical_field, confidence,
    reasoning, accepted, explanation.
    """
    rows = []
    for result in results:
        for s in result.suggestions:
            rows.append(
                {
                    "entity_kind": result.entity_kind,
                    "file_name": result.file_name,
                    "raw_header": s.raw_header,
                    "canonical_field": s.canonical_field,
                    "confidence": round(s.confidence, 4),
                    "reasoning": s.reasoning,
                    "accepted": s.accepted,
                    "explanation": s.explanation,
                }
            )
    columns = [
        "entity_kind", "file_name", "raw_header", "canonical_field",
        "confidence", "reasoning", "accepted", "explanation",
    ]
    return pd.DataFrame(rows, columns=columns)


def build_mapping_csv(results: Sequence[ParsingResult], output_path: str | Path) -> None:
    """Génère mapping.csv à partir de build_mapping_df."""
    build_mapping_df(results).to_csv(output_path, index=False, encoding="utf-8")
