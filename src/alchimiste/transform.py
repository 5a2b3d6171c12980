"""Transformation des lignes mappées en entités typées (client, worker, task)."""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from alchimiste.config import check_entity_kind
from alchimiste.schema import (
    CANONICAL_ATTRS,
    ENTITY_CLASSES,
    ID_FIELDS,
    ID_PREFIXES,
    INT_LIST_BOUNDS,
    JSON_FIELDS,
    NUMERIC_BOUNDS,
    STRING_LIST_FIELDS,
    TEXT_DEFAULTS,
    Entity,
    ValidationError,
    make_issue,
)

logger = logging.getLogger(__name__)

SOURCE = "transform"
DEFAULT_NUMBER = 1
EMPTY_JSON = "{}"

_VALID_ID = re.compile(r"^[A-Z0-9_\-]+$")
_UPPERCASE_LISTS = frozenset({"RequestedTaskIDs"})


@dataclass
class RowResult:
    """Résultat de la transformation d'une ligne : entité ou rien, plus ses diagnostics."""

    row: int
    entity: Entity | None
    issues: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.entity is not None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _is_blank(value: Any) -> bool:
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return _text(value) == ""


def _fmt(number: float) -> str:
    if isinstance(number, int):
        return str(number)
    if math.isfinite(number) and number.is_integer():
        return str(int(number))
    return repr(number)


def parse_number(value: Any) -> float | None:
    """Lit un nombre (int, float ou texte) ; None si illisible ou NaN."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(_text(value))
        except ValueError:
            return None
    return None if math.isnan(number) else number


def parse_list(value: Any) -> list[str]:
    """
    Lit une liste depuis une valeur structurée ou un texte.

    Accepte une liste Python, un tableau JSON (``["a", "b"]``), sa variante à
    apostrophes (``['a', 'b']``) ou un texte séparé par des virgules.
    Retourne des chaînes nettoyées, non vides ; les guillemets internes aux
    éléments sont conservés.
    """
    if isinstance(value, (list, tuple, set)):
        items = [_text(v) for v in value]
    else:
        text = _text(value)
        if not text:
            return []
        if text.startswith("[") and text.endswith("]"):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                items = [_text(v) for v in parsed]
            else:
                items = [_unquote(item.strip()) for item in text[1:-1].split(",")]
        else:
            items = text.split(",")
    cleaned = (item.strip() for item in items)
    return [item for item in cleaned if item]


def _unquote(item: str) -> str:
    if len(item) >= 2 and item[0] == item[-1] and item[0] in "'\"":
        return item[1:-1]
    return item


def sanitize_entity_id(value: Any, prefix: str, row_index: int) -> str:
    """
    Normalise un identifiant : sans espaces, en majuscules, préfixé.

    Un identifiant vide ou invalide est remplacé par ``<prefix>_ROW<n>``.
    """
    text = re.sub(r"\s+", "", _text(value)).upper()
    if not text or not _VALID_ID.match(text):
        return f"{prefix}_ROW{row_index + 1}"
    if not text.startswith(prefix):
        return f"{prefix}{text}"
    return text


class _RowBuilder:
    """Construit une entité champ par champ en accumulant les diagnostics."""

    def __init__(self, kind: str, row: Mapping[str, Any], row_index: int) -> None:
        self.kind = kind
        self.row = row
        self.row_index = row_index
        self.entity_id = f"ROW_{row_index}"
        self.issues: list[ValidationError] = []

    def _issue(
        self, field_name: str, message: str, severity: str, fix: str | None = None, *, auto_fixable: bool = False
    ) -> None:
        self.issues.append(
            make_issue(
                SOURCE, self.kind, self.entity_id, self.row_index, field_name, message, severity, fix,
                auto_fixable=auto_fixable,
            )
        )

    def number(self, name: str, bounds: tuple[int, int]) -> int:
        lo, hi = bounds
        raw = self.row.get(name)
        if _is_blank(raw):
            return DEFAULT_NUMBER
        number = parse_number(raw)
        if number is None:
            self._issue(
                name, f"{name} non numérique ({_text(raw)!r}) remplacé par {DEFAULT_NUMBER}", "warning",
                f"Valeur fixée à {DEFAULT_NUMBER}", auto_fixable=True,
            )
            return DEFAULT_NUMBER
        if not lo <= number <= hi:
            clamped = lo if number < lo else hi
            self._issue(
                name, f"{name} ajusté à la plage valide ({lo}-{hi}) : {_fmt(number)} → {clamped}", "warning",
                f"Valeur fixée à {clamped}", auto_fixable=True,
            )
            return clamped
        if not number.is_integer():
            # arrondi au demi supérieur
            rounded = math.floor(number + 0.5)
            self._issue(
                name, f"{name} arrondi à l'entier : {_fmt(number)} → {rounded}", "warning",
                f"Valeur fixée à {rounded}", auto_fixable=True,
            )
            return rounded
        return int(number)

    def int_list(self, name: str, bounds: tuple[int, int]) -> list[int]:
        lo, hi = bounds
        kept: list[int] = []
        removed: list[str] = []
        for token in parse_list(self.row.get(name)):
            number = parse_number(token)
            if number is not None and math.isfinite(number) and number.is_integer() and lo <= number <= hi:
                kept.append(int(number))
            else:
                removed.append(token)
        if removed:
            kept_text = ", ".join(str(n) for n in kept)
            self._issue(
                name,
                f"Valeurs invalides retirées de {name} (entiers {lo}-{hi} attendus) : {', '.join(removed)} ; conservées : [{kept_text}]",
                "warning",
                f"Conserver [{kept_text}]",
                auto_fixable=True,
            )
        return kept

    def string_list(self, name: str) -> list[str]:
        items = parse_list(self.row.get(name))
        if name in _UPPERCASE_LISTS:
            items = [item.upper() for item in items]
        return items

    def json_text(self, name: str) -> str:
        raw = self.row.get(name)
        if isinstance(raw, (dict, list)):
            return json.dumps(raw, ensure_ascii=False)
        text = _text(raw)
        if not text:
            return EMPTY_JSON
        try:
            json.loads(text)
        except json.JSONDecodeError as e:
            if text != EMPTY_JSON:
                self._issue(
                    name, f"JSON invalide dans {name} : {e.msg} (position {e.pos})", "error",
                    "Vérifier la syntaxe JSON",
                )
        return text

    def build(self) -> Entity | None:
        kind = self.kind
        attrs = CANONICAL_ATTRS[kind]
        if all(_is_blank(self.row.get(name)) for name in attrs):
            self._issue(
                "ALL", "Ligne ignorée : aucune valeur pour les champs connus", "warning",
                "Vérifier le mapping des en-têtes",
            )
            return None

        id_field = ID_FIELDS[kind]
        self.entity_id = sanitize_entity_id(self.row.get(id_field), ID_PREFIXES[kind], self.row_index)
        values: dict[str, Any] = {id_field: self.entity_id}
        for name, default in TEXT_DEFAULTS[kind].items():
            values[name] = _text(self.row.get(name)) or default
        for name, bounds in NUMERIC_BOUNDS[kind].items():
            values[name] = self.number(name, bounds)
        for name in STRING_LIST_FIELDS[kind]:
            values[name] = self.string_list(name)
        for name, bounds in INT_LIST_BOUNDS[kind].items():
            values[name] = self.int_list(name, bounds)
        for name in JSON_FIELDS[kind]:
            values[name] = self.json_text(name)

        return ENTITY_CLASSES[kind](**{attrs[name]: value for name, value in values.items()})


def transform_row(entity_kind: str, row: Mapping[str, Any], row_index: int) -> RowResult:
    """
    Transforme une ligne mappée (champ canonique -> valeur brute) en entité.

    Ne lève jamais : une exception inattendue devient un diagnostic ``error``
    sur le champ ``ALL`` et aucune entité n'est produite pour la ligne.

    Args:
        entity_kind: client, worker ou task.
        row: Valeurs brutes indexées par champ canonique.
        row_index: Index (0-based) de la ligne, pour les diagnostics.

    Returns:
        RowResult.
    """
    kind = check_entity_kind(entity_kind)
    builder = _RowBuilder(kind, row, row_index)
    try:
        entity = builder.build()
    except Exception as e:
        logger.warning("%s ligne %d: transformation impossible (%s)", kind, row_index, e, exc_info=True)
        issue = make_issue(
            SOURCE, kind, f"ROW_{row_index}", row_index, "ALL",
            f"Échec de la transformation de la ligne : {e}", "error",
        )
        return RowResult(row_index, None, [issue])
    return RowResult(row_index, entity, builder.issues)


def transform_rows(entity_kind: str, rows: Iterable[Mapping[str, Any]]) -> list[RowResult]:
    """Transforme toutes les lignes d'un fichier (indépendamment les unes des autres)."""
    return [transform_row(entity_kind, row, i) for i, row in enumerate(rows)]


def apply_header_mapping(
    rows: Iterable[Mapping[str, Any]],
    mapping: Mapping[str, str],
) -> list[dict[str, Any]]:
    """
    Renomme les clés des lignes brutes selon le mapping d'en-têtes.

    Les en-têtes non mappés conservent leur nom. Si plusieurs en-têtes visent le
    même champ, la dernière valeur non vide l'emporte.
    """
    mapped_rows: list[dict[str, Any]] = []
    for row in rows:
        out: dict[str, Any] = {}
        for raw_header, value in row.items():
            target = mapping.get(raw_header, raw_header)
            if target in out and _is_blank(value):
                continue
            out[target] = value
        mapped_rows.append(out)
    return mapped_rows
