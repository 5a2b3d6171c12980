"""Schémas et types pour le mapping d'en-têtes."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FieldMapping:
    """Proposition de mapping pour un en-tête brut."""

    raw_header: str
    canonical_field: str  # "" si non mappé
    confidence: float  # 0.0 - 1.0
    reasoning: str  # exact, case-insensitive, similarity, partial-word, none
    accepted: bool = False
    explanation: str = ""

    def __repr__(self) -> str:
        target = self.canonical_field or "-"
        return f"FieldMapping({self.raw_header!r} -> {target}, confidence={self.confidence:.2f})"


@dataclass
class HeaderMappingResult:
    """Résultat du mapping pour une liste d'en-têtes."""

    mapping: dict[str, str]  # en-tête brut -> champ canonique
    suggestions: list[FieldMapping]
    unmapped: list[str]
    missing_fields: list[str] = field(default_factory=list)
