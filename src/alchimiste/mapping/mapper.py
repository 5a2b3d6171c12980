"""Moteur de mapping : en-têtes bruts -> champs canoniques, avec confiance."""

from __future__ import annotations

import logging

from alchimiste.config import Config, ConfigError, check_entity_kind
from alchimiste.mapping.schema import FieldMapping, HeaderMappingResult
from alchimiste.mapping.scorers import partial_word_score, string_similarity
from alchimiste.schema import FIELD_ALIASES, canonical_fields

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 1.0
CASE_INSENSITIVE_CONFIDENCE = 0.95


def mapping_from_suggestions(
    suggestions: list[FieldMapping],
    *,
    accepted_only: bool = False,
) -> dict[str, str]:
    """Construit {en-tête brut: champ canonique} à partir des propositions."""
    return {
        s.raw_header: s.canonical_field
        for s in suggestions
        if s.canonical_field and (s.accepted or not accepted_only)
    }


class HeaderMapper:
    """
    Propose un champ canonique pour chaque en-tête brut.

    Fonction pure des en-têtes et du type d'entité : mêmes entrées, même sortie.
    Ordre de priorité (le premier qui aboutit l'emporte) :

    1. correspondance exacte dans la table d'alias (confiance 1.0) ;
    2. correspondance insensible à la casse (0.95) ;
    3. meilleure similarité d'édition avec un champ canonique ou un alias (> 0.6) ;
    4. recouvrement de mots avec un champ canonique (> 0.4) ;
    5. sinon non mappé (0).
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()
        self.auto_accept = self.config.auto_accept_confidence
        self.similarity_threshold = self.config.similarity_threshold
        self.partial_threshold = self.config.partial_word_threshold
        self.overrides = self.config.header_overrides

    def suggest(self, header: str, entity_kind: str) -> FieldMapping:
        """Calcule la proposition de mapping d'un en-tête."""
        kind = check_entity_kind(entity_kind)
        normalized = header.strip()
        aliases = FIELD_ALIASES[kind]

        override = self.overrides.get(kind, {}).get(normalized)
        if override:
            return FieldMapping(
                normalized, override, EXACT_CONFIDENCE, "exact", True, "Mapping imposé par la configuration"
            )

        if normalized in aliases:
            return self._finish(
                normalized, aliases[normalized], EXACT_CONFIDENCE, "exact", "Correspondance exacte dans la table d'alias"
            )

        lower = normalized.lower()
        for key, target in aliases.items():
            if key.lower() == lower:
                return self._finish(
                    normalized, target, CASE_INSENSITIVE_CONFIDENCE, "case-insensitive",
                    f"Correspondance insensible à la casse avec {key!r}",
                )

        best_field = ""
        best_score = 0.0
        explanation = ""
        for target in canonical_fields(kind):
            score = string_similarity(normalized, target)
            if score > best_score and score > self.similarity_threshold:
                best_field, best_score = target, score
                explanation = f"Nom de champ similaire ({round(score * 100)}%)"
        for key, target in aliases.items():
            score = string_similarity(normalized, key)
            if score > best_score and score > self.similarity_threshold:
                best_field, best_score = target, score
                explanation = f"Proche de l'en-tête connu {key!r} ({round(score * 100)}%)"
        if best_field:
            return self._finish(normalized, best_field, best_score, "similarity", explanation)

        for target in canonical_fields(kind):
            score = partial_word_score(normalized, target)
            if score > best_score and score > self.partial_threshold:
                best_field, best_score = target, score
                explanation = f"Mots communs avec {target} ({round(score * 100)}%)"
        if best_field:
            return self._finish(normalized, best_field, best_score, "partial-word", explanation)

        return FieldMapping(normalized, "", 0.0, "none", False, "Aucun champ correspondant")

    def _finish(
        self, header: str, target: str, confidence: float, reasoning: str, explanation: str
    ) -> FieldMapping:
        return FieldMapping(
            raw_header=header,
            canonical_field=target,
            confidence=confidence,
            reasoning=reasoning,
            accepted=confidence > self.auto_accept,
            explanation=explanation,
        )

    def map_headers(self, headers: list[str], entity_kind: str) -> HeaderMappingResult:
        """
        Propose un mapping pour tous les en-têtes d'un fichier.

        Returns:
            HeaderMappingResult : mapping appliqué, propositions (une par en-tête),
            en-têtes non appliqués et champs canoniques sans en-tête. Un champ
            canonique ne reçoit qu'un en-tête (la meilleure confiance).
        """
        kind = check_entity_kind(entity_kind)
        suggestions = [self.suggest(h, kind) for h in headers]
        for s in suggestions:
            logger.debug("%s: %r -> %r (%.2f, %s)", kind, s.raw_header, s.canonical_field, s.confidence, s.reasoning)

        self._resolve_collisions(suggestions, kind)
        mapping = mapping_from_suggestions(suggestions, accepted_only=not self.config.apply_pending_mappings)
        unmapped = [s.raw_header for s in suggestions if s.raw_header not in mapping]
        mapped_fields = set(mapping.values())
        missing = [f for f in canonical_fields(kind) if f not in mapped_fields]
        return HeaderMappingResult(
            mapping=mapping,
            suggestions=suggestions,
            unmapped=unmapped,
            missing_fields=missing,
        )

    @staticmethod
    def _resolve_collisions(suggestions: list[FieldMapping], kind: str) -> None:
        """
        Un seul en-tête par champ canonique : la meilleure confiance l'emporte
        (à égalité, le premier en-tête). Les autres sont rejetés en place.
        """
        winners: dict[str, FieldMapping] = {}
        for s in suggestions:
            if not s.canonical_field:
                continue
            best = winners.get(s.canonical_field)
            if best is None or s.confidence > best.confidence:
                winners[s.canonical_field] = s
        for s in suggestions:
            best = winners.get(s.canonical_field)
            if best is None or best is s:
                continue
            logger.info(
                "%s: %r ignoré, %s déjà mappé depuis %r (%.2f > %.2f)",
                kind, s.raw_header, s.canonical_field, best.raw_header, best.confidence, s.confidence,
            )
            s.explanation = f"{s.canonical_field} déjà mappé depuis {best.raw_header!r}"
            s.canonical_field = ""
            s.confidence = 0.0
            s.reasoning = "none"
            s.accepted = False

    def resolve_pending(
        self,
        suggestions: list[FieldMapping],
        choices: dict[str, str | None],
        entity_kind: str,
    ) -> None:
        """
        Applique les choix utilisateur aux propositions (en place).

        choices: {en-tête brut: champ canonique ou None}
        None = pas de mapping (rejeté).
        """
        valid = canonical_fields(entity_kind)
        for s in suggestions:
            if s.raw_header not in choices:
                continue
            target = choices[s.raw_header]
            if target is None:
                s.canonical_field = ""
                s.confidence = 0.0
                s.reasoning = "none"
                s.accepted = False
                s.explanation = "Rejeté par l'utilisateur"
                continue
            if target not in valid:
                raise ConfigError(f"Champ inconnu pour {entity_kind}: {target!r}. Valides: {list(valid)}")
            if target != s.canonical_field:
                s.canonical_field = target
                s.confidence = EXACT_CONFIDENCE
                s.reasoning = "exact"
            s.accepted = True
            s.explanation = "Confirmé par l'utilisateur"
