"""Normalisation de texte et découpage des en-têtes."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

# Frontières camelCase : acronymes (ID, IDs, JSON), mots capitalisés, chiffres
_CAMEL_TOKEN = re.compile(r"[A-Z]{2,}s?(?![a-z])|[A-Z]?[a-z]+|[A-Z]|\d+")
_SEPARATORS = re.compile(r"[\s_\-]+")


def _remove_diacritics(s: str) -> str:
    """Retire les diacritiques (accents) d'une chaîne."""
    nfd = unicodedata.normalize("NFD", s)
    return "".join(c for c in nfd if unicodedata.category(c) != "Mn")


def _is_missing(s: Any) -> bool:
    return s is None or (isinstance(s, float) and (s != s or s in (float("inf"), float("-inf"))))


def norm_text(
    s: str | float | int | None,
    *,
    lower: bool = True,
    strip: bool = True,
    remove_diacritics: bool = False,
) -> str:
    """
    Normalise un texte : NFKC, espaces multiples → espace simple, lower, strip.

    Args:
        s: Valeur à normaliser (convertie en str si numérique).
        lower: Mettre en minuscules.
        strip: Supprimer espaces en début/fin.
        remove_diacritics: Supprimer les accents.

    Returns:
        Chaîne normalisée.
    """
    if _is_missing(s):
        return ""
    text = str(s).strip() if strip else str(s)
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    if strip:
        text = text.strip()
    if lower:
        text = text.lower()
    if remove_diacritics:
        text = _remove_diacritics(text)
    return text


def compact_key(s: str) -> str:
    """Clé de comparaison : minuscules, sans accents, alphanumérique uniquement."""
    text = norm_text(s, remove_diacritics=True)
    return re.sub(r"[^a-z0-9]", "", text)


def split_header_words(header: str) -> list[str]:
    """Découpe un en-tête brut sur espaces, underscores et tirets (minuscules)."""
    text = norm_text(header)
    return [w for w in _SEPARATORS.split(text) if w]


def split_camel_words(name: str) -> list[str]:
    """
    Découpe un nom canonique sur ses frontières camelCase.

    >>> split_camel_words("RequestedTaskIDs")
    ['requested', 'task', 'ids']
    """
    return [t.lower() for t in _CAMEL_TOKEN.findall(name)]
