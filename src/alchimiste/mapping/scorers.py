"""Calcul des scores de similarité entre en-têtes et champs canoniques."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from alchimiste.normalize import compact_key, split_camel_words, split_header_words


def string_similarity(a: str, b: str) -> float:
    """
    Similarité (0-1) par distance d'édition normalisée.

    Les deux chaînes sont réduites à leurs caractères alphanumériques en
    minuscules avant comparaison : "Client_ID" et "ClientID" sont identiques.
    Score = 1 - distance / longueur_max.
    """
    s = compact_key(a)
    t = compact_key(b)
    if s == t:
        return 1.0 if s else 0.0
    if not s or not t:
        return 0.0
    return float(Levenshtein.normalized_similarity(s, t))


def partial_word_score(header: str, canonical_field: str) -> float:
    """
    Recouvrement de mots (0-1) entre un en-tête brut et un champ canonique.

    L'en-tête est découpé sur espaces/underscores/tirets, le champ sur ses
    frontières camelCase. Un mot de l'en-tête compte s'il est contenu dans un
    mot du champ (ou l'inverse). Score = communs / max(nb mots en-tête, nb mots champ).
    """
    header_words = split_header_words(header)
    field_words = split_camel_words(canonical_field)
    if not header_words or not field_words:
        return 0.0
    common = [
        w for w in header_words if any(fw in w or w in fw for fw in field_words)
    ]
    return len(common) / max(len(header_words), len(field_words))
