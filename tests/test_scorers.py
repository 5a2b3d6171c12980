"""Tests des scorers de similarité."""

import pytest

from alchimiste.mapping.scorers import partial_word_score, string_similarity


def test_string_similarity_identical_after_compaction() -> None:
    assert string_similarity("Client_ID", "ClientID") == 1.0
    assert string_similarity("client id", "ClientID") == 1.0


def test_string_similarity_edit_distance() -> None:
    # une lettre manquante sur 10 : 1 - 1/10
    assert string_similarity("Clent Name", "ClientName") == pytest.approx(0.9)
    assert string_similarity("Priorty", "Priority") == pytest.approx(0.875)


def test_string_similarity_empty() -> None:
    assert string_similarity("", "") == 0.0
    assert string_similarity("abc", "") == 0.0
    assert string_similarity("---", "Duration") == 0.0


def test_string_similarity_unrelated() -> None:
    assert string_similarity("xyz", "Duration") < 0.3


def test_partial_word_score_overlap() -> None:
    # "level" et "priority" communs, 3 mots dans l'en-tête
    assert partial_word_score("Level of Priority", "PriorityLevel") == pytest.approx(2 / 3)


def test_partial_word_score_substring() -> None:
    # "slot" est contenu dans "slots"
    assert partial_word_score("slot", "AvailableSlots") == pytest.approx(0.5)


def test_partial_word_score_none() -> None:
    assert partial_word_score("Notes", "ClientName") == 0.0
    assert partial_word_score("", "ClientName") == 0.0
