"""Tests de normalisation."""

from alchimiste.normalize import compact_key, norm_text, split_camel_words, split_header_words


def test_norm_text_basic() -> None:
    # Espaces multiples → espace simple, lower, strip
    assert norm_text("  Hello  World  ") == "hello world"
    assert norm_text("  ABC  ", lower=False) == "ABC"


def test_norm_text_whitespace() -> None:
    assert norm_text("a\t\n  b") == "a b"
    assert norm_text("  ") == ""


def test_norm_text_remove_diacritics() -> None:
    assert norm_text("Priorité", remove_diacritics=True) == "priorite"
    assert norm_text("ﬁ") == "fi"  # ligature -> fi


def test_norm_text_none_nan() -> None:
    assert norm_text(None) == ""
    assert norm_text(float("nan")) == ""


def test_compact_key() -> None:
    assert compact_key("Client_ID") == "clientid"
    assert compact_key(" Client ID ") == "clientid"
    assert compact_key("Qualification-Level") == "qualificationlevel"
    assert compact_key("Durée (j)") == "dureej"
    assert compact_key("***") == ""


def test_split_header_words() -> None:
    assert split_header_words("Max Load-Per_phase") == ["max", "load", "per", "phase"]
    assert split_header_words("  Level   of Priority ") == ["level", "of", "priority"]
    assert split_header_words("") == []


def test_split_camel_words() -> None:
    assert split_camel_words("RequestedTaskIDs") == ["requested", "task", "ids"]
    assert split_camel_words("ClientID") == ["client", "id"]
    assert split_camel_words("AttributesJSON") == ["attributes", "json"]
    assert split_camel_words("MaxLoadPerPhase") == ["max", "load", "per", "phase"]
