"""Tests du module config."""

from pathlib import Path

import pytest

from alchimiste.config import Config, ConfigError, check_entity_kind


def test_config_defaults() -> None:
    config = Config()
    assert config.max_file_size == 10 * 1024 * 1024
    assert config.auto_accept_confidence == 0.8
    assert config.similarity_threshold == 0.6
    assert config.partial_word_threshold == 0.4
    assert config.apply_pending_mappings is True
    assert config.error_weight == 10.0
    assert config.warning_weight == 2.0
    assert config.max_workers == 3


def test_config_resolve_paths(tmp_path: Path) -> None:
    """Les chemins relatifs sont résolus par rapport au dossier du fichier config."""
    config_dir = tmp_path / "mon_projet"
    config_dir.mkdir()
    (config_dir / "data").mkdir()

    config = Config(clients_file="data/clients.csv", tasks_file="data/tasks.xlsx")
    config.resolve_paths(config_dir)

    assert Path(config.clients_file).name == "clients.csv"
    assert Path(config.clients_file).parent.parent == config_dir.resolve()
    assert Path(config.tasks_file).is_absolute()
    assert config.workers_file is None


def test_config_load_resolves_paths(tmp_path: Path) -> None:
    """Config.load() résout automatiquement les chemins relatifs."""
    (tmp_path / "data").mkdir()
    config_path = tmp_path / "config.json"
    config_path.write_text(
        """
        {
            "clients_file": "data/clients.csv",
            "workers_file": "data/workers.xlsx",
            "similarity_threshold": 0.7
        }
    """,
        encoding="utf-8",
    )

    config = Config.load(config_path)
    assert Path(config.clients_file).is_absolute()
    assert "data" in config.workers_file
    assert config.similarity_threshold == 0.7


def test_config_input_files() -> None:
    config = Config(clients_file="c.csv", tasks_file="t.csv")
    assert config.input_files() == {"client": "c.csv", "task": "t.csv"}


def test_config_validation_threshold_out_of_range() -> None:
    with pytest.raises(ConfigError, match="similarity_threshold"):
        Config.from_dict({"similarity_threshold": 1.5})


def test_config_validation_partial_above_similarity() -> None:
    with pytest.raises(ConfigError, match="partial_word_threshold"):
        Config.from_dict({"similarity_threshold": 0.5, "partial_word_threshold": 0.7})


def test_config_validation_negative_weight() -> None:
    with pytest.raises(ConfigError, match="error_weight"):
        Config.from_dict({"error_weight": -1})


def test_config_validation_max_workers() -> None:
    with pytest.raises(ConfigError, match="max_workers doit être >= 1"):
        Config.from_dict({"max_workers": 0})


def test_config_validation_max_file_size() -> None:
    with pytest.raises(ConfigError, match="max_file_size"):
        Config.from_dict({"max_file_size": 0})


def test_config_header_overrides_valid() -> None:
    config = Config.from_dict({"header_overrides": {"worker": {"Max Load": "MaxLoadPerPhase"}}})
    assert config.header_overrides == {"worker": {"Max Load": "MaxLoadPerPhase"}}


def test_config_header_overrides_unknown_kind() -> None:
    with pytest.raises(ConfigError, match="type d'entité invalide"):
        Config.from_dict({"header_overrides": {"supplier": {"A": "B"}}})


def test_config_header_overrides_unknown_field() -> None:
    with pytest.raises(ConfigError, match="champ inconnu"):
        Config.from_dict({"header_overrides": {"client": {"Notes": "Comment"}}})


def test_config_header_overrides_not_dict() -> None:
    with pytest.raises(ConfigError, match="header_overrides"):
        Config.from_dict({"header_overrides": ["client"]})


def test_check_entity_kind() -> None:
    assert check_entity_kind("task") == "task"
    with pytest.raises(ConfigError):
        check_entity_kind("tasks")
    # ConfigError reste une ValueError
    with pytest.raises(ValueError):
        check_entity_kind("")
