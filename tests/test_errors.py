"""Tests des cas d'erreur."""

from pathlib import Path

import pytest

from alchimiste import AlchimisteError
from alchimiste.config import Config, ConfigFileError
from alchimiste.io_excel import ExtractError, extract_table, read_table_file


def test_config_load_file_not_found(tmp_path: Path) -> None:
    """Config.load() lève ConfigFileError si le fichier n'existe pas."""
    missing = tmp_path / "inexistant.json"
    with pytest.raises(ConfigFileError, match="introuvable"):
        Config.load(missing)


def test_config_load_invalid_json(tmp_path: Path) -> None:
    """Config.load() lève ConfigFileError si le JSON est invalide."""
    bad_json = tmp_path / "config.json"
    bad_json.write_text("{ invalid json }", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="JSON invalide"):
        Config.load(bad_json)


def test_config_load_not_dict(tmp_path: Path) -> None:
    """Config.load() lève ConfigFileError si le JSON n'est pas un objet."""
    bad_config = tmp_path / "config.json"
    bad_config.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="objet JSON"):
        Config.load(bad_config)


def test_read_table_file_not_found(tmp_path: Path) -> None:
    """read_table_file() lève ExtractError si le fichier n'existe pas."""
    with pytest.raises(ExtractError, match="introuvable"):
        read_table_file(tmp_path / "inexistant.csv")


def test_extract_errors_share_base_class() -> None:
    with pytest.raises(AlchimisteError):
        extract_table(b"", "csv")


def test_cli_config_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    """La CLI retourne 1 et affiche un message en cas d'erreur de configuration."""
    from alchimiste.cli import main

    exit_code = main(["run", "--config", "/chemin/inexistant.json", "--dry-run"])
    assert exit_code == 1
    captured = capsys.readouterr()
    assert "Erreur de configuration" in captured.out
    assert "introuvable" in captured.out


def test_cli_invalid_config_values(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    from alchimiste.cli import main

    config_path = tmp_path / "config.json"
    config_path.write_text('{"auto_accept_confidence": 3}', encoding="utf-8")
    assert main(["run", "--config", str(config_path), "--dry-run"]) == 1
    assert "auto_accept_confidence" in capsys.readouterr().out


def test_cli_run_without_files(capsys: pytest.CaptureFixture[str]) -> None:
    from alchimiste.cli import main

    assert main(["run", "--dry-run"]) == 1
    assert "aucun fichier" in capsys.readouterr().out
