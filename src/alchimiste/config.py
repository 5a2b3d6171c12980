"""Configuration et chargement du fichier config JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

ENTITY_KINDS = ("client", "worker", "task")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class AlchimisteError(Exception):
    """Exception de base pour Alchimiste."""


class ConfigError(AlchimisteError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFileError(AlchimisteError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


def check_entity_kind(kind: str) -> str:
    """Vérifie qu'un type d'entité est connu et le retourne."""
    if kind not in ENTITY_KINDS:
        raise ConfigError(f"type d'entité invalide: {kind!r}. Valides: {list(ENTITY_KINDS)}")
    return kind


def _check_unit(name: str, value: float) -> None:
    if not 0 <= value <= 1:
        raise ConfigError(f"{name} doit être entre 0 et 1 (got {value})")


@dataclass
class Config:
    """Configuration principale d'Alchimiste."""

    clients_file: str | None = None
    workers_file: str | None = None
    tasks_file: str | None = None

    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    # Seuils du mapping d'en-têtes
    auto_accept_confidence: float = 0.8
    similarity_threshold: float = 0.6
    partial_word_threshold: float = 0.4
    apply_pending_mappings: bool = True
    # {type_entité: {en-tête brut: champ canonique}}
    header_overrides: dict[str, dict[str, str]] = field(default_factory=dict)

    # Score qualité
    error_weight: float = 10.0
    warning_weight: float = 2.0

    cross_entity_checks: bool = True
    max_list_length: int = 50
    max_string_length: int = 1000
    max_json_size: int = 5000

    max_workers: int = 3

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Config:
        max_file_size = int(d.get("max_file_size", DEFAULT_MAX_FILE_SIZE))
        auto_accept = float(d.get("auto_accept_confidence", 0.8))
        similarity = float(d.get("similarity_threshold", 0.6))
        partial = float(d.get("partial_word_threshold", 0.4))
        error_weight = float(d.get("error_weight", 10.0))
        warning_weight = float(d.get("warning_weight", 2.0))
        max_list_length = int(d.get("max_list_length", 50))
        max_string_length = int(d.get("max_string_length", 1000))
        max_json_size = int(d.get("max_json_size", 5000))
        max_workers = int(d.get("max_workers", 3))
        overrides = d.get("header_overrides", {}) or {}

        if max_file_size <= 0:
            raise ConfigError(f"max_file_size doit être > 0 (got {max_file_size})")
        _check_unit("auto_accept_confidence", auto_accept)
        _check_unit("similarity_threshold", similarity)
        _check_unit("partial_word_threshold", partial)
        if partial > similarity:
            raise ConfigError(
                f"partial_word_threshold ({partial}) doit être <= similarity_threshold ({similarity})"
            )
        if error_weight < 0 or warning_weight < 0:
            raise ConfigError("error_weight et warning_weight doivent être >= 0")
        for name, value in (
            ("max_list_length", max_list_length),
            ("max_string_length", max_string_length),
            ("max_json_size", max_json_size),
            ("max_workers", max_workers),
        ):
            if value < 1:
                raise ConfigError(f"{name} doit être >= 1 (got {value})")

        if not isinstance(overrides, dict):
            raise ConfigError("header_overrides doit être un objet {type: {en-tête: champ}}")
        header_overrides = {check_entity_kind(k): dict(v) for k, v in overrides.items()}
        _check_overrides(header_overrides)

        return cls(
            clients_file=d.get("clients_file"),
            workers_file=d.get("workers_file"),
            tasks_file=d.get("tasks_file"),
            max_file_size=max_file_size,
            auto_accept_confidence=auto_accept,
            similarity_threshold=similarity,
            partial_word_threshold=partial,
            apply_pending_mappings=bool(d.get("apply_pending_mappings", True)),
            header_overrides=header_overrides,
            error_weight=error_weight,
            warning_weight=warning_weight,
            cross_entity_checks=bool(d.get("cross_entity_checks", True)),
            max_list_length=max_list_length,
            max_string_length=max_string_length,
            max_json_size=max_json_size,
            max_workers=max_workers,
        )

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """
        Charge la configuration depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        config = cls.from_dict(d)
        config.resolve_paths(path.parent)
        return config

    def resolve_paths(self, base_dir: Path) -> None:
        """
        Résout les chemins relatifs par rapport au répertoire de base (ex. dossier du fichier config).

        Modifie clients_file, workers_file et tasks_file en place.
        """
        base = Path(base_dir)
        for attr in ("clients_file", "workers_file", "tasks_file"):
            value = getattr(self, attr)
            if value and not Path(value).is_absolute():
                setattr(self, attr, str((base / value).resolve()))

    def input_files(self) -> dict[str, str]:
        """Retourne {type_entité: chemin} pour les fichiers renseignés."""
        files = {
            "client": self.clients_file,
            "worker": self.workers_file,
            "task": self.tasks_file,
        }
        return {kind: path for kind, path in files.items() if path}


def _check_overrides(overrides: dict[str, dict[str, str]]) -> None:
    from alchimiste.schema import canonical_fields

    for kind, mapping in overrides.items():
        valid = canonical_fields(kind)
        for raw, target in mapping.items():
            if target not in valid:
                raise ConfigError(
                    f"header_overrides[{kind!r}][{raw!r}]: champ inconnu {target!r}. Valides: {list(valid)}"
                )
