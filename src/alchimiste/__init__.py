"""Alchimiste - Ingestion et validation de tableurs clients, workers et tâches."""

__version__ = "0.1.0"

from alchimiste.config import AlchimisteError, ConfigError, ConfigFileError  # noqa: E402
from alchimiste.io_excel import ExtractError  # noqa: E402

__all__ = [
    "__version__",
    "AlchimisteError",
    "ConfigError",
    "ConfigFileError",
    "ExtractError",
]
