"""I/O tableurs : extraction des tables brutes (CSV, Excel) et sauvegarde xlsx."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from alchimiste.config import DEFAULT_MAX_FILE_SIZE, AlchimisteError

logger = logging.getLogger(__name__)

# Formats supportés
SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls")
_CSV_DELIMITERS = [",", ";", "\t", "|"]
_CSV_ENCODINGS = ("utf-8-sig", "latin-1")


class ExtractError(AlchimisteError):
    """Erreur fatale d'extraction : le fichier entier est rejeté."""


@dataclass(frozen=True)
class RawTable:
    """En-têtes et lignes brutes (toutes les valeurs sont des chaînes)."""

    headers: list[str]
    rows: list[dict[str, str]]


def _get_engine(extension: str) -> str:
    """Retourne le moteur pandas selon l'extension."""
    if extension == "xls":
        return "xlrd"
    return "openpyxl"


def normalize_extension(extension: str) -> str:
    return extension.strip().lower().lstrip(".")


def _cell_to_str(val: object) -> str:
    if val is None:
        return ""
    try:
        if pd.isna(val):  # type: ignore[arg-type]
            return ""
    except (TypeError, ValueError):
        pass
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def _detect_csv_delimiter(text: str) -> str | None:
    sample_lines: list[str] = []
    for line in text.splitlines():
        if line.strip() == "":
            continue
        sample_lines.append(line)
        if len(sample_lines) >= 5:
            break
    if not sample_lines:
        return None
    sample = "\n".join(sample_lines)
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS)
        return dialect.delimiter
    except csv.Error:
        first = sample_lines[0]
        counts = {d: first.count(d) for d in _CSV_DELIMITERS}
        best = max(counts, key=counts.get)  # type: ignore[arg-type]
        return best if counts[best] > 0 else None


def _decode(data: bytes, name: str) -> str:
    for encoding in _CSV_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ExtractError(f"Encodage illisible pour {name}")


def _read_csv_grid(data: bytes, name: str) -> pd.DataFrame:
    text = _decode(data, name)
    delimiter = _detect_csv_delimiter(text) or ","

    def _read(engine: str | None = None, on_bad_lines: str | None = None) -> pd.DataFrame:
        kwargs: dict[str, object] = {
            "dtype": str,
            "header": None,
            "sep": delimiter,
            "keep_default_na": False,
            "skip_blank_lines": True,
        }
        if engine is not None:
            kwargs["engine"] = engine
        if on_bad_lines is not None:
            kwargs["on_bad_lines"] = on_bad_lines
        return pd.read_csv(io.StringIO(text), **kwargs)

    try:
        return _read()
    except pd.errors.EmptyDataError as e:
        raise ExtractError(f"Aucune donnée dans {name}") from e
    except pd.errors.ParserError:
        # Lignes de longueur irrégulière : relecture tolérante, lignes invalides ignorées.
        logger.warning("%s: lignes mal formées ignorées (séparateur %r)", name, delimiter)
        try:
            return _read(engine="python", on_bad_lines="warn")
        except Exception as e:
            raise ExtractError(
                f"Erreur CSV {name}: {e}. Vérifiez la ligne d'en-tête et le séparateur."
            ) from e
    except Exception as e:
        raise ExtractError(f"Erreur CSV {name}: {e}") from e


def _read_excel_grid(data: bytes, name: str, extension: str) -> pd.DataFrame:
    engine = _get_engine(extension)
    try:
        xl = pd.ExcelFile(io.BytesIO(data), engine=engine)
    except ImportError as e:
        raise ExtractError(f"Format .{extension} requis: pip install {engine}. Détail: {e}") from e
    except Exception as e:
        raise ExtractError(f"Impossible de lire le fichier {name}: {e}") from e

    if not xl.sheet_names:
        raise ExtractError(f"Aucune feuille dans {name}")
    sheet_name = xl.sheet_names[0]
    try:
        return pd.read_excel(xl, sheet_name=sheet_name, dtype=str, header=None)
    except Exception as e:
        raise ExtractError(f"Erreur feuille '{sheet_name}' dans {name}: {e}") from e
    finally:
        xl.close()


def _grid_to_table(df: pd.DataFrame, name: str) -> RawTable:
    grid = [[_cell_to_str(v) for v in row] for row in df.itertuples(index=False, name=None)]
    grid = [row for row in grid if any(cell != "" for cell in row)]
    if not grid:
        raise ExtractError(f"Aucune ligne dans la première feuille de {name}")

    headers = [h.strip() or f"column_{i + 1}" for i, h in enumerate(grid[0])]
    rows: list[dict[str, str]] = []
    for cells in grid[1:]:
        record: dict[str, str] = {}
        for header, cell in zip(headers, cells):
            record[header] = cell
        for header in headers[len(cells):]:
            record.setdefault(header, "")
        rows.append(record)
    return RawTable(headers=headers, rows=rows)


def extract_table(
    data: bytes,
    extension: str,
    *,
    name: str = "<buffer>",
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> RawTable:
    """
    Décode un tampon d'octets en en-têtes + lignes brutes.

    Seule la première feuille est lue pour les classeurs. Les en-têtes et les
    cellules sont nettoyés des espaces, les lignes vides sont ignorées et toutes
    les cellules sont converties en chaînes.

    Args:
        data: Contenu du fichier.
        extension: Extension déclarée (csv, xlsx, xls), avec ou sans point.
        name: Nom du fichier pour les messages.
        max_size: Taille maximale acceptée en octets.

    Returns:
        RawTable.

    Raises:
        ExtractError: Tampon vide ou trop gros, extension non supportée, classeur
            sans feuille, feuille sans ligne, contenu illisible.
    """
    ext = normalize_extension(extension)
    if ext not in SUPPORTED_EXTENSIONS:
        raise ExtractError(
            f"Type de fichier non supporté: {ext or '(aucun)'} ({name}). Valides: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    if not data:
        raise ExtractError(f"Fichier vide: {name}")
    if len(data) > max_size:
        raise ExtractError(
            f"Fichier trop volumineux: {name} ({len(data) / 1024 / 1024:.2f} Mo, maximum {max_size / 1024 / 1024:.2f} Mo)"
        )

    if ext == "csv":
        df = _read_csv_grid(data, name)
    else:
        df = _read_excel_grid(data, name, ext)
    table = _grid_to_table(df, name)
    logger.info("%s: %d en-têtes, %d lignes extraites", name, len(table.headers), len(table.rows))
    return table


def read_table_file(filepath: str | Path, *, max_size: int = DEFAULT_MAX_FILE_SIZE) -> RawTable:
    """
    Lit un fichier tableur depuis le disque (extension déduite du suffixe).

    Raises:
        ExtractError: Si le fichier est absent ou illisible.
    """
    path = Path(filepath)
    if not path.exists():
        raise ExtractError(f"Fichier introuvable: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ExtractError(f"Impossible de lire {path}: {e}") from e
    return extract_table(data, path.suffix, name=path.name, max_size=max_size)


def save_xlsx(
    filepath: str | Path,
    dataframes: dict[str, pd.DataFrame],
    *,
    header: bool = True,
    index: bool = False,
) -> None:
    """
    Sauvegarde plusieurs DataFrames dans un fichier xlsx (une feuille par DataFrame).

    Args:
        filepath: Chemin de sortie.
        dataframes: Dict {nom_feuille: DataFrame}.
    """
    with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
        for sheet_name, df in dataframes.items():
            # Excel limite les noms de feuille à 31 caractères
            safe_name = str(sheet_name)[:31]
            df.to_excel(writer, sheet_name=safe_name, index=index, header=header)
