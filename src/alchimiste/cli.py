"""Interface en ligne de commande Alchimiste."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from alchimiste import __version__
from alchimiste.config import ENTITY_KINDS, Config, ConfigError, ConfigFileError
from alchimiste.export import build_mapping_csv, write_csv
from alchimiste.io_excel import ExtractError, read_table_file
from alchimiste.mapping import HeaderMapper
from alchimiste.pipeline import FileSource, run_pipeline
from alchimiste.report import build_report, print_report_console, write_workbook

logger = logging.getLogger(__name__)

CSV_FILE_NAMES = {"client": "clients.csv", "worker": "workers.csv", "task": "tasks.csv"}


def cmd_map_headers(filepath: str, entity_kind: str, config: Config) -> int:
    """Affiche les propositions de mapping des en-têtes d'un fichier."""
    try:
        table = read_table_file(filepath, max_size=config.max_file_size)
    except ExtractError as e:
        print(f"Erreur: {e}")
        return 1

    result = HeaderMapper(config).map_headers(table.headers, entity_kind)
    print(f"En-têtes de {filepath} ({entity_kind}):")
    for s in result.suggestions:
        status = "auto" if s.accepted else ("à confirmer" if s.canonical_field else "non mappé")
        target = s.canonical_field or "-"
        print(f"  {s.raw_header!r:<30} -> {target:<20} {s.confidence:.2f} [{s.reasoning}] {status}")
    if result.missing_fields:
        print(f"Champs sans colonne: {', '.join(result.missing_fields)}")
    return 0


def cmd_run(
    config: Config,
    *,
    output_path: str | None = None,
    csv_dir: str | None = None,
    mapping_path: str | None = None,
    dry_run: bool = False,
) -> int:
    """Exécute le pipeline Alchimiste sur les fichiers de la configuration."""
    files: dict[str, FileSource] = dict(config.input_files())
    if not files:
        print("Erreur: aucun fichier d'entrée (clients_file, workers_file, tasks_file ou --clients/--workers/--tasks).")
        return 1

    result = run_pipeline(files, config)
    report = build_report(result, config)
    print_report_console(report)

    if not result.batch.results:
        print("Erreur: aucun fichier n'a pu être traité.")
        return 1

    if dry_run:
        print("Mode dry-run: pas d'écriture des fichiers de sortie.")
        return 0

    if mapping_path:
        build_mapping_csv(list(result.batch.results.values()), mapping_path)
        print(f"Mapping écrit: {mapping_path}")

    if csv_dir:
        out_dir = Path(csv_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        for kind in result.batch.results:
            path = out_dir / CSV_FILE_NAMES[kind]
            write_csv(result.batch.entities(kind), path)
            print(f"CSV écrit: {path}")

    if output_path:
        write_workbook(output_path, result, report, config)
        print(f"Fichier de sortie: {output_path}")

    return 0


def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(args.config) if args.config else Config()
    overrides = {"clients_file": args.clients, "workers_file": args.workers, "tasks_file": args.tasks}
    for attr, value in overrides.items():
        if value:
            setattr(config, attr, value)
    return config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="alchimiste",
        description="Ingestion et validation de tableurs clients / workers / tâches",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Journalisation détaillée (DEBUG)")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    # map-headers
    p_map = subparsers.add_parser("map-headers", help="Proposer un mapping pour les en-têtes d'un fichier")
    p_map.add_argument("file", help="Fichier csv, xlsx ou xls")
    p_map.add_argument("--kind", "-k", required=True, choices=ENTITY_KINDS, help="Type d'entité")
    p_map.add_argument("--config", "-c", help="Fichier config JSON")

    # run
    p_run = subparsers.add_parser("run", help="Parser, valider et exporter les fichiers")
    p_run.add_argument("--config", "-c", help="Fichier config JSON")
    p_run.add_argument("--clients", help="Fichier clients (prime sur la config)")
    p_run.add_argument("--workers", help="Fichier workers (prime sur la config)")
    p_run.add_argument("--tasks", help="Fichier tâches (prime sur la config)")
    p_run.add_argument("--output", "-o", help="Classeur xlsx de sortie")
    p_run.add_argument("--csv-dir", help="Dossier des CSV nettoyés")
    p_run.add_argument("--mapping", "-m", help="Chemin pour mapping.csv")
    p_run.add_argument("--dry-run", action="store_true", help="Ne pas écrire les fichiers de sortie")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        if args.command == "map-headers":
            config = Config.load(args.config) if args.config else Config()
            return cmd_map_headers(args.file, args.kind, config)

        if args.command == "run":
            if not args.dry_run and not (args.output or args.csv_dir or args.mapping):
                parser.error("--output, --csv-dir ou --mapping requis sauf en --dry-run")
            config = _load_config(args)
            return cmd_run(
                config,
                output_path=args.output,
                csv_dir=args.csv_dir,
                mapping_path=args.mapping,
                dry_run=args.dry_run,
            )
    except (ConfigError, ConfigFileError) as e:
        print(f"Erreur de configuration: {e}")
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
