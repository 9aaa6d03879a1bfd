#!/usr/bin/env python3
"""
pluviorn - collecte des pluviométries du RN.

Usage:
  pluviorn inmet                      # INMET, UF=RN, 3 derniers jours
  pluviorn inmet --uf PB --days 5
  pluviorn emparn                     # bulletin EMPARN du jour (fuso Fortaleza)
  pluviorn emparn --date 03/11/2025   # équivalent de FORCED_DATE
  UF=RN DIAS=3 OUT_DIR=/tmp/data pluviorn inmet

Code de sortie : 0 si OK, 1 si aucune donnée (NoDataFoundError) ou échec HTTP.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .bulletin import collect_bulletin
from .config import Settings
from .errors import NoDataFoundError, TransportError
from .export import save_text, upload_outputs, write_bulletin_outputs, write_inmet_outputs
from .inmet import collect_inmet
from .mongo import load_records
from .records import PrecipRecord
from .transport import BULLETIN_HEADERS, INMET_HEADERS, FallbackFetcher, TransportClient, default_strategies

logger = logging.getLogger("pluviorn")


def parse_args(argv: Optional[List[str]], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pluviorn", description="Pluviométrie RN : INMET (API) et EMPARN (bulletin)")
    parser.add_argument("--out-dir", default=settings.out_dir, help="Dossier de sortie (défaut: env OUT_DIR puis data)")
    parser.add_argument("--no-files", action="store_true", help="N'écrit aucun fichier (logs uniquement)")

    # mêmes options acceptées après la sous-commande ; SUPPRESS pour ne pas écraser la valeur globale
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--out-dir", default=argparse.SUPPRESS, help="Dossier de sortie")
    common.add_argument("--no-files", action="store_true", default=argparse.SUPPRESS, help="N'écrit aucun fichier")

    sub = parser.add_subparsers(dest="command", required=True)

    p_inmet = sub.add_parser("inmet", parents=[common], help="Stations automatiques INMET filtrées par UF")
    p_inmet.add_argument("--uf", default=settings.uf, help="Unité de la fédération (défaut: env UF puis RN)")
    p_inmet.add_argument("--days", type=int, default=settings.days, help="Fenêtre en jours (défaut: env DIAS puis 3)")

    p_emparn = sub.add_parser("emparn", parents=[common], help="Bulletin quotidien EMPARN par identifiant")
    p_emparn.add_argument(
        "--date",
        dest="forced_date",
        default=settings.forced_date,
        help="Force la date du bulletin : DD/MM/AAAA ou AAAA-MM-JJ (défaut: env FORCED_DATE)",
    )
    return parser.parse_args(argv)


def publish(settings: Settings, source: str, paths: List[Path], records: List[PrecipRecord]) -> None:
    if settings.s3_bucket and paths:
        upload_outputs(paths, settings.s3_bucket, f"{settings.s3_prefix}{source}/")
    if settings.mongo_uri and records:
        load_records(settings.mongo_uri, settings.mongo_db, settings.mongo_collection, records)


def run_inmet(settings: Settings, args: argparse.Namespace) -> int:
    client = TransportClient(INMET_HEADERS, timeout=settings.http_timeout)
    try:
        run = collect_inmet(
            client,
            uf=args.uf,
            days=args.days,
            base_url=settings.inmet_base_url,
            chunk_days=settings.inmet_chunk_days,
        )
    finally:
        client.close()

    paths = [] if args.no_files else write_inmet_outputs(args.out_dir, run.records)
    publish(settings, "inmet", paths, run.records)
    return 0


def run_emparn(settings: Settings, args: argparse.Namespace) -> int:
    client = TransportClient(BULLETIN_HEADERS, timeout=settings.http_timeout)
    fetcher = FallbackFetcher(client, default_strategies(settings.mirror_origin))
    try:
        run = collect_bulletin(
            fetcher,
            forced_date=args.forced_date,
            tz=settings.bulletin_tz,
            anchor_date=settings.bulletin_base_date,
            anchor_id=settings.bulletin_base_id,
            origin=settings.emparn_origin,
        )
    except NoDataFoundError:
        # le dernier HTML reçu reste utile pour comprendre l'absence de lignes
        if fetcher.last_body is not None and not args.no_files:
            save_text(Path(args.out_dir) / "rendered.html", fetcher.last_body)
        raise
    finally:
        client.close()

    paths = [] if args.no_files else write_bulletin_outputs(
        args.out_dir, run.identifier, run.records, rendered_html=fetcher.last_body
    )
    publish(settings, "emparn", paths, run.records)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        stream=sys.stdout,
    )
    args = parse_args(argv, settings)

    try:
        if args.command == "inmet":
            return run_inmet(settings, args)
        return run_emparn(settings, args)
    except NoDataFoundError as e:
        logger.error(f"ERREUR: {e}")
        return 1
    except TransportError as e:
        logger.error(f"{args.command.upper()} ERREUR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
