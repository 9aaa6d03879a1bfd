"""
Configuration du pipeline (variables d'environnement, .env pris en charge).

Personnalisation par env :
  UF=RN                  -> unité de la fédération filtrée côté INMET (défaut RN)
  DIAS=3                 -> fenêtre en jours pour l'API INMET (défaut 3, minimum 1)
  FORCED_DATE=03/11/2025 -> force la date du bulletin EMPARN (DD/MM/AAAA ou AAAA-MM-DD)
  OUT_DIR=data           -> dossier de sortie des artefacts
  S3_BUCKET / MONGO_URI  -> sinks optionnels (désactivés si vides)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Optional

from dotenv import load_dotenv

# ============================================================
# DEFAULTS
# ============================================================
DEFAULT_UF = "RN"
DEFAULT_DAYS = 3
DEFAULT_OUT_DIR = "data"

BULLETIN_TZ = "America/Fortaleza"  # UTC-3, sans heure d'été
BULLETIN_BASE_DATE = date(2025, 10, 29)
BULLETIN_BASE_ID = 10965  # identifiant du bulletin publié le 29/10/2025

EMPARN_ORIGIN = "https://meteorologia.emparn.rn.gov.br"
MIRROR_ORIGIN = "https://r.jina.ai"
INMET_BASE_URL = "https://apitempo.inmet.gov.br"

DEFAULT_HTTP_TIMEOUT = 20.0
DEFAULT_S3_PREFIX = "processed/pluviometria/"
DEFAULT_MONGO_DB = "pluviorn"
DEFAULT_MONGO_COLLECTION = "precipitacao"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"Variable {name} invalide (entier attendu): {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise SystemExit(f"Variable {name} invalide (nombre attendu): {raw!r}") from exc


def _env_date(name: str, default: date) -> date:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise SystemExit(f"Variable {name} invalide (AAAA-MM-JJ attendu): {raw!r}") from exc


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    return raw.strip() if raw and raw.strip() else None


@dataclass
class Settings:
    uf: str = DEFAULT_UF
    days: int = DEFAULT_DAYS
    forced_date: Optional[str] = None
    out_dir: str = DEFAULT_OUT_DIR

    bulletin_tz: str = BULLETIN_TZ
    bulletin_base_date: date = BULLETIN_BASE_DATE
    bulletin_base_id: int = BULLETIN_BASE_ID
    emparn_origin: str = EMPARN_ORIGIN
    mirror_origin: str = MIRROR_ORIGIN

    inmet_base_url: str = INMET_BASE_URL
    inmet_chunk_days: Optional[int] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    s3_bucket: Optional[str] = None
    s3_prefix: str = DEFAULT_S3_PREFIX
    mongo_uri: Optional[str] = None
    mongo_db: str = DEFAULT_MONGO_DB
    mongo_collection: str = DEFAULT_MONGO_COLLECTION

    log_level: str = "INFO"

    def __post_init__(self):
        self.uf = (self.uf or DEFAULT_UF).strip().upper()
        self.days = max(1, int(self.days))
        if self.inmet_chunk_days is not None and self.inmet_chunk_days < 1:
            self.inmet_chunk_days = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        # Charge .env avant lecture env vars
        if dotenv:
            load_dotenv()

        chunk = _env_int("INMET_CHUNK_DAYS", 0)
        return cls(
            uf=os.getenv("UF", DEFAULT_UF),
            days=_env_int("DIAS", DEFAULT_DAYS),
            forced_date=_env_str("FORCED_DATE"),
            out_dir=os.getenv("OUT_DIR", DEFAULT_OUT_DIR),
            bulletin_tz=os.getenv("BULLETIN_TZ", BULLETIN_TZ),
            bulletin_base_date=_env_date("BULLETIN_BASE_DATE", BULLETIN_BASE_DATE),
            bulletin_base_id=_env_int("BULLETIN_BASE_ID", BULLETIN_BASE_ID),
            emparn_origin=os.getenv("EMPARN_ORIGIN", EMPARN_ORIGIN).rstrip("/"),
            mirror_origin=os.getenv("MIRROR_ORIGIN", MIRROR_ORIGIN).rstrip("/"),
            inmet_base_url=os.getenv("INMET_BASE_URL", INMET_BASE_URL).rstrip("/"),
            inmet_chunk_days=chunk or None,
            http_timeout=_env_float("HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            s3_bucket=_env_str("S3_BUCKET"),
            s3_prefix=os.getenv("S3_PREFIX_OUT", DEFAULT_S3_PREFIX),
            mongo_uri=_env_str("MONGO_URI"),
            mongo_db=os.getenv("MONGO_DB", DEFAULT_MONGO_DB),
            mongo_collection=os.getenv("MONGO_COLLECTION", DEFAULT_MONGO_COLLECTION),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
