"""
export.py - Sérialisation des enregistrements canoniques (JSON / CSV),
rapport qualité et publication optionnelle sur S3.

Sorties (dans OUT_DIR) :
- INMET  : inmet.json, latest.json, latest.csv, quality.json
- EMPARN : latest.json ({"id": ..., "dados": [...]}), latest.csv, rendered.html, quality.json
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import boto3
import numpy as np
import pandas as pd

from .records import BULLETIN_COLUMNS, INMET_COLUMNS, RECORD_FIELDS, PrecipRecord, identity_key

logger = logging.getLogger("pluviorn.export")

# seuils de plausibilité (mm sur un pas horaire / journalier)
PRECIP_MIN_MM = 0.0
PRECIP_MAX_MM = 500.0

CONTENT_TYPES = {
    ".json": "application/json",
    ".csv": "text/csv; charset=utf-8",
    ".html": "text/html; charset=utf-8",
}


# ============================================================
# JSON
# ============================================================
def sanitize_for_json(obj: Any) -> Any:
    """NaN / inf -> None, types numpy -> types Python, récursif."""
    if obj is None:
        return None
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        x = float(obj)
        return None if math.isnan(x) or math.isinf(x) else x
    if isinstance(obj, float):
        return None if math.isnan(obj) or math.isinf(obj) else obj
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    return obj


def records_to_dicts(records: Iterable[PrecipRecord], columns: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
    cols = list(columns) if columns is not None else None
    return [sanitize_for_json(r.to_dict(cols)) for r in records]


def to_json_text(payload: Any) -> str:
    return json.dumps(sanitize_for_json(payload), ensure_ascii=False, indent=2, allow_nan=False)


# ============================================================
# CSV (pandas)
# ============================================================
def records_to_frame(records: Iterable[PrecipRecord], columns: Sequence[str] = INMET_COLUMNS) -> pd.DataFrame:
    rows = [r.to_dict(list(columns)) for r in records]
    return pd.DataFrame(rows, columns=list(columns))


def to_csv_text(records: Iterable[PrecipRecord], columns: Sequence[str] = INMET_COLUMNS) -> str:
    df = records_to_frame(records, columns)
    # None / NaN -> cellule vide ; l'ordre des colonnes est un contrat
    return df.to_csv(index=False, lineterminator="\n", na_rep="")


# ============================================================
# QUALITÉ
# ============================================================
def quality_report(records: Sequence[PrecipRecord]) -> Dict[str, Any]:
    total = len(records)
    if total == 0:
        return {
            "total_records": 0,
            "records_per_source": {},
            "records_per_station": {},
            "null_rates": {},
            "duplicates": 0,
            "anomalies": ["Aucun enregistrement"],
        }

    df = records_to_frame(records, RECORD_FIELDS)
    df["_key"] = [identity_key(r) for r in records]
    station = df["station_code"].fillna(df["posto"])

    metrics: Dict[str, Any] = {
        "total_records": total,
        "records_per_source": df["source"].value_counts(dropna=False).to_dict(),
        "records_per_station": station.value_counts(dropna=True).to_dict(),
        "timestamp_range": {
            "min": df["horas"].dropna().min() if df["horas"].notna().any() else None,
            "max": df["horas"].dropna().max() if df["horas"].notna().any() else None,
        },
        "null_rates": {},
        "duplicates": int(df.duplicated(subset=["_key"], keep="first").sum()),
        "missing_precipitation": int(df["precipitacao_mm"].isna().sum()),
    }

    for col in RECORD_FIELDS:
        metrics["null_rates"][col] = round(df[col].isna().sum() / total * 100, 2)

    precip = pd.to_numeric(df["precipitacao_mm"], errors="coerce")
    anomalies = []
    if pd.notna(precip.min()) and precip.min() < PRECIP_MIN_MM:
        anomalies.append(f"Précipitation négative: {precip.min()} mm")
    if pd.notna(precip.max()) and precip.max() > PRECIP_MAX_MM:
        anomalies.append(f"Précipitation suspecte: {precip.max()} mm")
    metrics["anomalies"] = anomalies

    return sanitize_for_json(metrics)


def log_quality(metrics: Dict[str, Any]) -> None:
    logger.info("=== RAPPORT QUALITÉ ===")
    logger.info(f"  Total: {metrics['total_records']} records")
    logger.info(f"  Par source: {metrics['records_per_source']}")
    logger.info(f"  Doublons: {metrics['duplicates']}")
    for a in metrics.get("anomalies", []):
        logger.warning(f"  ANOMALIE: {a}")
    for col, rate in metrics.get("null_rates", {}).items():
        if rate > 50:
            logger.info(f"  Null rate élevé: {col} = {rate}%")


# ============================================================
# FICHIERS
# ============================================================
def save_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_inmet_outputs(out_dir: str | Path, records: Sequence[PrecipRecord]) -> List[Path]:
    out = Path(out_dir)
    data = records_to_dicts(records, INMET_COLUMNS)
    json_text = to_json_text(data)
    metrics = quality_report(records)
    log_quality(metrics)

    written = [
        save_text(out / "inmet.json", json_text),
        save_text(out / "latest.json", json_text),
        save_text(out / "latest.csv", to_csv_text(records, INMET_COLUMNS)),
        save_text(out / "quality.json", to_json_text(metrics)),
    ]
    logger.info(f"Export INMET: {len(records)} enregistrements -> {out}")
    return written


def write_bulletin_outputs(
    out_dir: str | Path,
    identifier: int,
    records: Sequence[PrecipRecord],
    rendered_html: Optional[str] = None,
) -> List[Path]:
    out = Path(out_dir)
    metrics = quality_report(records)
    log_quality(metrics)

    written = []
    # HTML conservé pour le debug, même s'il n'a produit aucune ligne
    if rendered_html is not None:
        written.append(save_text(out / "rendered.html", rendered_html))
    written += [
        save_text(out / "latest.json", to_json_text({"id": identifier, "dados": records_to_dicts(records, BULLETIN_COLUMNS)})),
        save_text(out / "latest.csv", to_csv_text(records, BULLETIN_COLUMNS)),
        save_text(out / "quality.json", to_json_text(metrics)),
    ]
    logger.info(f"Export EMPARN: ID {identifier}, {len(records)} lignes -> {out}")
    return written


# ============================================================
# S3 (optionnel)
# ============================================================
def s3_client(region: Optional[str] = None):
    return boto3.client("s3", region_name=region) if region else boto3.client("s3")


def upload_outputs(paths: Iterable[Path], bucket: str, prefix: str, s3=None) -> List[str]:
    s3 = s3 or s3_client()
    keys = []
    for path in paths:
        key = f"{prefix}{path.name}"
        ctype = CONTENT_TYPES.get(path.suffix, "application/octet-stream")
        logger.info(f"Upload: s3://{bucket}/{key}")
        s3.put_object(Bucket=bucket, Key=key, Body=path.read_bytes(), ContentType=ctype)
        keys.append(key)
    return keys
