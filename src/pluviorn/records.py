"""
Schéma canonique des observations de pluie et dédoublonnage.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Dict, Iterable, List, Optional

SOURCE_INMET = "INMET"
SOURCE_EMPARN = "EMPARN"

# Ordre des colonnes significatif (compatibilité CSV aval)
INMET_COLUMNS = [
    "source", "regiao", "municipio", "posto", "tipo_posto",
    "horas", "precipitacao_mm", "station_code", "lat", "lon",
]
BULLETIN_COLUMNS = [
    "regiao", "municipio", "posto", "tipo_posto", "horas", "precipitacao_mm",
]


@dataclass(frozen=True)
class PrecipRecord:
    source: str
    regiao: Optional[str] = None
    municipio: Optional[str] = None
    posto: Optional[str] = None
    tipo_posto: Optional[str] = None
    horas: Optional[str] = None
    precipitacao_mm: Optional[float] = None
    station_code: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    def to_dict(self, columns: Optional[List[str]] = None) -> Dict[str, Any]:
        d = asdict(self)
        if columns is None:
            return d
        return {c: d[c] for c in columns}


RECORD_FIELDS = [f.name for f in fields(PrecipRecord)]


# ============================================================
# CLÉS D'IDENTITÉ
# ============================================================
def _part(v: Any) -> str:
    return "" if v is None else str(v)


def inmet_key(r: PrecipRecord) -> str:
    return f"{_part(r.station_code)}::{_part(r.horas)}::{_part(r.precipitacao_mm)}"


def bulletin_key(r: PrecipRecord) -> str:
    # pas de code station côté bulletin : composite région/posto/horas/valeur
    return f"{_part(r.regiao)}::{_part(r.posto)}::{_part(r.horas)}::{_part(r.precipitacao_mm)}"


def identity_key(r: PrecipRecord) -> str:
    return inmet_key(r) if r.station_code else bulletin_key(r)


def record_hash(r: PrecipRecord) -> str:
    # hash stable pour dédoublonner côté base
    key = f"{r.source}|{identity_key(r)}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def dedupe(
    records: Iterable[PrecipRecord],
    key: Callable[[PrecipRecord], str] = identity_key,
) -> List[PrecipRecord]:
    """
    La dernière occurrence d'une clé l'emporte, à la position de la première.
    Idempotent : dedupe(dedupe(x)) == dedupe(x).
    """
    uniq: Dict[str, PrecipRecord] = {}
    for r in records:
        uniq[key(r)] = r
    return list(uniq.values())
