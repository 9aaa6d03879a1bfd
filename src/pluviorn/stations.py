from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .utils import first_present, number_or_null

logger = logging.getLogger("pluviorn.stations")

# -------------------------------------------------------------------
# Métadonnées INMET : plusieurs orthographes historiques selon l'endpoint.
# L'ordre des listes = ordre de préférence.
# -------------------------------------------------------------------
CODE_KEYS = ("CD_ESTACAO", "CD_EST", "CD_WIGOS", "CD_OMM", "CD_SIRED")
NAME_KEYS = ("DC_NOME", "NOME", "NM_ESTACAO")
UF_KEYS = ("UF", "DC_UF")
LAT_KEYS = ("VL_LATITUDE", "LATITUDE", "LAT")
LON_KEYS = ("VL_LONGITUDE", "LONGITUDE", "LON")
TYPE_KEYS = ("TP_ESTACAO", "TIPO")

DEFAULT_STATION_TYPE = "automática"


@dataclass(frozen=True)
class Station:
    code: str
    name: str
    federative_unit: str
    lat: Optional[float]
    lon: Optional[float]
    station_type: str


def station_uf(payload: Dict[str, Any]) -> str:
    return str(first_present(payload, UF_KEYS, "")).strip().upper()


def station_from_payload(payload: Dict[str, Any], default_uf: str = "") -> Optional[Station]:
    """Construit une Station ; None si aucun code exploitable."""
    code = str(first_present(payload, CODE_KEYS, "")).strip()
    if not code:
        return None

    return Station(
        code=code,
        name=str(first_present(payload, NAME_KEYS, code)).strip(),
        federative_unit=station_uf(payload) or default_uf,
        lat=number_or_null(first_present(payload, LAT_KEYS)),
        lon=number_or_null(first_present(payload, LON_KEYS)),
        station_type=str(first_present(payload, TYPE_KEYS, DEFAULT_STATION_TYPE)).strip(),
    )


def build_station_index(payload: Iterable[Any], uf: str) -> Dict[str, Station]:
    """Index code -> Station, restreint à l'UF demandée (jointure O(1))."""
    uf = uf.strip().upper()
    index: Dict[str, Station] = {}
    skipped = 0

    for raw in payload or []:
        if not isinstance(raw, dict) or station_uf(raw) != uf:
            continue
        st = station_from_payload(raw, default_uf=uf)
        if st is None:
            skipped += 1
            continue
        index[st.code] = st

    if skipped:
        logger.debug(f"{skipped} stations {uf} ignorées (code absent)")
    return index
