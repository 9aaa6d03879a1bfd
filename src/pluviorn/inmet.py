"""
inmet.py - Relevés horaires des stations automatiques INMET, filtrés par UF.

Flux :
  1. métadonnées des stations (GET /estacoes) -> index code -> Station pour l'UF
  2. fenêtre(s) de dates [aujourd'hui - DIAS + 1, aujourd'hui] (date UTC)
  3. une requête par fenêtre (GET /estacoes/T?data_inicial=...&data_final=...)
  4. normalisation + jointure sur l'index (les stations hors UF disparaissent ici)
  5. dédoublonnage station::horas::valeur
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from .config import INMET_BASE_URL
from .records import SOURCE_INMET, PrecipRecord, dedupe, inmet_key
from .stations import Station, build_station_index
from .transport import TransportClient
from .utils import first_present, number_or_null, text_or_none

logger = logging.getLogger("pluviorn.inmet")

# Clés observées dans les séries horaires
ROW_CODE_KEYS = ("CD_ESTACAO", "CD_WIGOS", "CD_OMM")
PRECIP_KEYS = ("PRELIQ_TOT", "PRECI_TOT", "CHUVA", "PRECIPITACAO", "PREC")
MUNICIPALITY_KEYS = ("DC_NOME", "MUNICIPIO")
DATE_KEY = "DT_MEDICAO"
HOUR_KEY = "HR_MEDICAO"

_HHMM_RE = re.compile(r"(\d{2})(\d{2})")


# ============================================================
# FENÊTRES DE DATES
# ============================================================
@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


def utc_today(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def build_windows(today: date, days: int, chunk_days: Optional[int] = None) -> List[DateWindow]:
    """
    Fenêtre inclusive de `days` jours se terminant à `today`.
    Avec `chunk_days`, découpée en sous-fenêtres consécutives (ordre chronologique).
    """
    days = max(1, int(days))
    start = today - timedelta(days=days - 1)
    if not chunk_days or chunk_days >= days:
        return [DateWindow(start, today)]

    windows: List[DateWindow] = []
    cursor = start
    while cursor <= today:
        end = min(cursor + timedelta(days=chunk_days - 1), today)
        windows.append(DateWindow(cursor, end))
        cursor = end + timedelta(days=1)
    return windows


def observations_url(base_url: str, window: DateWindow) -> str:
    return f"{base_url}/estacoes/T?data_inicial={window.start.isoformat()}&data_final={window.end.isoformat()}"


# ============================================================
# NORMALISATION
# ============================================================
def compose_timestamp(day: Any, hour: Any) -> Optional[str]:
    """
    'AAAA-MM-JJ' + '1200' -> 'AAAA-MM-JJ 12:00'.
    Heure absente -> date seule ; date absente -> None.
    """
    d = text_or_none(day)
    if d is None:
        return None
    h = text_or_none(hour)
    if h is None:
        return d
    hhmm = _HHMM_RE.sub(r"\1:\2", h.zfill(4), count=1)
    return f"{d} {hhmm}"


def normalize_observation(row: Mapping[str, Any], stations: Mapping[str, Station]) -> Optional[PrecipRecord]:
    """Ligne API -> PrecipRecord ; None si la station n'est pas dans l'index."""
    code = str(first_present(row, ROW_CODE_KEYS, "")).strip()
    st = stations.get(code)
    if st is None:
        return None

    return PrecipRecord(
        source=SOURCE_INMET,
        regiao=None,
        municipio=text_or_none(first_present(row, MUNICIPALITY_KEYS)),
        posto=st.name or code,
        tipo_posto=st.station_type,
        horas=compose_timestamp(row.get(DATE_KEY), row.get(HOUR_KEY)),
        precipitacao_mm=number_or_null(first_present(row, PRECIP_KEYS)),
        station_code=code,
        lat=st.lat,
        lon=st.lon,
    )


def normalize_observations(rows: List[Any], stations: Mapping[str, Station]) -> List[PrecipRecord]:
    out: List[PrecipRecord] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        rec = normalize_observation(row, stations)
        if rec is not None:
            out.append(rec)
    return out


# ============================================================
# COLLECTE
# ============================================================
@dataclass
class InmetRun:
    uf: str
    windows: List[DateWindow]
    stations: Dict[str, Station]
    raw_rows: int = 0
    joined_rows: int = 0
    records: List[PrecipRecord] = field(default_factory=list)


def _as_list(payload: Any, what: str) -> List[Any]:
    if isinstance(payload, list):
        return payload
    logger.warning(f"Réponse inattendue pour {what} ({type(payload).__name__}), traitée comme vide")
    return []


def collect_inmet(
    client: TransportClient,
    *,
    uf: str,
    days: int,
    today: Optional[date] = None,
    base_url: str = INMET_BASE_URL,
    chunk_days: Optional[int] = None,
) -> InmetRun:
    uf = uf.strip().upper()
    today = today or utc_today()

    stations_payload = _as_list(client.get_json(f"{base_url}/estacoes"), "les stations")
    stations = build_station_index(stations_payload, uf)

    windows = build_windows(today, days, chunk_days)
    run = InmetRun(uf=uf, windows=windows, stations=stations)

    joined: List[PrecipRecord] = []
    for window in windows:
        rows = _as_list(client.get_json(observations_url(base_url, window)), f"la fenêtre {window}")
        run.raw_rows += len(rows)
        joined.extend(normalize_observations(rows, stations))

    run.joined_rows = len(joined)
    run.records = dedupe(joined, key=inmet_key)

    logger.info(f"INMET ({uf}) - fenêtre {windows[0].start}..{windows[-1].end}:")
    logger.info(f"Stations dans l'UF: {len(stations)}")
    logger.info(f"Lignes API: {run.raw_rows} | jointes: {run.joined_rows} | uniques: {len(run.records)}")
    return run
