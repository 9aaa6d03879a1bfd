"""
Identifiant séquentiel du bulletin quotidien EMPARN.

L'EMPARN publie un bulletin par jour, numéroté de façon continue :
id(jour) = BASE_ID + nombre de jours écoulés depuis BASE_DATE.
Le « jour » est la date calendaire à Fortaleza (UTC-3), pas la date UTC :
entre 21h et minuit locales, la date UTC a déjà basculé.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from .config import BULLETIN_BASE_DATE, BULLETIN_BASE_ID, BULLETIN_TZ

logger = logging.getLogger("pluviorn.identifiers")

_BR_DATE_RE = re.compile(r"^\s*(\d{2})/(\d{2})/(\d{4})\s*$")
_ISO_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s*$")


def parse_forced_date(text: Optional[str]) -> Optional[date]:
    """Accepte DD/MM/AAAA ou AAAA-MM-JJ. Retourne None si absent ou non parsable."""
    if not text:
        return None

    m = _BR_DATE_RE.match(text)
    if m:
        dd, mm, yyyy = (int(g) for g in m.groups())
    else:
        m = _ISO_DATE_RE.match(text)
        if not m:
            return None
        yyyy, mm, dd = (int(g) for g in m.groups())

    try:
        return date(yyyy, mm, dd)
    except ValueError:
        return None


def local_today(tz: str = BULLETIN_TZ, now: Optional[datetime] = None) -> date:
    # un datetime naïf est considéré comme UTC
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz)).date()


def resolve_bulletin_id(
    target: Optional[date] = None,
    *,
    forced: Optional[str] = None,
    tz: str = BULLETIN_TZ,
    anchor_date: date = BULLETIN_BASE_DATE,
    anchor_id: int = BULLETIN_BASE_ID,
    now: Optional[datetime] = None,
) -> int:
    """
    Calcule l'identifiant du bulletin pour une date calendaire locale.

    Priorité : `forced` (texte) > `target` > aujourd'hui dans `tz`.
    Une date forcée non parsable est ignorée (warning) au profit d'aujourd'hui.
    """
    day = None
    if forced:
        day = parse_forced_date(forced)
        if day is None:
            logger.warning(f"Date forcée non reconnue ({forced!r}), utilisation de la date du jour")
    if day is None:
        day = target if target is not None else local_today(tz, now)

    return anchor_id + (day - anchor_date).days


def candidate_ids(resolved: int) -> List[int]:
    # jour courant d'abord, puis publication en retard, puis publication anticipée
    return [resolved, resolved - 1, resolved + 1]
