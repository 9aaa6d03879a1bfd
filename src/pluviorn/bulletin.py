"""
bulletin.py - Bulletin quotidien EMPARN récupéré par identifiant séquentiel.

- Calcule l'identifiant du jour (fuso America/Fortaleza), essaie [id, id-1, id+1]
- Chaque candidat passe par le FallbackFetcher (direct, puis miroir https / http)
- Extrait les 4 onglets (Agreste, Central, Leste, Oeste) du HTML
- Premier candidat avec au moins une ligne = résultat ; sinon NoDataFoundError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .config import BULLETIN_BASE_DATE, BULLETIN_BASE_ID, BULLETIN_TZ, EMPARN_ORIGIN
from .errors import FetchExhaustedError, NoDataFoundError
from .identifiers import candidate_ids, local_today, resolve_bulletin_id
from .records import SOURCE_EMPARN, PrecipRecord, bulletin_key, dedupe
from .transport import FallbackFetcher
from .utils import collapse_ws, parse_number_br

logger = logging.getLogger("pluviorn.bulletin")


@dataclass(frozen=True)
class Section:
    section_id: str
    label: str

    @property
    def selector(self) -> str:
        return f"#{self.section_id}-content"


BULLETIN_SECTIONS: Tuple[Section, ...] = (
    Section("agreste_potiguar", "Agreste Potiguar"),
    Section("central_potiguar", "Central Potiguar"),
    Section("leste_potiguar", "Leste Potiguar"),
    Section("oeste_potiguar", "Oeste Potiguar"),
)

# municipio, posto, tipo_posto, horas, precipitação
BULLETIN_FIELDS = 5


def bulletin_url(identifier: int, origin: str = EMPARN_ORIGIN) -> str:
    return f"{origin.rstrip('/')}/boletim/diario/{identifier}"


# ============================================================
# EXTRACTION HTML
# ============================================================
@dataclass(frozen=True)
class RawRow:
    region: str
    cells: Tuple[Optional[str], ...]


class TableExtractor:
    """
    Lignes brutes par onglet. Le balisage amont n'est pas contractuel :
    onglet ou tableau absent -> aucune ligne, ligne courte -> complétée par None.
    """

    def __init__(self, expected_fields: int = BULLETIN_FIELDS, parser: str = "html.parser"):
        self.expected_fields = expected_fields
        self.parser = parser

    def _section_rows(self, soup: BeautifulSoup, section: Section):
        container = soup.select_one(section.selector)
        if container is None:
            return []
        table = container.find("table")
        if table is None:
            return []
        rows = container.select("table tbody tr")
        # certains bulletins n'ont pas de <tbody>
        return rows or table.find_all("tr")

    def extract(self, document: str, sections: Sequence[Section] = BULLETIN_SECTIONS) -> List[RawRow]:
        soup = BeautifulSoup(document or "", self.parser)
        out: List[RawRow] = []

        for section in sections:
            for tr in self._section_rows(soup, section):
                tds = [collapse_ws(td.get_text()) for td in tr.find_all("td")]
                if not tds:
                    continue
                cells: List[Optional[str]] = list(tds[: self.expected_fields])
                cells += [None] * (self.expected_fields - len(cells))
                out.append(RawRow(section.label, tuple(cells)))

        return out


def normalize_bulletin_row(row: RawRow) -> PrecipRecord:
    municipio, posto, tipo_posto, horas, prec = row.cells[:BULLETIN_FIELDS]
    return PrecipRecord(
        source=SOURCE_EMPARN,
        regiao=row.region,
        municipio=municipio or None,
        posto=posto or None,
        tipo_posto=tipo_posto or None,
        horas=horas or None,
        precipitacao_mm=parse_number_br(prec),
    )


def parse_bulletin(document: str, sections: Sequence[Section] = BULLETIN_SECTIONS) -> List[PrecipRecord]:
    rows = TableExtractor().extract(document, sections)
    return [normalize_bulletin_row(r) for r in rows]


# ============================================================
# BALAYAGE DES CANDIDATS
# ============================================================
@dataclass(frozen=True)
class CandidateAttempt:
    identifier: int
    cause: str

    def __str__(self) -> str:
        return f"ID {self.identifier}: {self.cause}"


@dataclass
class ScanResult:
    identifier: int
    url: str
    records: List[PrecipRecord]
    body: str = ""


class CandidateScanner:
    """
    Parcourt les candidats dans l'ordre de priorité et s'arrête au premier
    qui produit des lignes. Les candidats suivants ne sont jamais téléchargés.
    """

    def __init__(
        self,
        fetcher: FallbackFetcher,
        build_url: Callable[[int], str] = bulletin_url,
        parse: Callable[[str], List[PrecipRecord]] = parse_bulletin,
    ):
        self.fetcher = fetcher
        self.build_url = build_url
        self.parse = parse
        self.attempts: List[CandidateAttempt] = []

    def _try(self, identifier: int) -> Optional[ScanResult]:
        url = self.build_url(identifier)
        logger.info(f">>> Tentative ID {identifier} ({url})")
        try:
            body = self.fetcher.fetch(url)
        except FetchExhaustedError as exc:
            logger.warning(f"Échec ID {identifier}: {exc}")
            self.attempts.append(CandidateAttempt(identifier, str(exc)))
            return None

        records = self.parse(body)
        logger.info(f"ID {identifier}: {len(records)} lignes extraites")
        if not records:
            logger.warning(f"ID {identifier} sans lignes, candidat suivant...")
            self.attempts.append(CandidateAttempt(identifier, "aucune ligne extraite"))
            return None

        return ScanResult(identifier=identifier, url=url, records=records, body=body)

    def scan(self, candidates: Sequence[int]) -> ScanResult:
        self.attempts = []
        outcomes = (self._try(c) for c in candidates)
        hit = next((o for o in outcomes if o is not None), None)
        if hit is None:
            raise NoDataFoundError(self.attempts)
        return hit


# ============================================================
# COLLECTE
# ============================================================
@dataclass
class BulletinRun:
    local_date: date
    resolved_id: int
    candidates: List[int]
    result: ScanResult
    records: List[PrecipRecord] = field(default_factory=list)

    @property
    def identifier(self) -> int:
        return self.result.identifier


def collect_bulletin(
    fetcher: FallbackFetcher,
    *,
    forced_date: Optional[str] = None,
    tz: str = BULLETIN_TZ,
    anchor_date: date = BULLETIN_BASE_DATE,
    anchor_id: int = BULLETIN_BASE_ID,
    origin: str = EMPARN_ORIGIN,
    now: Optional[datetime] = None,
) -> BulletinRun:
    today = local_today(tz, now)
    resolved = resolve_bulletin_id(
        forced=forced_date, tz=tz, anchor_date=anchor_date, anchor_id=anchor_id, now=now,
    )
    candidates = candidate_ids(resolved)

    logger.info(f"Fuso: {tz}")
    logger.info(f"Data (local): {today.strftime('%d/%m/%Y')}")
    logger.info(f"ID base {anchor_id} -> {anchor_date.isoformat()}")
    logger.info(f"ID calculé: {resolved}")
    logger.info(f"Candidats: {', '.join(str(c) for c in candidates)}")

    scanner = CandidateScanner(fetcher, build_url=lambda i: bulletin_url(i, origin))
    result = scanner.scan(candidates)

    records = dedupe(result.records, key=bulletin_key)
    if len(records) != len(result.records):
        logger.info(f"Doublons retirés: {len(result.records) - len(records)}")
    logger.info(f"Succès avec ID {result.identifier}")

    return BulletinRun(
        local_date=today,
        resolved_id=resolved,
        candidates=candidates,
        result=result,
        records=records,
    )
