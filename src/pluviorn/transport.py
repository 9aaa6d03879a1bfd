"""
Transport HTTP et stratégies de repli.

- TransportClient : une tentative GET, sans retry (requests.Session + timeout)
- FetchStrategy   : réécriture pure d'une URL canonique (direct, miroir https, miroir http)
- FallbackFetcher : essaie les stratégies dans l'ordre, s'arrête au premier succès
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlsplit

import requests

from .config import DEFAULT_HTTP_TIMEOUT, EMPARN_ORIGIN, MIRROR_ORIGIN
from .errors import FetchExhaustedError, TransportError

logger = logging.getLogger("pluviorn.transport")


# ============================================================
# EN-TÊTES
# ============================================================
INMET_HEADERS: Dict[str, str] = {
    "User-Agent": "pluviorn-inmet/1.0",
    "Accept": "application/json,*/*",
}

UA_BROWSER = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36"
)

BULLETIN_HEADERS: Dict[str, str] = {
    "User-Agent": UA_BROWSER,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Referer": EMPARN_ORIGIN + "/",
}


# ============================================================
# CLIENT
# ============================================================
class TransportClient:
    """Une requête GET = une tentative. Échec -> TransportError."""

    def __init__(
        self,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> requests.Response:
        try:
            response = self.session.get(
                url,
                params=params,
                headers=self.headers,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise TransportError(url, cause=exc) from exc

        if not 200 <= response.status_code < 300:
            raise TransportError(url, status_code=response.status_code)
        return response

    def get_text(self, url: str) -> str:
        return self._get(url).text

    def get_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = self._get(url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(url, cause=exc) from exc

    def close(self) -> None:
        self.session.close()


# ============================================================
# STRATÉGIES (réécriture d'URL)
# ============================================================
@dataclass(frozen=True)
class FetchStrategy:
    name: str
    rewrite: Callable[[str], str]


def direct(url: str) -> str:
    return url


def mirror_rewrite(mirror_origin: str, scheme: str) -> Callable[[str], str]:
    """
    Réécrit l'URL canonique via le miroir : {mirror}/{scheme}://{host}{path}.
    Le schéma interne est imposé, quel que soit celui de l'URL d'origine.
    """
    base = mirror_origin.rstrip("/")

    def rewrite(url: str) -> str:
        parts = urlsplit(url)
        inner = parts.netloc + parts.path
        if parts.query:
            inner += "?" + parts.query
        return f"{base}/{scheme}://{inner}"

    return rewrite


def default_strategies(mirror_origin: str = MIRROR_ORIGIN) -> List[FetchStrategy]:
    return [
        FetchStrategy("direct", direct),
        FetchStrategy("mirror_https", mirror_rewrite(mirror_origin, "https")),
        FetchStrategy("mirror_http", mirror_rewrite(mirror_origin, "http")),
    ]


@dataclass(frozen=True)
class FetchAttempt:
    strategy: str
    url: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        return f"{self.strategy}: {self.error or 'ok'}"


class FallbackFetcher:
    """
    Essaie chaque stratégie dans l'ordre déclaré, retourne le premier corps obtenu.
    Le dernier corps téléchargé reste disponible dans `last_body` (debug).
    """

    def __init__(self, client: TransportClient, strategies: Optional[Sequence[FetchStrategy]] = None):
        self.client = client
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.last_body: Optional[str] = None
        self.last_attempts: List[FetchAttempt] = []

    def fetch(self, url: str) -> str:
        attempts: List[FetchAttempt] = []
        self.last_attempts = attempts

        for strategy in self.strategies:
            target = strategy.rewrite(url)
            try:
                body = self.client.get_text(target)
            except TransportError as exc:
                logger.warning(f"{strategy.name} a échoué ({exc})")
                attempts.append(FetchAttempt(strategy.name, target, str(exc)))
                continue

            attempts.append(FetchAttempt(strategy.name, target))
            self.last_body = body
            if strategy is not self.strategies[0]:
                logger.info(f"Récupéré via {strategy.name}: {target}")
            return body

        raise FetchExhaustedError(url, attempts)
