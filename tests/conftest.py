"""
Doublures HTTP partagées par les tests (aucun accès réseau).
"""

from typing import Any, Dict, List, Optional, Union

import pytest
import requests

from pluviorn.errors import TransportError


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", json_data: Any = None):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json


Route = Union[FakeResponse, Exception]


class FakeSession:
    """Session requests minimale : routes URL exacte -> réponse ou exception."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None, allow_redirects=True):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, "not found")
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        self.closed = True


class StubTextClient:
    """Remplace TransportClient.get_text : dict URL -> corps (str) ou code HTTP (int)."""

    def __init__(self, pages: Dict[str, Union[str, int]]):
        self.pages = pages
        self.requested: List[str] = []

    def get_text(self, url: str) -> str:
        self.requested.append(url)
        page = self.pages.get(url, 404)
        if isinstance(page, int):
            raise TransportError(url, status_code=page)
        return page


class StubJsonClient:
    """Remplace TransportClient.get_json : dict URL -> payload JSON."""

    def __init__(self, payloads: Dict[str, Any]):
        self.payloads = payloads
        self.requested: List[str] = []

    def get_json(self, url: str, params=None) -> Any:
        self.requested.append(url)
        if url not in self.payloads:
            raise TransportError(url, status_code=404)
        return self.payloads[url]


def section_html(section_id: str, rows: List[List[str]], tbody: bool = True) -> str:
    body = "".join("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows)
    head = "<tr><th>Município</th><th>Posto</th><th>Tipo</th><th>Horas</th><th>mm</th></tr>"
    if tbody:
        table = f"<table><thead>{head}</thead><tbody>{body}</tbody></table>"
    else:
        table = f"<table>{head}{body}</table>"
    return f'<div class="tab-pane" id="{section_id}-content">{table}</div>'


def bulletin_page(*sections: str) -> str:
    return "<html><body><div class='tab-content'>" + "".join(sections) + "</div></body></html>"


@pytest.fixture
def sample_bulletin_html():
    return bulletin_page(
        section_html("agreste_potiguar", [["Santa Cruz", "Posto A", "Convencional", "07:00", "3,2"]]),
        section_html("central_potiguar", [["Caicó", "Posto B", "Automático", "07:00", "0"]]),
        section_html("leste_potiguar", [["Natal", "Posto X", "Convencional", "10:00", "12,5"]]),
        section_html("oeste_potiguar", [["Mossoró", "Posto M", "Convencional", "07:00", "1.234,5"]]),
    )


@pytest.fixture
def network_error():
    return requests.ConnectionError("Connection refused")


# variables lues par Settings.from_env
ENV_VARS = [
    "UF", "DIAS", "FORCED_DATE", "OUT_DIR", "BULLETIN_TZ", "BULLETIN_BASE_DATE", "BULLETIN_BASE_ID",
    "EMPARN_ORIGIN", "MIRROR_ORIGIN", "INMET_BASE_URL", "INMET_CHUNK_DAYS", "HTTP_TIMEOUT",
    "S3_BUCKET", "S3_PREFIX_OUT", "MONGO_URI", "MONGO_DB", "MONGO_COLLECTION", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
