"""
Taxonomie d'erreurs du pipeline.

- TransportError      : une tentative HTTP a échoué (récupérable par fallback)
- FetchExhaustedError : toutes les stratégies ont échoué pour un locator
                        (récupérable en passant au candidat suivant)
- NoDataFoundError    : tous les candidats sont épuisés (fatal pour le run)
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class PluviornError(Exception):
    """Racine des erreurs du projet."""


class TransportError(PluviornError):
    def __init__(self, url: str, status_code: Optional[int] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.status_code = status_code
        self.cause = cause
        if status_code is not None:
            reason = f"HTTP {status_code}"
        else:
            reason = f"{type(cause).__name__}: {cause}" if cause is not None else "erreur inconnue"
        super().__init__(f"{reason} sur {url}")


class FetchExhaustedError(PluviornError):
    """Toutes les stratégies de transport ont échoué pour une même URL canonique."""

    def __init__(self, url: str, attempts: Sequence[object]):
        self.url = url
        self.attempts = list(attempts)
        details = "; ".join(str(a) for a in self.attempts) or "aucune stratégie"
        super().__init__(f"Échec de toutes les stratégies pour {url} ({details})")


class NoDataFoundError(PluviornError):
    """Aucun identifiant candidat n'a produit de lignes."""

    def __init__(self, attempts: Sequence[object]):
        self.attempts = list(attempts)
        lines: List[str] = [str(a) for a in self.attempts]
        summary = "\n".join(f"  - {line}" for line in lines) or "  - aucun candidat"
        super().__init__(
            "Impossible d'obtenir les données du bulletin "
            f"(aucun candidat n'a retourné de lignes) :\n{summary}"
        )

    @property
    def identifiers(self) -> List[int]:
        return [getattr(a, "identifier") for a in self.attempts]
