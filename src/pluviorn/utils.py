import math
import re
from typing import Any, Iterable, Mapping, Optional

# -------------------------------------------------------------------
# NORMALISATION NUMÉRIQUE
# -------------------------------------------------------------------
NULL_LIKE = {"", "none", "null", "nan", "na", "n/a", "-", "--", "—"}

_WS_RE = re.compile(r"\s+")
_LEADING_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")


def _finite(x: float) -> Optional[float]:
    return x if math.isfinite(x) else None


def clean_nb(v: Any) -> str:
    s = "" if v is None else str(v)
    s = s.replace("\u00a0", " ").strip()
    if s.lower() in NULL_LIKE:
        return ""
    return s


def parse_number_br(v: Any) -> Optional[float]:
    """
    Parse un nombre en notation brésilienne : '.' milliers, ',' décimale.
    '1.234,5' -> 1234.5 ; '' / None / non parsable -> None (jamais d'exception).
    """
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return _finite(float(v))
    s = clean_nb(v)
    if not s:
        return None
    s = s.replace(".", "").replace(",", ".")
    # comme parseFloat : on garde le préfixe numérique ("12,5 mm" -> 12.5)
    m = _LEADING_NUMBER_RE.match(s)
    if not m:
        return None
    return _finite(float(m.group(0)))


def number_or_null(v: Any) -> Optional[float]:
    """
    Nombre issu de l'API (déjà en notation point, parfois virgule).
    Pas de séparateur de milliers : '-5.83' reste -5.83.
    """
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return _finite(float(v))
    s = clean_nb(v)
    if not s:
        return None
    try:
        return _finite(float(s.replace(",", ".")))
    except ValueError:
        return None


# -------------------------------------------------------------------
# CHAMPS À NOMS VARIABLES
# -------------------------------------------------------------------
def is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v.strip() == "")


def first_present(data: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    """Première valeur présente et non vide parmi les clés candidates (dans l'ordre)."""
    for k in keys:
        v = data.get(k)
        if not is_blank(v):
            return v
    return default


def collapse_ws(text: Optional[str]) -> str:
    # équivalent de .replace(/\s+/g, " ").trim()
    return _WS_RE.sub(" ", text or "").strip()


def text_or_none(v: Any) -> Optional[str]:
    if is_blank(v):
        return None
    return str(v).strip()
