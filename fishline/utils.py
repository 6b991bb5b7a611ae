import math
from contextlib import contextmanager
from datetime import datetime

from .errors import ValidationError

_TRUE = {"1", "true", "yes", "on", "sim"}
_FALSE = {"0", "false", "no", "off", "nao", "não"}


def now() -> datetime:
    return datetime.now()


def fmt_ts(v):
    if v is None:
        return None
    try:
        return v.isoformat()
    except AttributeError:
        return str(v)


def parse_flag(value, default: bool) -> bool:
    """Accept JSON booleans as well as the string forms the tablet sends."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"Valor booleano inválido: {value}")


def parse_timestamp(value, field: str):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    # fromisoformat only learned the "Z" suffix in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Data inválida em {field}: {value}")
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def parse_float(value, field: str):
    if value is None or value == "":
        return None
    try:
        number = float(str(value).replace(",", ".").strip())
    except ValueError:
        raise ValidationError(f"Número inválido em {field}: {value}")
    # nan/inf parse as floats but cannot be stored or summed
    if not math.isfinite(number):
        raise ValidationError(f"Número inválido em {field}: {value}")
    return number


def parse_int(value, field: str):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Inteiro inválido em {field}: {value}")


@contextmanager
def atomic(session):
    """Commit what the block did, or roll all of it back and re-raise."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
