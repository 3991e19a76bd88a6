import secrets
import time

from fastapi import Header, HTTPException
from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings

CSRF_HEADER = "X-CSRF-Token"
MAX_AGE_HOURS = 12


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="paybudget-csrf")


def generate_csrf_token() -> str:
    token_data = {"n": secrets.token_hex(8), "ts": int(time.time())}
    return _serializer().dumps(token_data)


def validate_csrf_token(token: str, max_age_hours: int = MAX_AGE_HOURS) -> bool:
    if not token:
        return False
    try:
        data = _serializer().loads(token, max_age=max_age_hours * 3600)
    except BadSignature:
        return False
    return isinstance(data, dict) and "n" in data


def require_csrf(x_csrf_token: str = Header(default="")) -> None:
    """FastAPI dependency guarding every mutating route."""
    if not validate_csrf_token(x_csrf_token):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
