from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
import threading

from sqlalchemy.orm import Session

from libdesk.config import settings
from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.models import Role, User


_REVOKED_TOKENS: dict[str, int] = {}
_TOKENS_LOCK = threading.RLock()
logger = logging.getLogger(__name__)

PASSWORD_SCHEME = 'pbkdf2_sha256'
PASSWORD_ITERATIONS = 120000
MIN_PASSWORD_LENGTH = 8


class AuthenticationError(ValueError):
    """Raised when credentials or a session token are not valid."""


def _pbkdf2(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), iterations).hex()


def _hash_password(password: str) -> str:
    if len(password or '') < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    salt = secrets.token_hex(16)
    return '$'.join((PASSWORD_SCHEME, str(PASSWORD_ITERATIONS), salt, _pbkdf2(password, salt, PASSWORD_ITERATIONS)))


def _verify_password(password: str, password_hash: str) -> bool:
    parts = (password_hash or '').split('$')
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME or not parts[1].isdigit():
        return False
    _, iterations, salt, expected = parts
    return hmac.compare_digest(_pbkdf2(password or '', salt, int(iterations)), expected)


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _unb64(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + '=' * (-len(value) % 4))


def _signature(signed_part: str) -> bytes:
    return hmac.new(settings.auth_secret.encode('utf-8'), signed_part.encode('ascii'), hashlib.sha256).digest()


def _json_part(value: dict) -> str:
    return _b64(json.dumps(value, separators=(',', ':')).encode('utf-8'))


_TOKEN_HEADER = _json_part({'alg': 'HS256', 'typ': 'JWT'})


def _encode_token(claims: dict) -> str:
    signed_part = f'{_TOKEN_HEADER}.{_json_part(claims)}'
    return f'{signed_part}.{_b64(_signature(signed_part))}'


def _decode_token(token: str) -> dict | None:
    """Claims of an HS256 token signed with AUTH_SECRET, or None when malformed or forged."""
    pieces = token.split('.')
    if len(pieces) != 3:
        return None
    signed_part = f'{pieces[0]}.{pieces[1]}'
    try:
        valid = hmac.compare_digest(_unb64(pieces[2]), _signature(signed_part))
        claims = json.loads(_unb64(pieces[1])) if valid else None
    except (ValueError, UnicodeError):
        return None
    return claims if isinstance(claims, dict) else None


def _session_view(claims: dict) -> dict:
    return {
        'user_id': int(claims['sub']),
        'username': claims['username'],
        'role': claims['role'],
        'expires_at': claims['exp'],
    }


def _issue_session_token(user: User, *, time_provider: TimeProvider = default_time_provider) -> dict:
    issued_at = int(time_provider.now().timestamp())
    claims = {
        'sub': user.id,
        'username': user.username,
        'role': user.role,
        'iat': issued_at,
        'exp': issued_at + int(settings.auth_session_expiry_hours) * 3600,
    }
    token = _encode_token(claims)
    with _TOKENS_LOCK:
        _REVOKED_TOKENS.pop(token, None)
    return {'token': token, **_session_view(claims)}


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    role: str,
    full_name: str = '',
    email: str = '',
) -> User:
    clean_username = (username or '').strip()
    if not clean_username:
        raise ValueError('Username is required')
    if role not in (Role.ADMIN.value, Role.STAFF.value):
        raise ValueError('Invalid role. Must be "admin" or "staff"')
    if db.query(User).filter(User.username == clean_username).first():
        raise ValueError('Username already exists')
    user = User(
        username=clean_username,
        password_hash=_hash_password(password),
        role=role,
        full_name=full_name or '',
        email=email or '',
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info('user_created user_id=%s role=%s', user.id, user.role)
    return user


def login_password(
    db: Session,
    username: str,
    password: str,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if not (username or '').strip() or not password:
        raise ValueError('Username and password are required')
    user = db.query(User).filter(User.username == username.strip()).first()
    if not user or not _verify_password(password, user.password_hash):
        logger.warning('auth_login_failed username=%s', (username or '').strip())
        raise AuthenticationError('Invalid credentials')
    logger.info('auth_login_ok user_id=%s role=%s', user.id, user.role)
    return _issue_session_token(user, time_provider=time_provider)


def validate_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict | None:
    """Session details for a live token; None when missing, revoked, forged or expired."""
    if not token:
        return None
    with _TOKENS_LOCK:
        if token in _REVOKED_TOKENS:
            return None
    claims = _decode_token(token)
    if not claims or claims.get('sub') is None or not claims.get('username') or not claims.get('role'):
        return None
    expires_at = claims.get('exp')
    if not isinstance(expires_at, int) or expires_at <= int(time_provider.now().timestamp()):
        return None
    return _session_view(claims)


def _prune_revoked(now_ts: int) -> None:
    # Expired tokens fail validation on their own, so their entries can go.
    for token in [token for token, expires_at in _REVOKED_TOKENS.items() if expires_at <= now_ts]:
        del _REVOKED_TOKENS[token]


def clear_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> None:
    if not token:
        return
    claims = _decode_token(token)
    expires_at = claims.get('exp') if claims else None
    now_ts = int(time_provider.now().timestamp())
    with _TOKENS_LOCK:
        _prune_revoked(now_ts)
        if isinstance(expires_at, int) and expires_at > now_ts:
            _REVOKED_TOKENS[token] = expires_at


def ensure_default_admin(db: Session) -> User | None:
    if db.query(User).filter(User.role == Role.ADMIN.value).first():
        logger.info('default_admin_skip reason=admin_exists')
        return None
    user = create_user(
        db,
        username=settings.default_admin_username,
        password=settings.default_admin_password,
        role=Role.ADMIN.value,
        full_name='Default Admin',
        email='admin@example.com',
    )
    logger.info('default_admin_created user_id=%s', user.id)
    return user
