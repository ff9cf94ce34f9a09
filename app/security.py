from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.errors import unauthorized

logger = logging.getLogger(__name__)

PASSWORD_POLICY = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
PLACEHOLDER_SECRETS = {
    "secret",
    "changeme",
    "your-secret-key",
    "your-super-secret-jwt-key",
}
_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
BCRYPT_MAX_PASSWORD_BYTES = 72


def parse_duration_seconds(raw: str, *, default: int) -> int:
    match = _DURATION_RE.match(raw.strip().lower())
    if match is None:
        return default
    value = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    return value if value > 0 else default


def redact_sensitive(value: object) -> object:
    sensitive_keys = {"authorization", "token", "secret", "password", "currentpassword", "newpassword", "cookie"}
    if isinstance(value, dict):
        redacted: dict[str, object] = {}
        for key, item in value.items():
            key_lower = str(key).lower()
            if key_lower in sensitive_keys:
                redacted[str(key)] = "***REDACTED***"
            else:
                redacted[str(key)] = redact_sensitive(item)
        return redacted
    if isinstance(value, list):
        return [redact_sensitive(x) for x in value]
    if isinstance(value, str):
        if len(value) >= 24 and value.lower().startswith("bearer "):
            return "***REDACTED***"
    return value


def hash_password(plain: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def password_meets_policy(plain: str) -> bool:
    return PASSWORD_POLICY.match(plain) is not None


def password_fits_bcrypt(plain: str) -> bool:
    return len(plain.encode("utf-8")) <= BCRYPT_MAX_PASSWORD_BYTES


@dataclass
class AuthContext:
    subject: str
    email: str
    role: str
    claims: dict[str, Any]


@dataclass
class JwtSecurityConfig:
    secret: str
    expires_in_seconds: int
    issuer: str
    audience: str
    log_redaction_enabled: bool

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "JwtSecurityConfig":
        env = os.environ if environ is None else environ
        secret = env.get("JWT_SECRET", "").strip()
        if not secret:
            raise RuntimeError("JWT_SECRET must be set")
        app_env = env.get("APP_ENV", "development").strip().lower()
        if app_env == "production" and secret.lower() in PLACEHOLDER_SECRETS:
            raise RuntimeError("JWT_SECRET must not use a placeholder value in production")
        redaction_raw = env.get("SECURITY_LOG_REDACTION_ENABLED", "").strip().lower()
        return cls(
            secret=secret,
            expires_in_seconds=parse_duration_seconds(env.get("JWT_EXPIRE", "7d"), default=7 * 86400),
            issuer=env.get("JWT_ISSUER", "").strip(),
            audience=env.get("JWT_AUDIENCE", "").strip(),
            log_redaction_enabled=redaction_raw not in {"0", "false", "no", "off"},
        )


def issue_access_token(*, user: Mapping[str, Any], cfg: JwtSecurityConfig, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(user["id"]),
        "email": user.get("email", ""),
        "role": user.get("role", ""),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=cfg.expires_in_seconds)).timestamp()),
    }
    if cfg.issuer:
        payload["iss"] = cfg.issuer
    if cfg.audience:
        payload["aud"] = cfg.audience
    return jwt.encode(payload, cfg.secret, algorithm="HS256")


def parse_and_validate_bearer_token(*, authorization: str | None, cfg: JwtSecurityConfig) -> AuthContext:
    if not authorization:
        raise unauthorized("Access token is required")
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise unauthorized("Access token is required")
    token = authorization[len(prefix) :].strip()
    if not token:
        raise unauthorized("Access token is required")
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=["HS256"],
            audience=cfg.audience or None,
            issuer=cfg.issuer or None,
            options={"require": ["exp", "sub"], "verify_aud": bool(cfg.audience)},
        )
    except jwt.ExpiredSignatureError:
        logger.info("jwt_rejected reason=expired")
        raise unauthorized("Invalid or expired token") from None
    except jwt.InvalidTokenError as exc:
        logger.info("jwt_rejected reason=%s", type(exc).__name__)
        raise unauthorized("Invalid or expired token") from None

    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise unauthorized("Invalid or expired token")
    return AuthContext(
        subject=subject,
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or ""),
        claims=payload,
    )
