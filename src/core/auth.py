"""사용자 인증 모듈.

사용자는 서고의 users.json에 보관한다. 비밀번호는 bcrypt 해시만 저장한다.
로그인하면 HS256 JWT를 HTTP-only 쿠키(wenbai_token)로 내려준다.

    {"sub": "<user id>", "username": ..., "displayName": ..., "iat": ..., "exp": ...}

토큰이 유효해도 users.json에서 사용자가 지워졌으면 비로그인으로 본다.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import bcrypt
import jwt

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "wenbai_token"
SEVEN_DAYS_IN_SECONDS = 60 * 60 * 24 * 7
JWT_ALG = "HS256"


@dataclass
class AuthUser:
    """로그인한 사용자. API 응답에는 비밀번호 해시를 싣지 않는다."""

    id: int
    username: str
    display_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AuthUser:
        return cls(
            id=int(data["id"]),
            username=data["username"],
            display_name=data.get("displayName", data.get("display_name")),
        )


# ──────────────────────────────────────
# 비밀번호
# ──────────────────────────────────────


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        # 손상된 해시
        logger.error("bcrypt 비교 실패: %s", e)
        return False


# ──────────────────────────────────────
# 사용자 저장소 (users.json)
# ──────────────────────────────────────


def _users_path(library_path: str | Path) -> Path:
    return Path(library_path).resolve() / "users.json"


def _load_users(library_path: str | Path) -> list[dict]:
    path = _users_path(library_path)
    if not path.exists():
        return []
    return json.loads(path.read_text(encoding="utf-8"))


def _save_users(library_path: str | Path, users: list[dict]) -> None:
    path = _users_path(library_path)
    path.write_text(
        json.dumps(users, ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
    )


def create_user(
    library_path: str | Path,
    username: str,
    password: str,
    display_name: Optional[str] = None,
    force: bool = False,
) -> AuthUser:
    """사용자를 만든다. force=True이면 같은 이름의 사용자 비밀번호와 표시 이름을 덮어쓴다.

    Raises:
        ValueError: 사용자명 또는 비밀번호가 비어 있을 때.
        FileExistsError: 이미 있는 사용자명이고 force가 아닐 때.
    """
    username = (username or "").strip()
    if not username or not password:
        raise ValueError("缺少用户名或密码")

    users = _load_users(library_path)
    existing = next((u for u in users if u["username"] == username), None)
    if existing is not None and not force:
        raise FileExistsError(
            f"用户已存在: {username}\n→ 해결: --force 옵션으로 덮어쓰세요."
        )

    if existing is not None:
        existing["password_hash"] = hash_password(password)
        existing["display_name"] = display_name
        entry = existing
    else:
        entry = {
            "id": max((u["id"] for u in users), default=0) + 1,
            "username": username,
            "display_name": display_name,
            "password_hash": hash_password(password),
        }
        users.append(entry)

    _save_users(library_path, users)
    return AuthUser(entry["id"], entry["username"], entry["display_name"])


def find_user(library_path: str | Path, user_id: int) -> Optional[AuthUser]:
    for u in _load_users(library_path):
        if u["id"] == user_id:
            return AuthUser(u["id"], u["username"], u.get("display_name"))
    return None


def authenticate(
    library_path: str | Path, username: str, password: str
) -> Optional[AuthUser]:
    """사용자명·비밀번호를 확인한다. 틀리면 None."""
    for u in _load_users(library_path):
        if u["username"] == username:
            if verify_password(password, u["password_hash"]):
                return AuthUser(u["id"], u["username"], u.get("display_name"))
            return None
    return None


# ──────────────────────────────────────
# 토큰
# ──────────────────────────────────────


def sign_auth_token(
    user: AuthUser, secret: str, ttl_seconds: int = SEVEN_DAYS_IN_SECONDS
) -> str:
    iat = int(time.time())
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "displayName": user.display_name,
        "iat": iat,
        "exp": iat + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def verify_auth_token(token: str, secret: str) -> Optional[dict]:
    """토큰을 검증해 payload를 돌려준다. 만료·위조·형식 오류면 None."""
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("인증 토큰 검증 실패: %s", e)
        return None

    if not isinstance(payload.get("sub"), str) or not isinstance(
        payload.get("username"), str
    ):
        return None
    return payload


def get_auth_user(
    library_path: str | Path, token: Optional[str], secret: Optional[str]
) -> Optional[AuthUser]:
    """쿠키 토큰으로 현재 사용자를 찾는다. 어떤 이유로든 확인되지 않으면 None."""
    if not token or not secret:
        return None

    payload = verify_auth_token(token, secret)
    if payload is None:
        return None

    try:
        user_id = int(payload["sub"])
    except ValueError:
        return None

    return find_user(library_path, user_id)
