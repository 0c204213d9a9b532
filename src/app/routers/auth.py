"""인증 라우터.

로그인 / 로그아웃 / 세션 조회. 세션은 HTTP-only 쿠키(wenbai_token)의 JWT다.
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from core.auth import AUTH_COOKIE_NAME, authenticate, sign_auth_token

from app._state import (
    current_user,
    error,
    get_library_path,
    get_settings,
    no_library,
    success,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """로그인 요청. 빈 값 검사는 핸들러에서 한다."""
    username: str = ""
    password: str = ""


@router.post("/api/auth/login")
async def api_login(body: LoginRequest):
    """로그인하고 세션 쿠키를 설정한다.

    출력: {message, data: {id, username, displayName}}.
          400 — 사용자명/비밀번호 누락, 401 — 불일치, 500 — AUTH_SECRET 미설정.
    """
    library_path = get_library_path()
    if library_path is None:
        return no_library()

    username = body.username.strip()
    if not username or not body.password:
        return error("缺少用户名或密码", 400)

    settings = get_settings()
    secret = settings.get_auth_secret()
    if not secret:
        logger.error("AUTH_SECRET is not configured")
        return error("认证服务未准备就绪，请联系管理员配置安全密钥。", 500)

    user = authenticate(library_path, username, body.password)
    if user is None:
        return error("用户名或密码错误", 401)

    ttl = settings.get_int("token_ttl_seconds")
    response = success(user.to_dict())
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=sign_auth_token(user, secret, ttl_seconds=ttl),
        max_age=ttl,
        httponly=True,
        samesite="lax",
        secure=settings.get_bool("cookie_secure"),
        path="/",
    )
    logger.info("로그인: %s", user.username)
    return response


@router.post("/api/auth/logout")
async def api_logout():
    """세션 쿠키를 지운다."""
    response = success()
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=get_settings().get_bool("cookie_secure"),
    )
    return response


@router.get("/api/auth/session")
async def api_session(request: Request):
    """현재 로그인한 사용자. 없으면 data: null."""
    user = current_user(request)
    return {"message": "success", "data": user.to_dict() if user else None}
