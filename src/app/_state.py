"""라우터 공통 상태 및 헬퍼.

모든 라우터가 이 모듈에서 get_library_path(), get_settings(), 응답 헬퍼를 import한다.
서버 프로세스 하나가 서고 하나를 연다.
"""

import logging
from pathlib import Path

from fastapi import Request
from fastapi.responses import JSONResponse

from core.auth import AUTH_COOKIE_NAME, AuthUser, get_auth_user
from core.settings import AppSettings

logger = logging.getLogger(__name__)

# ── 전역 상태 ─────────────────────────────────

_library_path: Path | None = None
_settings: AppSettings | None = None


# ── 상태 접근 함수 ───────────────────────────

def get_library_path() -> Path | None:
    """현재 서고 경로를 반환한다."""
    return _library_path


def get_settings() -> AppSettings:
    """설정을 lazy-init한다. 서고가 바뀌면 configure_library()가 리셋한다."""
    global _settings
    if _settings is None:
        _settings = AppSettings(library_root=_library_path)
    return _settings


def configure_library(library_path: str | Path) -> Path:
    """서고 경로를 설정한다.

    설정 캐시를 초기화하고 (서고별 .env가 다를 수 있음) 최근 서고 목록에 추가한다.
    """
    global _library_path, _settings
    resolved = Path(library_path).resolve()
    _library_path = resolved
    _settings = None

    try:
        from core.app_config import remember_library
        remember_library(resolved)
    except OSError as e:
        logger.debug("최근 서고 기록 실패 (무시): %s", e)

    return resolved


# ── 응답 헬퍼 ─────────────────────────────────

def success(data=None, status_code: int = 200) -> JSONResponse:
    body = {"message": "success"}
    if data is not None:
        body["data"] = data
    return JSONResponse(body, status_code=status_code)


def error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"message": "error", "error": message}, status_code=status_code)


def no_library() -> JSONResponse:
    return error("서고가 설정되지 않았습니다.", 500)


def unauthorized() -> JSONResponse:
    return error("未授权，请先登录", 401)


def parse_id(raw: str) -> int | None:
    """경로의 id 문자열을 양의 정수로. 아니면 None."""
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def current_user(request: Request) -> AuthUser | None:
    """요청 쿠키의 토큰으로 현재 사용자를 찾는다."""
    if _library_path is None:
        return None
    return get_auth_user(
        _library_path,
        request.cookies.get(AUTH_COOKIE_NAME),
        get_settings().get_auth_secret(),
    )
