"""서버·클라이언트 설정.

값을 찾는 순서: 환경변수 → 서고 .env → 프로젝트 .env → DEFAULTS.

    AUTH_SECRET                JWT 서명 키 (없으면 로그인 불가)
    WENBAI_COOKIE_SECURE       세션 쿠키 Secure 플래그
    WENBAI_TOKEN_TTL_SECONDS   세션 유효 시간 (기본 7일)
    WENBAI_AUTOSAVE_SECONDS    편집기 자동 저장 주기
    WENBAI_API_URL             편집 클라이언트가 붙을 서버 주소
"""

import os
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

TRUE_VALUES = ("1", "true", "yes", "on")


def read_dotenv(path: Path) -> dict:
    """KEY=VALUE 줄만 읽는다. 주석과 빈 줄은 건너뛰고 값의 따옴표는 벗긴다."""
    values = {}
    if not path.is_file():
        return values
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


class AppSettings:
    """앱 설정.

    사용법:
        settings = AppSettings(library_root=Path("./corpus"))
        secret = settings.get_auth_secret()
        ttl = settings.get_int("token_ttl_seconds")
    """

    DEFAULTS = {
        "cookie_secure": "false",
        "token_ttl_seconds": 60 * 60 * 24 * 7,
        "autosave_seconds": 30,
        "api_url": "http://127.0.0.1:8000",
    }

    # WENBAI_ 접두사 없이 쓰는 이름
    ENV_NAMES = {
        "auth_secret": "AUTH_SECRET",
    }

    ENV_PREFIX = "WENBAI_"

    def __init__(self, library_root: Optional[Path] = None):
        self._dotenv = read_dotenv(PROJECT_ROOT / ".env")
        if library_root is not None:
            self._dotenv.update(read_dotenv(Path(library_root) / ".env"))

    def env_name(self, key: str) -> str:
        return self.ENV_NAMES.get(key, self.ENV_PREFIX + key.upper())

    def get(self, key: str, default=None):
        name = self.env_name(key)
        for source in (os.environ, self._dotenv):
            value = source.get(name)
            if value:
                return value
        return self.DEFAULTS.get(key, default)

    def get_int(self, key: str) -> int:
        return int(self.get(key))

    def get_bool(self, key: str) -> bool:
        return str(self.get(key, "false")).strip().lower() in TRUE_VALUES

    def get_auth_secret(self) -> Optional[str]:
        """JWT 서명 키. 설정되지 않았으면 None."""
        return self.get("auth_secret")
