"""코퍼스 서버 실행.

    python -m app serve --library ./corpus
    python -m app serve                      # 최근 서고를 다시 연다
    python -m app serve --log-level debug

로그인에는 AUTH_SECRET이 필요하다 (환경변수 또는 서고 .env).
없으면 서버는 뜨지만 조회만 가능하고 로그인 요청은 500으로 거절된다.
"""

import argparse
import sys
from pathlib import Path

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def _fail(message: str) -> None:
    print(f"오류: {message}", file=sys.stderr)
    sys.exit(1)


def _resolve_library(raw: str | None) -> Path:
    """--library 인자, 없으면 최근 서고. 둘 다 없거나 서고가 아니면 종료한다."""
    from core.app_config import get_last_library

    if raw:
        library_path = Path(raw).resolve()
    else:
        last = get_last_library()
        if not last:
            _fail("서고를 지정하지 않았고 최근에 연 서고도 없습니다.\n→ 해결: --library <경로>")
        library_path = Path(last)
        print(f"최근 서고를 엽니다: {library_path}")

    if not (library_path / "library_manifest.json").is_file():
        _fail(
            f"서고가 아닙니다: {library_path}\n"
            "→ 해결: 'python -m cli init-library <경로>'로 먼저 만드세요."
        )
    return library_path


def cmd_serve(args) -> None:
    import uvicorn

    from app._state import get_settings
    from app.server import configure

    library_path = _resolve_library(args.library)
    configure(library_path)

    settings = get_settings()
    if not settings.get_auth_secret():
        print("경고: AUTH_SECRET이 없어 로그인할 수 없습니다 (읽기 전용).", file=sys.stderr)
    if settings.get_bool("cookie_secure"):
        print("세션 쿠키: Secure (HTTPS 전용)")

    print(f"서고: {library_path}")
    print(f"서버: http://{args.host}:{args.port}")
    uvicorn.run(
        "app.server:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=False,
    )


def main():
    parser = argparse.ArgumentParser(
        prog="wenbai-annotator-server",
        description="文白对照语料标注 서버",
    )
    subparsers = parser.add_subparsers(dest="command")

    p_serve = subparsers.add_parser("serve", help="API 서버를 실행한다")
    p_serve.add_argument("--library", default=None, help="서고 경로 (생략 시 최근 서고)")
    p_serve.add_argument("--host", default="127.0.0.1", help="바인드 주소 (기본: 127.0.0.1)")
    p_serve.add_argument("--port", type=int, default=8000, help="포트 (기본: 8000)")
    p_serve.add_argument(
        "--log-level", choices=LOG_LEVELS, default="info", help="uvicorn 로그 수준"
    )
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
