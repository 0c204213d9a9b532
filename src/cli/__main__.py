"""CLI 도구 — 文白对照语料标注.

사용법:
    python -m cli init-library <path>
    python -m cli create-user <library_path> --username <이름> --password <비밀번호> [--display-name <표시 이름>] [--force]
    python -m cli import-data <library_path> --data-path <디렉토리> [--repo-name <자료고 이름>]
    python -m cli validate <json 파일>
    python -m cli list-repos <library_path>

pip install -e . 후 실행하거나, src/ 디렉토리에서 실행한다.
"""

import argparse
import sys
from pathlib import Path

# src/ 디렉토리를 Python 경로에 추가하여 pip install 없이도 실행 가능하게 한다.
_src_dir = str(Path(__file__).resolve().parent.parent)
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

from core.auth import create_user  # noqa: E402
from core.library import (  # noqa: E402
    create_repo,
    get_library_info,
    import_record,
    init_library,
    list_records,
    list_repos,
)
from core.record_validator import validate_payload  # noqa: E402

DEFAULT_IMPORT_REPO = "默认资料库"


def cmd_init_library(args):
    """서고를 초기화한다."""
    try:
        path = init_library(args.path)
        print(f"✓ 서고를 생성했습니다: {path}")
    except FileExistsError as e:
        print(f"오류: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_create_user(args):
    """로그인 사용자를 만든다. --force면 같은 이름의 사용자를 덮어쓴다."""
    try:
        get_library_info(args.library_path)
        user = create_user(
            args.library_path,
            args.username,
            args.password,
            display_name=args.display_name,
            force=args.force,
        )
        print(f"✓ 사용자를 저장했습니다: [{user.id}] {user.username}")
    except (FileExistsError, FileNotFoundError, ValueError) as e:
        print(f"오류: {e}", file=sys.stderr)
        sys.exit(1)


def _find_or_create_repo(library_path: str, name: str):
    for repo in list_repos(library_path):
        if repo.name == name:
            return repo
    repo = create_repo(library_path, name)
    print(f"✓ 자료고를 만들었습니다: [{repo.id}] {repo.name}")
    return repo


def cmd_import_data(args):
    """디렉토리의 *.json 조목 파일을 검증한 뒤 자료고에 가져온다.

    검증에 실패하거나 같은 원문이 이미 있는 파일은 건너뛰고 이유를 출력한다.
    하나라도 건너뛰었으면 종료 코드 1.
    """
    data_path = Path(args.data_path)
    if not data_path.is_dir():
        print(f"오류: 디렉토리를 찾을 수 없습니다: {data_path}", file=sys.stderr)
        sys.exit(1)

    try:
        get_library_info(args.library_path)
        repo = _find_or_create_repo(args.library_path, args.repo_name)
    except (FileNotFoundError, ValueError) as e:
        print(f"오류: {e}", file=sys.stderr)
        sys.exit(1)

    files = sorted(data_path.glob("*.json"))
    imported = 0
    skipped = 0
    for file in files:
        result = validate_payload(file.read_text(encoding="utf-8"))
        if not result.ok:
            print(f"  ✗ {file.name}: {result.error}", file=sys.stderr)
            skipped += 1
            continue
        try:
            detail = import_record(args.library_path, repo.id, result.data)
        except (FileExistsError, ValueError) as e:
            print(f"  ✗ {file.name}: {e}", file=sys.stderr)
            skipped += 1
            continue
        print(f"  ✓ {file.name} → [{detail.id}] {detail.source[:20]}")
        imported += 1

    print(f"가져오기 완료: {imported}개 성공, {skipped}개 건너뜀 (총 {len(files)}개)")
    if skipped:
        sys.exit(1)


def cmd_validate(args):
    """조목 JSON 파일 하나를 검증만 한다."""
    path = Path(args.file)
    if not path.exists():
        print(f"오류: 파일을 찾을 수 없습니다: {path}", file=sys.stderr)
        sys.exit(1)

    result = validate_payload(path.read_text(encoding="utf-8"))
    if not result.ok:
        print(f"✗ [{result.code.value}] {result.error}", file=sys.stderr)
        sys.exit(1)

    detail = result.data
    print(
        f"✓ 유효합니다: 원문 词元 {len(detail.source_tokens)}개, "
        f"译文 词元 {len(detail.target_tokens)}개, 对齐 {len(detail.alignment)}개"
    )


def cmd_list_repos(args):
    """서고의 자료고 목록을 출력한다."""
    try:
        info = get_library_info(args.library_path)
        repos = list_repos(args.library_path)

        print(f"서고: {info.get('name', '?')}")
        print(f"자료고 수: {len(repos)}")
        print()

        if not repos:
            print("  (등록된 자료고가 없습니다)")
            return

        for repo in repos:
            count = len(list_records(args.library_path, repo.id))
            print(f"  [{repo.id}] {repo.name}  — 조목 {count}개")

    except FileNotFoundError as e:
        print(f"오류: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        prog="wenbai-annotator",
        description="文白对照语料标注 — CLI 도구",
    )
    subparsers = parser.add_subparsers(dest="command")

    # init-library
    p_init = subparsers.add_parser(
        "init-library",
        help="서고 디렉토리 구조를 생성한다",
    )
    p_init.add_argument("path", help="서고를 생성할 경로")
    p_init.set_defaults(func=cmd_init_library)

    # create-user
    p_user = subparsers.add_parser(
        "create-user",
        help="로그인 사용자를 만든다",
    )
    p_user.add_argument("library_path", help="서고 경로")
    p_user.add_argument("--username", required=True, help="사용자명")
    p_user.add_argument("--password", required=True, help="비밀번호")
    p_user.add_argument("--display-name", default=None, help="표시 이름")
    p_user.add_argument(
        "--force", action="store_true", help="같은 사용자명이 있으면 덮어쓴다"
    )
    p_user.set_defaults(func=cmd_create_user)

    # import-data
    p_import = subparsers.add_parser(
        "import-data",
        help="JSON 조목 파일들을 자료고에 가져온다",
    )
    p_import.add_argument("library_path", help="서고 경로")
    p_import.add_argument("--data-path", required=True, help="*.json 파일이 있는 디렉토리")
    p_import.add_argument(
        "--repo-name",
        default=DEFAULT_IMPORT_REPO,
        help=f"가져올 자료고 이름, 없으면 만든다 (기본: {DEFAULT_IMPORT_REPO})",
    )
    p_import.set_defaults(func=cmd_import_data)

    # validate
    p_validate = subparsers.add_parser(
        "validate",
        help="조목 JSON 파일을 검증한다",
    )
    p_validate.add_argument("file", help="검증할 JSON 파일")
    p_validate.set_defaults(func=cmd_validate)

    # list-repos
    p_list = subparsers.add_parser(
        "list-repos",
        help="서고의 자료고 목록을 출력한다",
    )
    p_list.add_argument("library_path", help="서고 경로")
    p_list.set_defaults(func=cmd_list_repos)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
