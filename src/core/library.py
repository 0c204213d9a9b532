"""코퍼스 서고(Library) 저장 모듈.

서고는 자료고(repository)와 그 안의 조목(record)을 JSON 파일로 보관하는
최상위 디렉토리다.

    library/
    ├── library_manifest.json     # 서고 메타데이터 + 다음 자료고 id
    ├── users.json                # 사용자 (core.auth)
    └── repos/
        └── {repo_id}/
            ├── manifest.json     # {id, name, created_at, next_record_id}
            └── records/
                └── {record_id:06d}.json   # RecordDetail

저장은 조목 단위 전체 교체다. 버전 관리나 낙관적 잠금은 없다 (마지막 저장이 이긴다).
"""

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from jsonschema import ValidationError, validate

from core.models import RecordDetail, RecordSummary, Repo
from core.record_validator import get_record_schema, validate_record

logger = logging.getLogger(__name__)


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
    )


def _read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ──────────────────────────────────────
# 서고
# ──────────────────────────────────────


def init_library(path: str | Path) -> Path:
    """서고 디렉토리 구조를 생성한다.

    목적: 빈 서고를 만들어 자료고를 등록할 준비를 한다.
    입력: path — 서고를 생성할 경로.
    출력: 생성된 서고의 Path.

    Raises:
        FileExistsError: 해당 경로에 이미 서고(library_manifest.json)가 있을 때.
    """
    library_path = Path(path).resolve()

    if (library_path / "library_manifest.json").exists():
        raise FileExistsError(
            f"서고가 이미 존재합니다: {library_path}\n"
            "→ 해결: 다른 경로를 지정하거나 기존 서고를 사용하세요."
        )

    (library_path / "repos").mkdir(parents=True, exist_ok=True)

    manifest = {
        "name": library_path.name,
        "created_at": _now(),
        "next_repo_id": 1,
    }
    _write_json(library_path / "library_manifest.json", manifest)
    _write_json(library_path / "users.json", [])

    return library_path


def get_library_info(path: str | Path) -> dict:
    """library_manifest.json을 읽어 반환한다.

    Raises:
        FileNotFoundError: 서고를 찾을 수 없을 때.
    """
    library_path = Path(path).resolve()
    manifest_path = library_path / "library_manifest.json"

    if not manifest_path.exists():
        raise FileNotFoundError(
            f"서고를 찾을 수 없습니다: {library_path}\n"
            "→ 해결: 'init-library' 명령으로 서고를 먼저 생성하세요."
        )

    return _read_json(manifest_path)


def _allocate_repo_id(library_path: Path) -> int:
    manifest = get_library_info(library_path)
    repo_id = int(manifest.get("next_repo_id", 1))
    manifest["next_repo_id"] = repo_id + 1
    _write_json(library_path / "library_manifest.json", manifest)
    return repo_id


# ──────────────────────────────────────
# 자료고
# ──────────────────────────────────────


def _repo_dir(library_path: Path, repo_id: int) -> Path:
    return library_path / "repos" / str(repo_id)


def _load_repo_manifest(library_path: Path, repo_id: int) -> dict:
    manifest_path = _repo_dir(library_path, repo_id) / "manifest.json"
    if not manifest_path.exists():
        raise FileNotFoundError(f"Repository not found: {repo_id}")
    return _read_json(manifest_path)


def list_repos(path: str | Path) -> list[Repo]:
    """서고의 자료고 목록을 id 순으로 반환한다."""
    library_path = Path(path).resolve()
    repos_dir = library_path / "repos"

    if not repos_dir.exists():
        return []

    repos = []
    for repo_dir in repos_dir.iterdir():
        manifest_path = repo_dir / "manifest.json"
        if repo_dir.is_dir() and manifest_path.exists():
            repos.append(Repo.from_dict(_read_json(manifest_path)))

    return sorted(repos, key=lambda r: r.id)


def get_repo(path: str | Path, repo_id: int) -> Repo:
    """자료고 하나를 반환한다. 없으면 FileNotFoundError."""
    return Repo.from_dict(_load_repo_manifest(Path(path).resolve(), repo_id))


def _find_repo_by_name(library_path: Path, name: str) -> Repo | None:
    for repo in list_repos(library_path):
        if repo.name == name:
            return repo
    return None


def create_repo(path: str | Path, name: str) -> Repo:
    """자료고를 만든다.

    입력: name — 앞뒤 공백을 지운 뒤 비어 있으면 안 된다.
    Raises:
        ValueError: 이름이 비어 있을 때.
        FileExistsError: 같은 이름의 자료고가 있을 때.
    """
    library_path = Path(path).resolve()
    name = (name or "").strip()
    if not name:
        raise ValueError("Missing repository name")
    if _find_repo_by_name(library_path, name) is not None:
        raise FileExistsError("资料库名称已存在")

    repo_id = _allocate_repo_id(library_path)
    repo_dir = _repo_dir(library_path, repo_id)
    (repo_dir / "records").mkdir(parents=True, exist_ok=True)
    _write_json(
        repo_dir / "manifest.json",
        {"id": repo_id, "name": name, "created_at": _now(), "next_record_id": 1},
    )
    logger.info("자료고 생성: %d (%s)", repo_id, name)
    return Repo(id=repo_id, name=name)


def rename_repo(path: str | Path, repo_id: int, name: str) -> Repo:
    """자료고 이름을 바꾼다. 규칙은 create_repo와 같다."""
    library_path = Path(path).resolve()
    name = (name or "").strip()
    if not name:
        raise ValueError("Missing repository name")

    manifest = _load_repo_manifest(library_path, repo_id)
    existing = _find_repo_by_name(library_path, name)
    if existing is not None and existing.id != repo_id:
        raise FileExistsError("资料库名称已存在")

    manifest["name"] = name
    _write_json(_repo_dir(library_path, repo_id) / "manifest.json", manifest)
    return Repo(id=repo_id, name=name)


def delete_repo(path: str | Path, repo_id: int) -> None:
    """자료고와 그 안의 모든 조목을 삭제한다."""
    library_path = Path(path).resolve()
    _load_repo_manifest(library_path, repo_id)
    shutil.rmtree(_repo_dir(library_path, repo_id))
    logger.info("자료고 삭제: %d", repo_id)


# ──────────────────────────────────────
# 조목
# ──────────────────────────────────────


def _record_path(library_path: Path, repo_id: int, record_id: int) -> Path:
    return _repo_dir(library_path, repo_id) / "records" / f"{record_id:06d}.json"


def _iter_records(library_path: Path, repo_id: int):
    records_dir = _repo_dir(library_path, repo_id) / "records"
    for record_path in sorted(records_dir.glob("*.json")):
        yield RecordDetail.from_dict(_read_json(record_path))


def _allocate_record_id(library_path: Path, repo_id: int) -> int:
    manifest = _load_repo_manifest(library_path, repo_id)
    record_id = int(manifest.get("next_record_id", 1))
    manifest["next_record_id"] = record_id + 1
    _write_json(_repo_dir(library_path, repo_id) / "manifest.json", manifest)
    return record_id


def list_records(path: str | Path, repo_id: int) -> list[RecordSummary]:
    """자료고의 조목 목록 (id, source)을 id 순으로 반환한다."""
    library_path = Path(path).resolve()
    _load_repo_manifest(library_path, repo_id)
    return [detail.summary() for detail in _iter_records(library_path, repo_id)]


def _ensure_unique_source(
    library_path: Path, repo_id: int, source: str, exclude_id: int | None = None
) -> None:
    for detail in _iter_records(library_path, repo_id):
        if detail.source == source and detail.id != exclude_id:
            raise FileExistsError("该资料库已存在同名条目")


def create_record(path: str | Path, repo_id: int, source: str) -> RecordDetail:
    """원문만 가진 새 조목을 만든다. 词元과 对齐는 빈 목록으로 시작한다.

    Raises:
        FileNotFoundError: 자료고가 없을 때.
        ValueError: source가 비어 있을 때.
        FileExistsError: 같은 source의 조목이 이미 있을 때.
    """
    library_path = Path(path).resolve()
    _load_repo_manifest(library_path, repo_id)
    source = (source or "").strip()
    if not source:
        raise ValueError("Missing source text")
    _ensure_unique_source(library_path, repo_id, source)

    record_id = _allocate_record_id(library_path, repo_id)
    detail = RecordDetail(id=record_id, source=source)
    _write_json(_record_path(library_path, repo_id, record_id), detail.to_dict())
    return detail


def get_record_detail(path: str | Path, repo_id: int, record_id: int) -> RecordDetail:
    """조목 전체를 읽는다. 없으면 FileNotFoundError."""
    library_path = Path(path).resolve()
    record_path = _record_path(library_path, repo_id, record_id)
    if not record_path.exists():
        raise FileNotFoundError(f"Record not found: {repo_id}/{record_id}")
    return RecordDetail.from_dict(_read_json(record_path))


def _check_payload(payload: dict) -> RecordDetail:
    """저장 전 검증. 스키마 검사 후 교차 필드 불변식을 확인한다.

    Raises: ValueError — 어느 쪽이든 어긋나면 메시지와 함께.
    """
    try:
        validate(instance=payload, schema=get_record_schema())
    except ValidationError as e:
        raise ValueError(f"Invalid record payload: {e.message}") from e

    result = validate_record(payload, allow_empty_target_tokens=True)
    if not result.ok:
        raise ValueError(result.error)
    return result.data


def save_record_detail(
    path: str | Path, repo_id: int, record_id: int, payload: dict
) -> RecordDetail:
    """조목을 전체 교체로 저장한다.

    입력:
        payload — {source, target, meta, source_tokens, target_tokens, alignment}.
            source 앞뒤 공백은 지운 뒤 검증한다.
    출력: 저장된 RecordDetail.
    Raises:
        FileNotFoundError: 조목이 없을 때.
        ValueError: 스키마 또는 불변식 위반.
        FileExistsError: 다른 조목과 source가 겹칠 때.
    """
    library_path = Path(path).resolve()
    record_path = _record_path(library_path, repo_id, record_id)
    if not record_path.exists():
        raise FileNotFoundError(f"Record not found: {repo_id}/{record_id}")

    payload = dict(payload)
    if isinstance(payload.get("source"), str):
        payload["source"] = payload["source"].strip()
    payload["id"] = record_id

    detail = _check_payload(payload)
    _ensure_unique_source(library_path, repo_id, detail.source, exclude_id=record_id)
    _write_json(record_path, detail.to_dict())
    logger.debug("조목 저장: %d/%d", repo_id, record_id)
    return detail


def import_record(path: str | Path, repo_id: int, detail: RecordDetail) -> RecordDetail:
    """검증을 마친 RecordDetail을 새 조목으로 등록한다. 원래 id는 무시한다."""
    library_path = Path(path).resolve()
    _load_repo_manifest(library_path, repo_id)

    checked = _check_payload(detail.to_dict())
    _ensure_unique_source(library_path, repo_id, checked.source)

    checked.id = _allocate_record_id(library_path, repo_id)
    _write_json(_record_path(library_path, repo_id, checked.id), checked.to_dict())
    logger.info("조목 가져오기: %d/%d", repo_id, checked.id)
    return checked
