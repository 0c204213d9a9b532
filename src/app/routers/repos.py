"""자료고·조목 라우터.

조회는 누구나 할 수 있고, 생성·수정·삭제·저장은 로그인이 필요하다.

API 엔드포인트:
    GET    /api/dashboard                               → 첫 화면 초기 데이터
    GET    /api/repos                                   → 자료고 목록
    POST   /api/repos                                   → 자료고 생성
    PUT    /api/repos/{repo_id}                         → 이름 변경
    DELETE /api/repos/{repo_id}                         → 삭제 (조목 포함)
    GET    /api/repos/{repo_id}/records                 → 조목 목록
    POST   /api/repos/{repo_id}/records                 → 원문으로 조목 생성
    POST   /api/repos/{repo_id}/records/import          → JSON 가져오기
    GET    /api/repos/{repo_id}/records/{record_id}     → 조목 상세
    PUT    /api/repos/{repo_id}/records/{record_id}     → 조목 전체 교체 저장
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from core.library import (
    create_record,
    create_repo,
    delete_repo,
    get_record_detail,
    import_record,
    list_records,
    list_repos,
    rename_repo,
    save_record_detail,
)
from core.record_validator import validate_payload

from app._state import (
    current_user,
    error,
    get_library_path,
    no_library,
    parse_id,
    success,
    unauthorized,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["repos"])


# ── Pydantic 모델 ─────────────────────────────────


class RepoNameRequest(BaseModel):
    """자료고 생성 / 이름 변경 요청."""
    name: str = ""


class RecordCreateRequest(BaseModel):
    """조목 생성 요청. 원문만 받는다."""
    source: str = ""


class RecordImportRequest(BaseModel):
    """조목 가져오기 요청. 붙여 넣은 JSON 텍스트를 그대로 받는다."""
    raw: str = ""


# ── 첫 화면 ─────────────────────────────────────


@router.get("/api/dashboard")
async def api_dashboard():
    """첫 화면 초기 데이터.

    첫 번째 자료고를 열고, 그 첫 조목을 선택한 상태를 돌려준다.
    출력: {repos, openRepoIds, activeRepoId, activeRecordId, records, recordDetail}.
    """
    library_path = get_library_path()
    if library_path is None:
        return no_library()

    repos = list_repos(library_path)
    active_repo_id = repos[0].id if repos else None
    records = None
    active_record_id = None
    record_detail = None

    if active_repo_id is not None:
        items = list_records(library_path, active_repo_id)
        records = {"repoId": active_repo_id, "items": [r.to_dict() for r in items]}
        if items:
            active_record_id = items[0].id
            detail = get_record_detail(library_path, active_repo_id, active_record_id)
            record_detail = {
                "repoId": active_repo_id,
                "recordId": active_record_id,
                "data": detail.to_dict(),
            }

    return success({
        "repos": [r.to_dict() for r in repos],
        "openRepoIds": [active_repo_id] if active_repo_id is not None else [],
        "activeRepoId": active_repo_id,
        "activeRecordId": active_record_id,
        "records": records,
        "recordDetail": record_detail,
    })


# ── 자료고 ─────────────────────────────────────


@router.get("/api/repos")
async def api_list_repos():
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    return success([r.to_dict() for r in list_repos(library_path)])


@router.post("/api/repos")
async def api_create_repo(request: Request, body: RepoNameRequest):
    """자료고를 만든다. 201 {id} / 400 이름 누락 / 409 이름 중복."""
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    if current_user(request) is None:
        return unauthorized()

    try:
        repo = create_repo(library_path, body.name)
    except ValueError as e:
        return error(str(e), 400)
    except FileExistsError as e:
        return error(str(e), 409)
    return success({"id": repo.id}, status_code=201)


@router.put("/api/repos/{repo_id}")
async def api_rename_repo(request: Request, repo_id: str, body: RepoNameRequest):
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_id = parse_id(repo_id)
    if parsed_id is None:
        return error("Invalid repository id", 400)
    if current_user(request) is None:
        return unauthorized()

    try:
        rename_repo(library_path, parsed_id, body.name)
    except ValueError as e:
        return error(str(e), 400)
    except FileNotFoundError:
        return error("Repository not found", 404)
    except FileExistsError as e:
        return error(str(e), 409)
    return success()


@router.delete("/api/repos/{repo_id}")
async def api_delete_repo(request: Request, repo_id: str):
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_id = parse_id(repo_id)
    if parsed_id is None:
        return error("Invalid repository id", 400)
    if current_user(request) is None:
        return unauthorized()

    try:
        delete_repo(library_path, parsed_id)
    except FileNotFoundError:
        return error("Repository not found", 404)
    return success({"id": parsed_id})


# ── 조목 ─────────────────────────────────────


@router.get("/api/repos/{repo_id}/records")
async def api_list_records(repo_id: str):
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_id = parse_id(repo_id)
    if parsed_id is None:
        return error("Invalid repository id", 400)

    try:
        items = list_records(library_path, parsed_id)
    except FileNotFoundError:
        return error("Repository not found", 404)
    return success([r.to_dict() for r in items])


@router.post("/api/repos/{repo_id}/records")
async def api_create_record(request: Request, repo_id: str, body: RecordCreateRequest):
    """원문만으로 새 조목을 만든다. 201 {id, source, target, meta}."""
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_id = parse_id(repo_id)
    if parsed_id is None:
        return error("Invalid repository id", 400)
    if current_user(request) is None:
        return unauthorized()

    try:
        detail = create_record(library_path, parsed_id, body.source)
    except ValueError as e:
        return error(str(e), 400)
    except FileNotFoundError:
        return error("Repository not found", 404)
    except FileExistsError as e:
        return error(str(e), 409)
    return success(
        {
            "id": detail.id,
            "source": detail.source,
            "target": detail.target,
            "meta": detail.meta,
        },
        status_code=201,
    )


@router.post("/api/repos/{repo_id}/records/import")
async def api_import_record(request: Request, repo_id: str, body: RecordImportRequest):
    """붙여 넣은 JSON을 검증해 새 조목으로 등록한다.

    검증 실패 시 400과 함께 처음 어긋난 항목의 메시지를 돌려준다.
    """
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_id = parse_id(repo_id)
    if parsed_id is None:
        return error("Invalid repository id", 400)
    if current_user(request) is None:
        return unauthorized()

    result = validate_payload(body.raw)
    if not result.ok:
        return error(result.error, 400)

    try:
        detail = import_record(library_path, parsed_id, result.data)
    except ValueError as e:
        return error(str(e), 400)
    except FileNotFoundError:
        return error("Repository not found", 404)
    except FileExistsError as e:
        return error(str(e), 409)
    return success(detail.to_dict(), status_code=201)


@router.get("/api/repos/{repo_id}/records/{record_id}")
async def api_get_record(repo_id: str, record_id: str):
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_repo = parse_id(repo_id)
    parsed_record = parse_id(record_id)
    if parsed_repo is None or parsed_record is None:
        return error("Invalid identifiers", 400)

    try:
        detail = get_record_detail(library_path, parsed_repo, parsed_record)
    except FileNotFoundError:
        return error("Record not found", 404)
    return success(detail.to_dict())


@router.put("/api/repos/{repo_id}/records/{record_id}")
async def api_save_record(request: Request, repo_id: str, record_id: str):
    """조목을 전체 교체로 저장한다.

    본문은 {source, target, meta, source_tokens, target_tokens, alignment}
    또는 그것을 {data: ...}로 감싼 형태.
    """
    library_path = get_library_path()
    if library_path is None:
        return no_library()
    parsed_repo = parse_id(repo_id)
    parsed_record = parse_id(record_id)
    if parsed_repo is None or parsed_record is None:
        return error("Invalid identifiers", 400)
    if current_user(request) is None:
        return unauthorized()

    try:
        body = await request.json()
    except ValueError:
        body = None
    payload = body.get("data", body) if isinstance(body, dict) else None
    if not isinstance(payload, dict) or not isinstance(payload.get("source"), str):
        return error("Missing record payload", 400)
    if not payload["source"].strip():
        return error("Source text cannot be empty", 400)

    try:
        save_record_detail(library_path, parsed_repo, parsed_record, payload)
    except FileNotFoundError:
        return error("Record not found", 404)
    except ValueError as e:
        return error(str(e), 400)
    except FileExistsError as e:
        return error(str(e), 409)
    return success()
