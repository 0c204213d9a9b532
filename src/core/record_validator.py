"""조목 JSON Import 검증 모듈.

붙여 넣은 JSON 텍스트를 검사하여 RecordDetail로 정규화하거나,
처음 어긋난 불변식 하나에 대한 메시지를 돌려준다. 부분 수용은 없다.

검증 순서 (첫 실패에서 중단):
    1. 빈 입력
    2. JSON 파싱 / 최상위 객체
    3. source — 공백 제거 후 비어 있지 않은 문자열
    4. target / meta — 문자열 또는 null
    5. source_tokens / target_tokens — 비어 있지 않은 배열
    6. 词元 필드 타입 (id, word, pos, syntax_role, annotation)
    7. id 연속성 — 정렬한 id가 1..N
    8. 词元 word를 목록 순서대로 이어 붙인 결과 == source / target
    9. alignment 참조 무결성 + relation_type
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from core.models import Alignment, RecordDetail, Token

# ──────────────────────────────────────
# 스키마 로드 (모듈 레벨 캐시)
# ──────────────────────────────────────

_SCHEMA_PATH = (
    Path(__file__).parent.parent.parent / "schemas" / "record_detail.schema.json"
)

_schema_cache: dict | None = None


def get_record_schema() -> dict:
    """조목 JSON 스키마를 로드한다 (최초 1회만 읽음)."""
    global _schema_cache
    if _schema_cache is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _schema_cache = json.load(f)
    return _schema_cache


# ──────────────────────────────────────
# 결과 타입
# ──────────────────────────────────────


class ImportErrorCode(str, Enum):
    """검증 실패 유형. 메시지와 별개로 프로그램에서 분기할 때 쓴다."""

    EMPTY_INPUT = "empty_input"
    MALFORMED_JSON = "malformed_json"
    MISSING_SOURCE = "missing_source"
    INVALID_TARGET = "invalid_target"
    INVALID_META = "invalid_meta"
    EMPTY_TOKEN_LIST = "empty_token_list"
    INVALID_TOKEN = "invalid_token"
    INVALID_TOKEN_ID = "invalid_token_id"
    INVALID_TOKEN_WORD = "invalid_token_word"
    INVALID_TOKEN_POS = "invalid_token_pos"
    INVALID_TOKEN_SYNTAX_ROLE = "invalid_token_syntax_role"
    INVALID_TOKEN_ANNOTATION = "invalid_token_annotation"
    NON_SEQUENTIAL_IDS = "non_sequential_ids"
    SOURCE_MISMATCH = "source_mismatch"
    TARGET_MISMATCH = "target_mismatch"
    BAD_ALIGNMENT_SHAPE = "bad_alignment_shape"
    DANGLING_SOURCE_REF = "dangling_source_ref"
    DANGLING_TARGET_REF = "dangling_target_ref"
    EMPTY_RELATION = "empty_relation"


@dataclass
class ValidationResult:
    """검증 결과.

    ok가 True이면 data에 정규화된 RecordDetail,
    False이면 error(사람이 읽는 메시지)와 code가 채워진다.
    """

    ok: bool
    data: Optional[RecordDetail] = None
    error: Optional[str] = None
    code: Optional[ImportErrorCode] = None

    @classmethod
    def success(cls, data: RecordDetail) -> ValidationResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, code: ImportErrorCode, error: str) -> ValidationResult:
        return cls(ok=False, error=error, code=code)

    def to_dict(self) -> dict:
        """API 응답용 딕셔너리."""
        if self.ok:
            return {"ok": True, "data": self.data.to_dict()}
        return {"ok": False, "error": self.error, "code": self.code.value}


class _Rejected(Exception):
    """내부 전용. 첫 실패 지점에서 던져 validate_record 경계에서 결과로 바꾼다."""

    def __init__(self, code: ImportErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ──────────────────────────────────────
# 타입 판정 헬퍼
# ──────────────────────────────────────


def _is_number(value: Any) -> bool:
    """JSON number 여부. bool은 int의 하위 클래스지만 숫자로 보지 않는다."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_optional_str(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _reject_constant(name: str):
    # json.loads는 NaN/Infinity를 기본 허용하지만 표준 JSON이 아니다.
    raise ValueError(f"JSON 표준이 아닌 값: {name}")


# ──────────────────────────────────────
# 词元 / 对齐 검증
# ──────────────────────────────────────


def _normalize_tokens(tokens: list, name: str) -> list[Token]:
    """词元 배열의 필드 타입을 검사하고 Token 목록으로 바꾼다 (6단계)."""
    normalized = []
    for index, token in enumerate(tokens):
        if not isinstance(token, dict):
            raise _Rejected(
                ImportErrorCode.INVALID_TOKEN, f"{name}[{index}] 必须是对象。"
            )
        token_id = token.get("id")
        word = token.get("word")
        if not _is_number(token_id):
            raise _Rejected(
                ImportErrorCode.INVALID_TOKEN_ID, f"{name}[{index}].id 必须是数字。"
            )
        if not isinstance(word, str):
            raise _Rejected(
                ImportErrorCode.INVALID_TOKEN_WORD,
                f"{name}[{index}].word 必须是字符串。",
            )
        for attr, code in (
            ("pos", ImportErrorCode.INVALID_TOKEN_POS),
            ("syntax_role", ImportErrorCode.INVALID_TOKEN_SYNTAX_ROLE),
            ("annotation", ImportErrorCode.INVALID_TOKEN_ANNOTATION),
        ):
            if not _is_optional_str(token.get(attr)):
                raise _Rejected(code, f"{name}[{index}].{attr} 必须是字符串或 null。")
        normalized.append(
            Token(
                id=token_id,
                word=word,
                pos=token.get("pos"),
                syntax_role=token.get("syntax_role"),
                annotation=token.get("annotation"),
            )
        )
    return normalized


def _ensure_sequential(tokens: list[Token], name: str) -> None:
    """정렬한 id 열이 정확히 1, 2, ..., N인지 확인한다 (7단계).

    목록 순서는 건드리지 않는다. 편집 후에는 id가 목록 순서대로 증가하지 않을 수 있다.
    """
    ids = sorted(t.id for t in tokens)
    if ids != list(range(1, len(tokens) + 1)):
        raise _Rejected(
            ImportErrorCode.NON_SEQUENTIAL_IDS, f"{name} 的 id 必须从 1 开始连续递增。"
        )
    # 1.0 같은 정수값 실수는 여기서 int로 맞춘다.
    for t in tokens:
        t.id = int(t.id)


def join_words(tokens: list[Token]) -> str:
    """词元 word를 목록 순서대로 이어 붙인다. 공백 정규화는 하지 않는다."""
    return "".join(t.word for t in tokens)


def _validate_alignment(
    alignments: list, source_ids: set, target_ids: set
) -> list[Alignment]:
    result = []
    for index, item in enumerate(alignments):
        if not isinstance(item, dict):
            raise _Rejected(
                ImportErrorCode.BAD_ALIGNMENT_SHAPE, f"alignment[{index}] 必须是对象。"
            )
        source_id = item.get("source_id")
        target_id = item.get("target_id")
        relation_type = item.get("relation_type")
        if not _is_number(source_id) or source_id not in source_ids:
            raise _Rejected(
                ImportErrorCode.DANGLING_SOURCE_REF,
                f"alignment[{index}].source_id 不存在于 source_tokens。",
            )
        if not _is_number(target_id) or target_id not in target_ids:
            raise _Rejected(
                ImportErrorCode.DANGLING_TARGET_REF,
                f"alignment[{index}].target_id 不存在于 target_tokens。",
            )
        if not isinstance(relation_type, str) or not relation_type.strip():
            raise _Rejected(
                ImportErrorCode.EMPTY_RELATION,
                f"alignment[{index}].relation_type 必须是字符串。",
            )
        result.append(
            Alignment(
                source_id=int(source_id),
                target_id=int(target_id),
                relation_type=relation_type,
            )
        )
    return result


# ──────────────────────────────────────
# 공개 API
# ──────────────────────────────────────


def validate_record(
    data: Any, *, allow_empty_target_tokens: bool = False
) -> ValidationResult:
    """파싱이 끝난 조목 데이터를 검증·정규화한다.

    입력:
        data — json.loads 결과 (임의의 값).
        allow_empty_target_tokens — True이면 target이 null일 때 빈 target_tokens를 허용.
            저장 경로 전용: 译文이 아직 없는 새 조목은 target 词元이 없다.
    출력: ValidationResult. 예외를 던지지 않는다.
    """
    try:
        return ValidationResult.success(
            _validate(data, allow_empty_target_tokens=allow_empty_target_tokens)
        )
    except _Rejected as rejected:
        return ValidationResult.failure(rejected.code, rejected.message)


def _validate(data: Any, *, allow_empty_target_tokens: bool) -> RecordDetail:
    if not isinstance(data, dict):
        raise _Rejected(ImportErrorCode.MALFORMED_JSON, "JSON 顶层必须是对象。")

    source = data.get("source")
    if not isinstance(source, str) or not source.strip():
        raise _Rejected(ImportErrorCode.MISSING_SOURCE, "source 必须是非空字符串。")
    target = data.get("target")
    if not _is_optional_str(target):
        raise _Rejected(ImportErrorCode.INVALID_TARGET, "target 必须是字符串或 null。")
    meta = data.get("meta")
    if not _is_optional_str(meta):
        raise _Rejected(ImportErrorCode.INVALID_META, "meta 必须是字符串或 null。")

    raw_source_tokens = data.get("source_tokens")
    raw_target_tokens = data.get("target_tokens")
    if not isinstance(raw_source_tokens, list) or not raw_source_tokens:
        raise _Rejected(
            ImportErrorCode.EMPTY_TOKEN_LIST, "source_tokens 必须是非空数组。"
        )
    target_may_be_empty = allow_empty_target_tokens and target is None
    if not isinstance(raw_target_tokens, list) or (
        not raw_target_tokens and not target_may_be_empty
    ):
        raise _Rejected(
            ImportErrorCode.EMPTY_TOKEN_LIST, "target_tokens 必须是非空数组。"
        )

    source_tokens = _normalize_tokens(raw_source_tokens, "source_tokens")
    target_tokens = _normalize_tokens(raw_target_tokens, "target_tokens")

    _ensure_sequential(source_tokens, "source_tokens")
    _ensure_sequential(target_tokens, "target_tokens")

    if join_words(source_tokens) != source:
        raise _Rejected(
            ImportErrorCode.SOURCE_MISMATCH, "source_tokens 组合后与 source 不一致。"
        )
    if target is not None and join_words(target_tokens) != target:
        raise _Rejected(
            ImportErrorCode.TARGET_MISMATCH, "target_tokens 组合后与 target 不一致。"
        )

    raw_alignment = data.get("alignment")
    if not isinstance(raw_alignment, list):
        raw_alignment = []
    alignment = _validate_alignment(
        raw_alignment,
        {t.id for t in source_tokens},
        {t.id for t in target_tokens},
    )

    record_id = data.get("id")
    return RecordDetail(
        id=int(record_id) if _is_number(record_id) and math.isfinite(record_id) else 0,
        source=source,
        target=target,
        meta=meta,
        source_tokens=source_tokens,
        target_tokens=target_tokens,
        alignment=alignment,
    )


def validate_payload(raw: str) -> ValidationResult:
    """붙여 넣은 JSON 텍스트를 검증한다.

    목적: Import 대화상자에서 입력이 바뀔 때마다 동기적으로 호출한다.
    입력: raw — 사용자가 붙여 넣은 원문 텍스트.
    출력: ValidationResult — 성공 시 정규화된 RecordDetail,
          실패 시 처음 어긋난 불변식 하나에 대한 메시지.
    """
    if not raw.strip():
        return ValidationResult.failure(ImportErrorCode.EMPTY_INPUT, "请输入 JSON 数据。")

    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        # json.JSONDecodeError는 ValueError의 하위 클래스
        return ValidationResult.failure(
            ImportErrorCode.MALFORMED_JSON, "JSON 解析失败，请确认格式。"
        )

    return validate_record(parsed)
