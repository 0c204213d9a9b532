"""슬래시 분词 편집.

편집기는 词元 목록을 "子/曰/：“/不/舍/昼夜/。”" 처럼 슬래시로 이어 붙인
텍스트로 보여 주고, 사용자가 고친 텍스트를 다시 잘라 词元 목록을 만든다.

다시 자를 때 词元의 pos / syntax_role / annotation을 어떻게 이어받는가:
    difflib.SequenceMatcher로 이전 word 열과 새 word 열을 대조한다.
      - equal 구간: 같은 词元으로 보고 속성을 그대로 옮긴다.
      - 길이가 같은 replace 구간: 글자를 고친 것으로 보고 위치대로 옮긴다.
      - 그 밖의 insert / delete / 길이가 다른 replace: 새 词元은 속성 없이 시작한다.
    id는 항상 1..N으로 다시 매기고, 살아남은 词元의 (이전 id → 새 id) 대응을 함께 돌려준다.
    对齐는 remap_alignment()로 새 id에 맞춰 고치고, 사라진 词元을 가리키던 것은 버린다.
"""

from __future__ import annotations

import difflib

from core.models import Alignment, Token


def join_tokens_with_slash(tokens: list[Token] | None, fallback: str | None) -> str:
    """词元 목록을 편집용 슬래시 텍스트로 만든다. 목록이 비어 있으면 fallback."""
    if tokens:
        return "/".join(t.word for t in tokens if t.word)
    return fallback or ""


def normalize_words(raw: str) -> list[str]:
    """슬래시로 자르고 각 조각의 앞뒤 공백을 지운 뒤 빈 조각을 버린다."""
    return [part.strip() for part in raw.split("/") if part.strip()]


def strip_slashes(value: str) -> str:
    return value.replace("/", "")


def build_tokens_from_value(
    value: str, previous: list[Token]
) -> tuple[list[Token], dict[int, int]]:
    """슬래시 텍스트에서 词元 목록을 다시 만든다.

    입력:
        value — 사용자가 편집한 슬래시 텍스트.
        previous — 편집 전 词元 목록 (목록 순서 기준으로 대조).
    출력: (새 词元 목록, {이전 id: 새 id}).
    """
    words = normalize_words(value)
    tokens = [Token(id=i + 1, word=w) for i, w in enumerate(words)]
    id_map: dict[int, int] = {}

    matcher = difflib.SequenceMatcher(
        None, [t.word for t in previous], words, autojunk=False
    )
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal" or (tag == "replace" and i2 - i1 == j2 - j1):
            for old, new in zip(previous[i1:i2], tokens[j1:j2]):
                new.pos = old.pos
                new.syntax_role = old.syntax_role
                new.annotation = old.annotation
                id_map[old.id] = new.id

    return tokens, id_map


def remap_alignment(
    alignment: list[Alignment],
    source_map: dict[int, int] | None = None,
    target_map: dict[int, int] | None = None,
) -> list[Alignment]:
    """对齐의 id를 새 词元 id로 바꾼다.

    map이 None인 쪽은 그대로 둔다. map에 없는 id를 가리키는 对齐는 버린다.
    """
    result = []
    for a in alignment:
        source_id = a.source_id if source_map is None else source_map.get(a.source_id)
        target_id = a.target_id if target_map is None else target_map.get(a.target_id)
        if source_id is None or target_id is None:
            continue
        result.append(Alignment(source_id, target_id, a.relation_type))
    return result
