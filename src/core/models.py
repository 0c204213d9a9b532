"""대조 코퍼스 데이터 모델.

자료고(repository) → 조목(record) → 词元(token) / 对齐(alignment) 구조.
API 응답과 저장 파일은 모두 to_dict()의 딕셔너리 형태를 그대로 쓴다.

    RecordDetail = Record + source_tokens + target_tokens + alignment

사용법:
    from core.models import RecordDetail

    detail = RecordDetail.from_dict(json.loads(text))
    payload = detail.to_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Repo:
    """자료고. 이름은 전체 자료고 사이에서 유일하다."""

    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> Repo:
        return cls(id=int(data["id"]), name=data["name"])


@dataclass
class Token:
    """词元 하나.

    id는 목록 안에서 1..N 집합을 이룬다 (목록 순서와 id 순서는 달라도 된다).
    pos / syntax_role / annotation은 모두 선택 속성이다.
    """

    id: int
    word: str
    pos: Optional[str] = None
    syntax_role: Optional[str] = None
    annotation: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "word": self.word,
            "pos": self.pos,
            "syntax_role": self.syntax_role,
            "annotation": self.annotation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Token:
        return cls(
            id=int(data["id"]),
            word=data["word"],
            pos=data.get("pos"),
            syntax_role=data.get("syntax_role"),
            annotation=data.get("annotation"),
        )


@dataclass
class Alignment:
    """원문 词元 하나와 译文 词元 하나의 대응. 중복을 허용한다."""

    source_id: int
    target_id: int
    relation_type: str

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "relation_type": self.relation_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Alignment:
        return cls(
            source_id=int(data["source_id"]),
            target_id=int(data["target_id"]),
            relation_type=data["relation_type"],
        )


@dataclass
class RecordSummary:
    """조목 목록의 한 줄."""

    id: int
    source: str

    def to_dict(self) -> dict:
        return {"id": self.id, "source": self.source}

    @classmethod
    def from_dict(cls, data: dict) -> RecordSummary:
        return cls(id=int(data["id"]), source=data.get("source", ""))


@dataclass
class RecordDetail:
    """저장·조회 단위가 되는 조목 전체.

    저장은 항상 전체 교체다 (source, target, meta와 세 컬렉션을 통째로 보낸다).
    """

    id: int
    source: str
    target: Optional[str] = None
    meta: Optional[str] = None
    source_tokens: list[Token] = field(default_factory=list)
    target_tokens: list[Token] = field(default_factory=list)
    alignment: list[Alignment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "meta": self.meta,
            "source_tokens": [t.to_dict() for t in self.source_tokens],
            "target_tokens": [t.to_dict() for t in self.target_tokens],
            "alignment": [a.to_dict() for a in self.alignment],
        }

    def to_payload(self) -> dict:
        """저장 요청 본문. id는 URL로 전달하므로 뺀다."""
        data = self.to_dict()
        del data["id"]
        return data

    def summary(self) -> RecordSummary:
        return RecordSummary(id=self.id, source=self.source)

    @classmethod
    def from_dict(cls, data: dict) -> RecordDetail:
        """저장 파일·API 응답을 읽는다. 토큰 목록이 null이면 빈 목록으로 본다."""
        return cls(
            id=int(data.get("id") or 0),
            source=data["source"],
            target=data.get("target"),
            meta=data.get("meta"),
            source_tokens=[Token.from_dict(t) for t in data.get("source_tokens") or []],
            target_tokens=[Token.from_dict(t) for t in data.get("target_tokens") or []],
            alignment=[Alignment.from_dict(a) for a in data.get("alignment") or []],
        )
