"""편집 클라이언트 테스트용 가짜 API.

ApiClient와 같은 메서드를 갖고, 호출 기록을 남기며, 저장 지연·실패를 흉내 낸다.
"""

import asyncio
import copy

import pytest

from core.models import RecordDetail, RecordSummary, Repo
from editor.api_client import ApiError
from editor.notifier import RecordingNotifier

EDITOR = {"id": 1, "username": "editor", "displayName": "编辑"}


class FakeApi:
    def __init__(self):
        self.calls: list[tuple] = []
        self.session_user: dict | None = None
        self.password = "secret"
        self.repos: list[Repo] = []
        self.details: dict[tuple[int, int], RecordDetail] = {}
        # save_record가 꺼내 던질 예외 (앞에서부터)
        self.save_errors: list[Exception] = []
        # 설정하면 save_record가 이 이벤트를 기다린다.
        self.save_gate: asyncio.Event | None = None

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def add_record(self, repo_id: int, detail: RecordDetail) -> None:
        self.details[(repo_id, detail.id)] = copy.deepcopy(detail)

    async def get_session(self):
        self.calls.append(("get_session",))
        return self.session_user

    async def login(self, username, password):
        self.calls.append(("login", username))
        if password != self.password:
            raise ApiError("用户名或密码错误", 401)
        self.session_user = dict(EDITOR)
        return self.session_user

    async def logout(self):
        self.calls.append(("logout",))
        self.session_user = None

    async def get_dashboard(self):
        self.calls.append(("get_dashboard",))
        repo_id = self.repos[0].id if self.repos else None
        items = self._summaries(repo_id) if repo_id else []
        return {
            "repos": [r.to_dict() for r in self.repos],
            "openRepoIds": [repo_id] if repo_id else [],
            "activeRepoId": repo_id,
            "activeRecordId": items[0].id if items else None,
            "records": {"repoId": repo_id, "items": [s.to_dict() for s in items]}
            if repo_id
            else None,
            "recordDetail": None,
        }

    def _summaries(self, repo_id):
        return [
            d.summary()
            for (rid, _), d in sorted(self.details.items())
            if rid == repo_id
        ]

    async def list_records(self, repo_id):
        self.calls.append(("list_records", repo_id))
        return self._summaries(repo_id)

    async def create_record(self, repo_id, source):
        self.calls.append(("create_record", repo_id, source))
        if any(d.source == source for (rid, _), d in self.details.items() if rid == repo_id):
            raise ApiError("该资料库已存在同名条目", 409)
        record_id = max((k[1] for k in self.details if k[0] == repo_id), default=0) + 1
        self.details[(repo_id, record_id)] = RecordDetail(id=record_id, source=source)
        return RecordSummary(record_id, source)

    async def get_record(self, repo_id, record_id):
        self.calls.append(("get_record", repo_id, record_id))
        detail = self.details.get((repo_id, record_id))
        if detail is None:
            raise ApiError("Record not found", 404)
        return copy.deepcopy(detail)

    async def save_record(self, repo_id, record_id, payload):
        self.calls.append(("save_record", repo_id, record_id, copy.deepcopy(payload)))
        if self.save_gate is not None:
            await self.save_gate.wait()
        if self.save_errors:
            raise self.save_errors.pop(0)
        self.details[(repo_id, record_id)] = RecordDetail.from_dict(
            {"id": record_id, **payload}
        )


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def notifier():
    return RecordingNotifier()
