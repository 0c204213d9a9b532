"""편집 상태 조정자 (editor state coordinator).

자료고 탭, 활성 조목, dirty / saving 플래그를 들고, 화면 이동이
저장되지 않은 편집을 조용히 버리지 않도록 저장 시점을 중재한다.

핵심 규칙:
    - 모든 이동(탭 전환, 조목 전환, 탭 닫기, 목록 새로고침, 조목 생성)은
      먼저 request_save()를 거친다. False면 이동하지 않는다.
    - request_save()는 Saveable.try_save()를 호출하는 단일 관문이다.
      Saveable이 없으면 저장할 것이 없으므로 True.
    - 상태는 이 객체 하나에 있다. 모듈 전역 상태는 두지 않는다.

사용법:
    coordinator = EditorCoordinator(api=client)
    session = RecordEditorSession(coordinator, client, gate)
    coordinator.bind_saveable(session)

    if await coordinator.select_record(7):
        await session.sync()
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from core.models import RecordSummary, Repo
from editor.api_client import ApiClient

logger = logging.getLogger(__name__)


class Saveable(Protocol):
    """저장 가능한 편집 화면."""

    async def try_save(self) -> bool:
        """편집 내용을 저장한다. 저장했거나 저장할 것이 없으면 True."""
        ...


class EditorCoordinator:
    """편집 세션 하나의 화면 상태."""

    def __init__(
        self,
        saveable: Optional[Saveable] = None,
        api: Optional[ApiClient] = None,
    ):
        self._saveable = saveable
        self._api = api
        self.repos: list[Repo] = []
        self.records: list[RecordSummary] = []
        self.open_repo_ids: list[int] = []
        self.active_repo_id: Optional[int] = None
        self.active_record_id: Optional[int] = None
        self.dirty = False
        self.saving = False

    # ── Saveable ──────────────────────────

    @property
    def saveable(self) -> Optional[Saveable]:
        return self._saveable

    def bind_saveable(self, saveable: Optional[Saveable]) -> None:
        """편집 화면을 연결한다. None이면 연결을 끊는다."""
        self._saveable = saveable

    async def request_save(self) -> bool:
        """현재 편집 화면에 저장을 요청한다.

        출력: 저장했거나 저장할 것이 없으면 True, 실패하면 False.
              Saveable의 예외는 로그로 남기고 False로 바꾼다.
        """
        saveable = self._saveable
        if saveable is None:
            return True
        try:
            return await saveable.try_save()
        except Exception:
            logger.exception("保存当前条目失败")
            return False

    # ── 플래그 ────────────────────────────

    def mark_dirty(self) -> None:
        self.dirty = True

    def mark_clean(self) -> None:
        self.dirty = False

    def set_saving(self, saving: bool) -> None:
        self.saving = saving

    # ── 상태 전이 (저장을 거치지 않음) ─────────

    def initialize(
        self,
        open_repo_ids: list[int],
        active_repo_id: Optional[int],
        active_record_id: Optional[int],
    ) -> None:
        self.open_repo_ids = list(open_repo_ids)
        self.active_repo_id = active_repo_id
        self.active_record_id = active_record_id
        self.dirty = False
        self.saving = False

    def reset(self) -> None:
        self.initialize([], None, None)
        self.records = []
        self._saveable = None

    def open_repo_tab(self, repo_id: int) -> None:
        """자료고 탭을 열고 활성화한다.

        처음 여는 탭은 끝이 아니라 현재 활성 탭 바로 뒤에 끼운다.
        활성 탭이 없거나 목록에서 찾을 수 없으면 끝에 붙인다.
        """
        if repo_id in self.open_repo_ids:
            self.activate_repo_tab(repo_id)
            return

        if self.active_repo_id in self.open_repo_ids:
            index = self.open_repo_ids.index(self.active_repo_id)
            self.open_repo_ids.insert(index + 1, repo_id)
        else:
            self.open_repo_ids.append(repo_id)
        self._focus_repo(repo_id)

    def activate_repo_tab(self, repo_id: int) -> None:
        if repo_id not in self.open_repo_ids or repo_id == self.active_repo_id:
            return
        self._focus_repo(repo_id)

    def _focus_repo(self, repo_id: Optional[int]) -> None:
        self.active_repo_id = repo_id
        self.active_record_id = None
        self.records = []
        self.dirty = False

    def remove_repo_tab(self, repo_id: int) -> None:
        """탭을 닫는다.

        활성 탭을 닫으면 그 자리로 밀려 들어온 탭, 없으면 바로 앞 탭,
        그것도 없으면 None이 활성이 된다.
        """
        if repo_id not in self.open_repo_ids:
            return
        index = self.open_repo_ids.index(repo_id)
        self.open_repo_ids.remove(repo_id)

        if self.active_repo_id != repo_id:
            return
        if index < len(self.open_repo_ids):
            next_active = self.open_repo_ids[index]
        elif index > 0:
            next_active = self.open_repo_ids[index - 1]
        else:
            next_active = None
        self._focus_repo(next_active)

    def set_active_record(self, record_id: Optional[int]) -> None:
        self.active_record_id = record_id
        self.dirty = False

    def _reconcile_active_record(self) -> None:
        """목록에 없는 조목이 선택되어 있으면 첫 조목(없으면 None)으로 옮긴다."""
        ids = [r.id for r in self.records]
        if not ids:
            if self.active_record_id is not None:
                self.set_active_record(None)
        elif self.active_record_id not in ids:
            self.set_active_record(ids[0])

    # ── 이동 (저장 후 전이) ─────────────────

    async def switch_repo(self, repo_id: int) -> bool:
        """자료고 탭을 열거나 전환한다. 저장에 실패하면 그대로 머문다."""
        if repo_id == self.active_repo_id:
            return True
        if not await self.request_save():
            return False
        self.open_repo_tab(repo_id)
        await self._load_records()
        return True

    async def select_record(self, record_id: Optional[int]) -> bool:
        """조목을 전환한다. 저장에 실패하면 그대로 머문다."""
        if record_id == self.active_record_id:
            return True
        if not await self.request_save():
            return False
        self.set_active_record(record_id)
        return True

    async def close_repo(self, repo_id: int) -> bool:
        """탭을 닫는다. 편집 중인 활성 탭이면 먼저 저장한다."""
        if repo_id not in self.open_repo_ids:
            return True
        closing_active = repo_id == self.active_repo_id
        if closing_active and self.dirty:
            if not await self.request_save():
                return False
        self.remove_repo_tab(repo_id)
        if closing_active:
            await self._load_records()
        return True

    async def refresh_records(self) -> bool:
        """조목 목록을 다시 받는다. 저장에 실패하면 새로고침하지 않는다."""
        if not await self.request_save():
            return False
        await self._load_records()
        return True

    async def create_record(self, source: str) -> Optional[RecordSummary]:
        """현재 자료고에 조목을 만들고 그 조목으로 이동한다.

        출력: 만든 조목. 저장 실패로 이동하지 않았으면 None.
        Raises:
            ValueError: 활성 자료고가 없을 때.
            ApiError: 서버가 생성을 거부했을 때.
        """
        if self.active_repo_id is None:
            raise ValueError("请先选择一个资料库。")
        if not await self.request_save():
            return None
        created = await self._require_api().create_record(
            self.active_repo_id, source.strip()
        )
        self.set_active_record(created.id)
        await self._load_records()
        return created

    async def bootstrap(self) -> dict:
        """서버의 첫 화면 데이터로 상태를 채운다.

        출력: 서버가 준 초기 데이터 전체 (recordDetail은 편집 화면이 적용한다).
        """
        data = await self._require_api().get_dashboard()
        self.repos = [Repo.from_dict(r) for r in data.get("repos", [])]
        self.initialize(
            data.get("openRepoIds", []),
            data.get("activeRepoId"),
            data.get("activeRecordId"),
        )
        records = data.get("records")
        self.records = (
            [RecordSummary.from_dict(r) for r in records["items"]] if records else []
        )
        return data

    # ── 내부 ──────────────────────────────

    def _require_api(self) -> ApiClient:
        if self._api is None:
            raise RuntimeError("ApiClient가 연결되지 않았습니다.")
        return self._api

    async def _load_records(self) -> None:
        if self._api is None:
            return
        if self.active_repo_id is None:
            self.records = []
        else:
            self.records = await self._api.list_records(self.active_repo_id)
        self._reconcile_active_record()
