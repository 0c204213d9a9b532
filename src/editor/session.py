"""조목 편집 세션 (record editor session).

활성 조목 하나의 편집 내용을 메모리에 들고 있다가 저장한다.
EditorCoordinator의 Saveable 구현이다.

저장 경로는 하나뿐이다:
    자동 저장(주기) ─┐
    Ctrl/Cmd+S ─────┼─▶ perform_save() ─▶ (진행 중 저장 있음?) ─예─▶ 같은 작업을 기다림
    저장 버튼 ───────┤                         │아니오
    화면 이동 ───────┘                         ▼
                                          _run_save() 작업 1개

    - 저장 중에 들어온 호출은 새 네트워크 요청을 만들지 않고 같은 결과를 받는다.
    - 진행 중 저장 작업은 asyncio.shield로 감싸서, 기다리던 호출자가 취소되어도
      저장 자체는 끝까지 간다.
    - 실패하면 편집 내용과 dirty 플래그를 그대로 둔다. 편집 내용을 버리는 것은
      revert()뿐이다.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Optional

import httpx

from core.models import Alignment, RecordDetail, Token
from core.record_validator import join_words
from core.settings import AppSettings
from core.tokenizer import (
    build_tokens_from_value,
    join_tokens_with_slash,
    remap_alignment,
)
from core.vocabulary import normalize_relation_value, normalize_token_attribute
from editor.api_client import ApiClient, ApiError
from editor.auth_gate import AuthGate, GateState
from editor.coordinator import EditorCoordinator
from editor.notifier import Notifier

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_SECONDS = 30.0

TOKEN_ATTRIBUTES = ("pos", "syntax_role", "annotation")

LOGIN_EXPIRED_MESSAGE = "登录状态已失效，保存失败，请稍后再试。"


class RecordEditorSession:
    """조목 편집 화면 하나.

    사용법:
        session = RecordEditorSession(coordinator, client, gate)
        await coordinator.select_record(3)
        await session.sync()
        session.edit_target("孔子/说")
        await session.perform_save()
    """

    def __init__(
        self,
        coordinator: EditorCoordinator,
        api: ApiClient,
        gate: AuthGate,
        notifier: Optional[Notifier] = None,
    ):
        self._coordinator = coordinator
        self._api = api
        self._gate = gate
        self._notifier = notifier or Notifier()
        self._save_task: Optional[asyncio.Task] = None
        self._autosave_task: Optional[asyncio.Task] = None
        # 편집할 때마다 증가. 저장 도중 새 편집이 들어왔으면 저장 후에도 dirty로 남긴다.
        self._revision = 0
        self.autosave_interval = DEFAULT_AUTOSAVE_SECONDS

        self.repo_id: Optional[int] = None
        self.record_id: Optional[int] = None
        self.last_loaded: Optional[RecordDetail] = None
        self.source_value = ""
        self.target_value = ""
        self.meta_value = ""
        self.source_tokens: list[Token] = []
        self.target_tokens: list[Token] = []
        self.alignment: list[Alignment] = []

        coordinator.bind_saveable(self)

    @property
    def coordinator(self) -> EditorCoordinator:
        return self._coordinator

    @property
    def gate(self) -> AuthGate:
        return self._gate

    @property
    def api(self) -> ApiClient:
        return self._api

    @property
    def dirty(self) -> bool:
        return self._coordinator.dirty

    @property
    def saving(self) -> bool:
        return self._save_task is not None

    # ── 불러오기 ──────────────────────────

    def apply_record_data(self, repo_id: int, detail: RecordDetail) -> None:
        """불러온 조목으로 편집 상태를 통째로 바꾼다. dirty는 지운다."""
        self.repo_id = repo_id
        self.record_id = detail.id
        self.last_loaded = copy.deepcopy(detail)
        self.source_value = join_tokens_with_slash(detail.source_tokens, detail.source)
        self.target_value = join_tokens_with_slash(detail.target_tokens, detail.target)
        self.meta_value = detail.meta or ""
        self.source_tokens = copy.deepcopy(detail.source_tokens)
        self.target_tokens = copy.deepcopy(detail.target_tokens)
        self.alignment = copy.deepcopy(detail.alignment)
        self._revision += 1
        self._coordinator.mark_clean()

    def clear(self) -> None:
        self.repo_id = None
        self.record_id = None
        self.last_loaded = None
        self.source_value = ""
        self.target_value = ""
        self.meta_value = ""
        self.source_tokens = []
        self.target_tokens = []
        self.alignment = []
        self._revision += 1
        self._coordinator.mark_clean()

    def revert(self) -> None:
        """편집 내용을 버리고 마지막으로 불러온(또는 저장한) 상태로 돌아간다."""
        if self.last_loaded is None or self.repo_id is None:
            self.clear()
            return
        self.apply_record_data(self.repo_id, self.last_loaded)

    def _holds_unsaved(self, repo_id: int, record_id: int) -> bool:
        return (
            self.dirty and self.repo_id == repo_id and self.record_id == record_id
        )

    async def open_record(self, repo_id: int, record_id: int) -> bool:
        """조목을 받아 와 편집 상태에 적용한다.

        같은 조목에 저장되지 않은 편집이 있으면 받아 온 내용으로 덮지 않는다.
        출력: 적용했으면 True.
        Raises:
            ApiError: 조회 실패.
        """
        if self._holds_unsaved(repo_id, record_id):
            return False
        detail = await self._api.get_record(repo_id, record_id)
        # 기다리는 사이에 편집이 시작됐을 수 있다.
        if self._holds_unsaved(repo_id, record_id):
            logger.info("조목 %s/%s: 편집 중이므로 새로 받은 내용을 적용하지 않음", repo_id, record_id)
            return False
        self.apply_record_data(repo_id, detail)
        return True

    async def sync(self) -> bool:
        """coordinator의 활성 조목을 불러온다. 활성 조목이 없으면 비운다."""
        repo_id = self._coordinator.active_repo_id
        record_id = self._coordinator.active_record_id
        if repo_id is None or record_id is None:
            self.clear()
            return False
        if repo_id == self.repo_id and record_id == self.record_id and self.dirty:
            return False
        try:
            applied = await self.open_record(repo_id, record_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("조목 불러오기 실패: %s/%s (%s)", repo_id, record_id, e)
            self._notifier.alert(str(e) or "加载条目失败，请稍后再试。")
            return False
        # 기다리는 사이에 다른 조목으로 이동했으면 다시 맞춘다.
        if (
            self._coordinator.active_repo_id != repo_id
            or self._coordinator.active_record_id != record_id
        ):
            return await self.sync()
        return applied

    async def refresh(self) -> bool:
        """지금 조목을 다시 받아 온다. 편집 중이면 아무것도 바꾸지 않는다."""
        if self.repo_id is None or self.record_id is None:
            return False
        try:
            return await self.open_record(self.repo_id, self.record_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("조목 새로고침 실패: %s", e)
            self._notifier.alert(str(e) or "加载条目失败，请稍后再试。")
            return False

    # ── 편집 ──────────────────────────────

    def _can_edit(self) -> bool:
        if self.record_id is None:
            return False
        if not self._gate.is_authenticated:
            logger.info("비로그인 상태에서 편집 시도 무시")
            return False
        return True

    def _touch(self) -> None:
        self._revision += 1
        self._coordinator.mark_dirty()

    def edit_source(self, value: str) -> bool:
        """원문 슬래시 텍스트를 고친다. 词元과 对齐를 함께 다시 맞춘다."""
        if not self._can_edit():
            return False
        self.source_value = value
        self.source_tokens, id_map = build_tokens_from_value(value, self.source_tokens)
        self.alignment = remap_alignment(self.alignment, source_map=id_map)
        self._touch()
        return True

    def edit_target(self, value: str) -> bool:
        """译文 슬래시 텍스트를 고친다."""
        if not self._can_edit():
            return False
        self.target_value = value
        self.target_tokens, id_map = build_tokens_from_value(value, self.target_tokens)
        self.alignment = remap_alignment(self.alignment, target_map=id_map)
        self._touch()
        return True

    def edit_meta(self, value: str) -> bool:
        if not self._can_edit():
            return False
        self.meta_value = value
        self._touch()
        return True

    def _update_token(
        self, tokens: list[Token], token_id: int, attribute: str, value: Optional[str]
    ) -> bool:
        if attribute not in TOKEN_ATTRIBUTES:
            raise ValueError(f"알 수 없는 词元 속성: {attribute}")
        if not self._can_edit():
            return False
        for token in tokens:
            if token.id == token_id:
                setattr(token, attribute, normalize_token_attribute(value))
                self._touch()
                return True
        return False

    def update_source_token(
        self, token_id: int, attribute: str, value: Optional[str]
    ) -> bool:
        """원문 词元의 pos / syntax_role / annotation 하나를 고친다."""
        return self._update_token(self.source_tokens, token_id, attribute, value)

    def update_target_token(
        self, token_id: int, attribute: str, value: Optional[str]
    ) -> bool:
        return self._update_token(self.target_tokens, token_id, attribute, value)

    def _check_alignment(self, item: Alignment) -> Alignment:
        relation = normalize_relation_value(item.relation_type)
        if not relation:
            raise ValueError("对齐关系不能为空。")
        if item.source_id not in {t.id for t in self.source_tokens}:
            raise ValueError(f"原文词元 {item.source_id} 不存在。")
        if item.target_id not in {t.id for t in self.target_tokens}:
            raise ValueError(f"译文词元 {item.target_id} 不存在。")
        return Alignment(item.source_id, item.target_id, relation)

    def set_alignment(self, alignment: list[Alignment]) -> bool:
        """对齐 목록을 통째로 바꾼다.

        Raises:
            ValueError: 없는 词元을 가리키거나 관계가 비어 있을 때.
        """
        if not self._can_edit():
            return False
        self.alignment = [self._check_alignment(a) for a in alignment]
        self._touch()
        return True

    def add_alignment(self, source_id: int, target_id: int, relation_type: str) -> bool:
        if not self._can_edit():
            return False
        self.alignment.append(
            self._check_alignment(Alignment(source_id, target_id, relation_type))
        )
        self._touch()
        return True

    def remove_alignment(self, index: int) -> bool:
        if not self._can_edit():
            return False
        if not 0 <= index < len(self.alignment):
            return False
        del self.alignment[index]
        self._touch()
        return True

    # ── 저장 ──────────────────────────────

    def build_detail(self) -> RecordDetail:
        """편집 상태에서 저장할 조목을 만든다.

        source / target은 항상 실제로 보낼 词元 word를 이어 붙인 값이다.
        불러온 词元의 word에 공백이나 '/'가 들어 있어도 그대로 맞는다.
        Raises:
            ValueError: 조목이 없거나 원문이 비어 있을 때.
        """
        if self.record_id is None:
            raise ValueError("未选择条目，无法保存。")

        source_tokens = self.source_tokens
        if not source_tokens:
            source_tokens, _ = build_tokens_from_value(self.source_value, [])
        source = join_words(source_tokens)
        if not source.strip():
            raise ValueError("文言原文不能为空。")

        target_tokens = self.target_tokens
        if not target_tokens and self.target_value.strip():
            target_tokens, _ = build_tokens_from_value(self.target_value, [])
        target = join_words(target_tokens) or None

        return RecordDetail(
            id=self.record_id,
            source=source,
            target=target,
            meta=self.meta_value.strip() or None,
            source_tokens=copy.deepcopy(source_tokens),
            target_tokens=copy.deepcopy(target_tokens) if target else [],
            alignment=copy.deepcopy(self.alignment) if target else [],
        )

    async def execute_save(self) -> RecordDetail:
        """네트워크 저장 한 번. 중복 방지 없이 바로 보낸다.

        Raises:
            ValueError: build_detail()이 거부했을 때.
            ApiError / httpx.HTTPError: 저장 요청 실패.
        """
        repo_id = self.repo_id
        detail = self.build_detail()
        await self._api.save_record(repo_id, detail.id, detail.to_payload())

        if self.repo_id == repo_id and self.record_id == detail.id:
            self.last_loaded = copy.deepcopy(detail)
        for summary in self._coordinator.records:
            if summary.id == detail.id:
                summary.source = detail.source
        logger.info("조목 저장: %s/%s", repo_id, detail.id)
        return detail

    async def perform_save(self) -> bool:
        """저장한다. 저장할 것이 없으면 네트워크 없이 True.

        진행 중인 저장이 있으면 그 결과를 같이 기다린다.
        """
        return await self._save(replay=False)

    async def try_save(self) -> bool:
        return await self.perform_save()

    async def _replay_save(self) -> None:
        """로그인 직후 한 번만 다시 저장한다. 또 401이면 알림으로 끝낸다."""
        await self._save(replay=True)

    async def _save(self, replay: bool) -> bool:
        if self._save_task is None:
            if self.record_id is None or not self.dirty:
                return True
            self._save_task = asyncio.ensure_future(self._run_save(replay))
        return await asyncio.shield(self._save_task)

    async def _run_save(self, replay: bool = False) -> bool:
        revision = self._revision
        try:
            if not self._gate.is_authenticated:
                if replay:
                    self._notifier.alert(LOGIN_EXPIRED_MESSAGE)
                else:
                    await self._gate.require_auth(self._replay_save)
                return False
            self._coordinator.set_saving(True)
            await self.execute_save()
        except ApiError as e:
            if e.is_unauthorized and not replay:
                logger.warning("저장 중 세션 만료, 로그인 후 다시 저장")
                self._gate.handle_unauthorized(self._replay_save)
                return False
            logger.error("저장 실패 (%s): %s", e.status, e.message)
            self._notifier.alert(e.message or "保存失败，请稍后再试。")
            return False
        except (httpx.HTTPError, ValueError) as e:
            logger.error("저장 실패: %s", e)
            self._notifier.alert(str(e) or "保存失败，请稍后再试。")
            return False
        finally:
            self._coordinator.set_saving(False)
            self._save_task = None

        if self._revision == revision:
            self._coordinator.mark_clean()
        return True

    # ── 저장 계기 ─────────────────────────

    def start_autosave(self, interval: Optional[float] = None) -> None:
        """주기적 자동 저장을 시작한다. 이미 돌고 있으면 다시 시작한다."""
        self.stop_autosave()
        self._autosave_task = asyncio.ensure_future(
            self._autosave_loop(interval or self.autosave_interval)
        )

    def stop_autosave(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            self._autosave_task = None

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self.record_id is None or not self.dirty:
                continue
            # 로그인 창이 떠 있는 동안에는 다시 묻지 않는다.
            if self._gate.state == GateState.AWAITING_LOGIN:
                continue
            await self.perform_save()

    async def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """단축키. Ctrl+S / Cmd+S면 저장하고 True, 아니면 False."""
        if key.lower() != "s" or not (ctrl or meta):
            return False
        await self.perform_save()
        return True

    def close(self) -> None:
        """자동 저장을 멈추고 coordinator에서 떨어진다. 진행 중 저장은 그대로 끝나게 둔다."""
        self.stop_autosave()
        if self._coordinator.saveable is self:
            self._coordinator.bind_saveable(None)


def create_editor(
    settings: Optional[AppSettings] = None,
    notifier: Optional[Notifier] = None,
    **client_options,
) -> RecordEditorSession:
    """설정으로 편집 세션 한 벌을 만든다.

    서버 주소는 api_url, 자동 저장 주기는 autosave_seconds 설정을 따른다.
    client_options는 ApiClient에 그대로 넘긴다 (예: transport).
    """
    settings = settings or AppSettings()
    notifier = notifier or Notifier()
    api = ApiClient(settings.get("api_url"), **client_options)
    gate = AuthGate(api, notifier)
    session = RecordEditorSession(EditorCoordinator(api=api), api, gate, notifier)
    session.autosave_interval = float(settings.get_int("autosave_seconds"))
    return session
