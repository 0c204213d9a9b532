"""로그인 관문 (auth gate).

로그인이 필요한 동작을 잠시 맡아 두었다가 로그인이 끝나면 한 번 실행한다.

    IDLE ──require_auth / handle_unauthorized──▶ AWAITING_LOGIN(pending)
      ▲                                                   │
      └──────────── login 성공 (pending 1회 실행) / cancel_login ──┘

로그인 창을 띄우는 일은 on_login_required 콜백이 맡는다.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from core.auth import AuthUser
from editor.api_client import ApiClient, ApiError
from editor.notifier import Notifier

logger = logging.getLogger(__name__)

PendingAction = Callable[[], Awaitable[None]]


class GateState(str, Enum):
    IDLE = "idle"
    AWAITING_LOGIN = "awaiting_login"


class AuthGate:
    """로그인 상태와 대기 중인 동작 하나를 관리한다."""

    def __init__(
        self,
        api: ApiClient,
        notifier: Optional[Notifier] = None,
        on_login_required: Optional[Callable[[], None]] = None,
    ):
        self._api = api
        self._notifier = notifier or Notifier()
        self._on_login_required = on_login_required
        self.user: Optional[AuthUser] = None
        self.initialized = False
        self.state = GateState.IDLE
        self.pending_action: Optional[PendingAction] = None
        self.login_loading = False
        self.login_error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _await_login(self, action: Optional[PendingAction]) -> None:
        self.state = GateState.AWAITING_LOGIN
        self.pending_action = action
        self.login_error = None
        if self._on_login_required is not None:
            self._on_login_required()

    async def refresh_session(self) -> None:
        """서버에 현재 세션을 한 번만 묻는다. 실패하면 비로그인으로 둔다."""
        if self.initialized:
            return
        try:
            data = await self._api.get_session()
            self.user = AuthUser.from_dict(data) if data else None
        except (ApiError, httpx.HTTPError) as e:
            logger.error("로그인 상태 갱신 실패: %s", e)
            self.user = None
        self.initialized = True

    async def require_auth(self, action: Optional[PendingAction] = None) -> bool:
        """로그인 상태면 action을 바로 실행하고 True.

        아니면 action을 맡겨 두고 로그인 창을 요청한 뒤 False.
        """
        if self.user is not None:
            if action is not None:
                await action()
            return True
        self._await_login(action)
        return False

    def handle_unauthorized(self, action: Optional[PendingAction] = None) -> None:
        """서버가 401을 돌려준 경우. 캐시된 사용자를 지우고 다시 로그인을 요청한다."""
        self.user = None
        self._await_login(action)

    def cancel_login(self) -> None:
        """로그인 창을 닫는다. 맡겨 둔 동작은 버린다."""
        self.state = GateState.IDLE
        self.pending_action = None

    async def login(self, username: str, password: str) -> AuthUser:
        """로그인한다. 성공하면 맡겨 둔 동작을 한 번 실행한다.

        맡겨 둔 동작의 실패는 알림으로만 보여 주고 다시 던지지 않는다.
        Raises:
            ApiError: 로그인 실패. login_error에도 메시지가 남는다.
        """
        self.login_loading = True
        self.login_error = None
        try:
            data = await self._api.login(username, password)
        except ApiError as e:
            self.login_error = e.message
            self.login_loading = False
            raise

        self.user = AuthUser.from_dict(data)
        pending = self.pending_action
        self.state = GateState.IDLE
        self.pending_action = None
        self.login_loading = False
        self.login_error = None

        if pending is not None:
            try:
                await pending()
            except (ApiError, httpx.HTTPError, ValueError) as e:
                logger.error("로그인 후 동작 실행 실패: %s", e)
                self._notifier.alert(str(e) or "操作失败，请稍后再试。")
        return self.user

    async def logout(self) -> None:
        try:
            await self._api.logout()
        except (ApiError, httpx.HTTPError) as e:
            logger.error("로그아웃 실패: %s", e)
        finally:
            self.user = None
            self.pending_action = None
            self.state = GateState.IDLE
