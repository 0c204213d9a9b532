"""로그인 관문 상태 기계 테스트."""

import httpx
import pytest

from editor.api_client import ApiError
from editor.auth_gate import AuthGate, GateState


@pytest.fixture
def prompts():
    return []


@pytest.fixture
def gate(api, notifier, prompts):
    return AuthGate(api, notifier, on_login_required=lambda: prompts.append(1))


class TestSession:
    @pytest.mark.asyncio
    async def test_refresh_once(self, gate, api):
        api.session_user = {"id": 1, "username": "editor", "displayName": None}
        await gate.refresh_session()
        await gate.refresh_session()
        assert gate.is_authenticated
        assert gate.user.username == "editor"
        assert api.count("get_session") == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_is_anonymous(self, gate, api):
        async def broken():
            raise httpx.ConnectError("offline")

        api.get_session = broken
        await gate.refresh_session()
        assert gate.initialized
        assert gate.user is None


class TestRequireAuth:
    @pytest.mark.asyncio
    async def test_runs_action_when_logged_in(self, gate, api, prompts):
        await gate.login("editor", "secret")
        ran = []

        async def action():
            ran.append(1)

        assert await gate.require_auth(action)
        assert ran == [1]
        assert prompts == []

    @pytest.mark.asyncio
    async def test_defers_action_until_login(self, gate, prompts):
        ran = []

        async def action():
            ran.append(1)

        assert not await gate.require_auth(action)
        assert gate.state == GateState.AWAITING_LOGIN
        assert gate.pending_action is action
        assert prompts == [1]
        assert ran == []

        await gate.login("editor", "secret")
        assert ran == [1]
        assert gate.state == GateState.IDLE
        assert gate.pending_action is None

    @pytest.mark.asyncio
    async def test_failed_login_keeps_pending(self, gate):
        async def action():
            pass

        await gate.require_auth(action)
        with pytest.raises(ApiError):
            await gate.login("editor", "wrong")
        assert gate.login_error == "用户名或密码错误"
        assert gate.state == GateState.AWAITING_LOGIN
        assert gate.pending_action is action
        assert not gate.login_loading

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, gate):
        ran = []

        async def action():
            ran.append(1)

        await gate.require_auth(action)
        gate.cancel_login()
        assert gate.state == GateState.IDLE
        await gate.login("editor", "secret")
        assert ran == []

    @pytest.mark.asyncio
    async def test_pending_failure_is_alerted(self, gate, notifier):
        async def action():
            raise ApiError("保存失败", 500)

        await gate.require_auth(action)
        await gate.login("editor", "secret")
        assert notifier.messages == ["保存失败"]


class TestUnauthorized:
    @pytest.mark.asyncio
    async def test_clears_user_and_prompts(self, gate, prompts):
        await gate.login("editor", "secret")

        async def action():
            pass

        gate.handle_unauthorized(action)
        assert gate.user is None
        assert gate.state == GateState.AWAITING_LOGIN
        assert prompts == [1]

    @pytest.mark.asyncio
    async def test_logout(self, gate, api):
        await gate.login("editor", "secret")
        await gate.logout()
        assert gate.user is None
        assert api.count("logout") == 1

    @pytest.mark.asyncio
    async def test_logout_failure_still_clears(self, gate, api):
        await gate.login("editor", "secret")

        async def broken():
            raise ApiError("Internal Server Error", 500)

        api.logout = broken
        await gate.logout()
        assert gate.user is None
