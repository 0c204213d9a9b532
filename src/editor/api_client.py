"""코퍼스 서버 HTTP 클라이언트.

서버 응답은 모두 {"message": ..., "data"?: ..., "error"?: ...} 봉투다.
request()는 성공 시 data만 꺼내고, 실패 시 상태 코드를 담은 ApiError를 던진다.
세션 쿠키는 httpx.AsyncClient의 쿠키 저장소가 들고 다닌다.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from core.models import RecordDetail, RecordSummary, Repo

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """API 호출 실패. status는 HTTP 상태 코드."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_unauthorized(self) -> bool:
        """세션 만료 / 비로그인."""
        return self.status == 401


class ApiClient:
    """서버 API 래퍼.

    사용법:
        client = ApiClient("http://127.0.0.1:8000")
        user = await client.login("editor", "secret")
        detail = await client.get_record(1, 3)

    테스트에서는 transport=httpx.ASGITransport(app=app)로 서버를 직접 붙인다.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        """요청을 보내고 봉투의 data를 돌려준다.

        Raises:
            ApiError: 응답 상태가 2xx가 아니거나 본문이 JSON이 아닐 때.
            httpx.HTTPError: 연결 실패 등 전송 계층 오류.
        """
        response = await self._client.request(
            method,
            path,
            content=json.dumps(body, ensure_ascii=False).encode("utf-8")
            if body is not None
            else None,
        )

        payload = None
        if response.content:
            try:
                payload = response.json()
            except ValueError as e:
                raise ApiError(f"Invalid JSON response: {e}", response.status_code) from e

        if response.is_error:
            message = response.reason_phrase
            if isinstance(payload, dict):
                message = payload.get("error") or payload.get("message") or message
            raise ApiError(message, response.status_code)

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    # ── 인증 ──────────────────────────────

    async def get_session(self) -> Optional[dict]:
        return await self.request("GET", "/api/auth/session")

    async def login(self, username: str, password: str) -> dict:
        return await self.request(
            "POST", "/api/auth/login", {"username": username, "password": password}
        )

    async def logout(self) -> None:
        await self.request("POST", "/api/auth/logout")

    # ── 자료고 ────────────────────────────

    async def get_dashboard(self) -> dict:
        return await self.request("GET", "/api/dashboard")

    async def list_repos(self) -> list[Repo]:
        data = await self.request("GET", "/api/repos")
        return [Repo.from_dict(r) for r in data]

    async def create_repo(self, name: str) -> int:
        data = await self.request("POST", "/api/repos", {"name": name})
        return int(data["id"])

    async def rename_repo(self, repo_id: int, name: str) -> None:
        await self.request("PUT", f"/api/repos/{repo_id}", {"name": name})

    async def delete_repo(self, repo_id: int) -> None:
        await self.request("DELETE", f"/api/repos/{repo_id}")

    # ── 조목 ──────────────────────────────

    async def list_records(self, repo_id: int) -> list[RecordSummary]:
        data = await self.request("GET", f"/api/repos/{repo_id}/records")
        return [RecordSummary.from_dict(r) for r in data]

    async def create_record(self, repo_id: int, source: str) -> RecordSummary:
        data = await self.request(
            "POST", f"/api/repos/{repo_id}/records", {"source": source}
        )
        return RecordSummary.from_dict(data)

    async def import_record(self, repo_id: int, raw: str) -> RecordDetail:
        data = await self.request(
            "POST", f"/api/repos/{repo_id}/records/import", {"raw": raw}
        )
        return RecordDetail.from_dict(data)

    async def get_record(self, repo_id: int, record_id: int) -> RecordDetail:
        data = await self.request("GET", f"/api/repos/{repo_id}/records/{record_id}")
        return RecordDetail.from_dict(data)

    async def save_record(self, repo_id: int, record_id: int, payload: dict) -> None:
        """전체 교체 저장. payload는 RecordDetail.to_payload() 형태."""
        await self.request(
            "PUT", f"/api/repos/{repo_id}/records/{record_id}", payload
        )
