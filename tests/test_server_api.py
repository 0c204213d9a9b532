"""웹 API 통합 테스트 (FastAPI TestClient).

테스트 구조:
    TestAuthApi — 로그인 / 로그아웃 / 세션
    TestRepoApi — 자료고 엔드포인트
    TestRecordApi — 조목 엔드포인트
    TestResources — 어휘·스키마
"""

import json

import pytest
from fastapi.testclient import TestClient

import core.app_config as app_config
from app.server import app, configure
from core.auth import AUTH_COOKIE_NAME, create_user
from core.library import create_record, create_repo, init_library

SECRET = "test-secret-0123456789-abcdefghijkl"

LUNYU = {
    "source": "子曰：“不舍昼夜。”",
    "target": "孔子说",
    "meta": None,
    "source_tokens": [
        {"id": 1, "word": "子"},
        {"id": 2, "word": "曰"},
        {"id": 3, "word": "：“"},
        {"id": 4, "word": "不"},
        {"id": 5, "word": "舍"},
        {"id": 6, "word": "昼夜"},
        {"id": 7, "word": "。”"},
    ],
    "target_tokens": [{"id": 1, "word": "孔子"}, {"id": 2, "word": "说"}],
    "alignment": [{"source_id": 1, "target_id": 1, "relation_type": "语义"}],
}


@pytest.fixture
def library(tmp_path, monkeypatch):
    monkeypatch.setenv("AUTH_SECRET", SECRET)
    monkeypatch.setattr(app_config, "CONFIG_DIR", tmp_path / "home")

    path = init_library(tmp_path / "corpus")
    create_user(path, "editor", "secret", display_name="编辑")
    configure(path)
    return path


@pytest.fixture
def client(library):
    return TestClient(app)


@pytest.fixture
def logged_in(client):
    response = client.post(
        "/api/auth/login", json={"username": "editor", "password": "secret"}
    )
    assert response.status_code == 200
    return client


class TestAuthApi:
    def test_session_anonymous(self, client):
        response = client.get("/api/auth/session")
        assert response.json() == {"message": "success", "data": None}

    def test_login_sets_cookie(self, client):
        response = client.post(
            "/api/auth/login", json={"username": "editor", "password": "secret"}
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "id": 1,
            "username": "editor",
            "displayName": "编辑",
        }
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{AUTH_COOKIE_NAME}=")
        assert "HttpOnly" in cookie
        assert "Max-Age=604800" in cookie

        session = client.get("/api/auth/session").json()
        assert session["data"]["username"] == "editor"

    def test_login_wrong_password(self, client):
        response = client.post(
            "/api/auth/login", json={"username": "editor", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json() == {"message": "error", "error": "用户名或密码错误"}

    def test_login_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"username": " "})
        assert response.status_code == 400

    def test_login_without_secret(self, client, monkeypatch):
        monkeypatch.delenv("AUTH_SECRET")
        response = client.post(
            "/api/auth/login", json={"username": "editor", "password": "secret"}
        )
        assert response.status_code == 500

    def test_logout(self, logged_in):
        logged_in.post("/api/auth/logout")
        assert logged_in.get("/api/auth/session").json()["data"] is None

    def test_forged_cookie_is_anonymous(self, client):
        response = client.get(
            "/api/auth/session",
            headers={"Cookie": f"{AUTH_COOKIE_NAME}=forged.token.value"},
        )
        assert response.json()["data"] is None


class TestRepoApi:
    def test_dashboard_empty(self, client):
        data = client.get("/api/dashboard").json()["data"]
        assert data["repos"] == []
        assert data["activeRepoId"] is None
        assert data["recordDetail"] is None

    def test_dashboard_opens_first_record(self, client, library):
        repo = create_repo(library, "论语")
        create_record(library, repo.id, "子曰")
        data = client.get("/api/dashboard").json()["data"]
        assert data["openRepoIds"] == [repo.id]
        assert data["activeRecordId"] == 1
        assert data["records"]["items"] == [{"id": 1, "source": "子曰"}]
        assert data["recordDetail"]["data"]["source"] == "子曰"

    def test_create_requires_login(self, client):
        response = client.post("/api/repos", json={"name": "论语"})
        assert response.status_code == 401
        assert response.json()["error"] == "未授权，请先登录"

    def test_create_list_rename_delete(self, logged_in):
        response = logged_in.post("/api/repos", json={"name": "论语"})
        assert response.status_code == 201
        repo_id = response.json()["data"]["id"]

        assert logged_in.put(f"/api/repos/{repo_id}", json={"name": "论语集注"}).status_code == 200
        assert logged_in.get("/api/repos").json()["data"] == [
            {"id": repo_id, "name": "论语集注"}
        ]
        assert logged_in.delete(f"/api/repos/{repo_id}").status_code == 200
        assert logged_in.get("/api/repos").json()["data"] == []

    def test_create_conflicts(self, logged_in):
        logged_in.post("/api/repos", json={"name": "论语"})
        assert logged_in.post("/api/repos", json={"name": "论语"}).status_code == 409
        assert logged_in.post("/api/repos", json={"name": " "}).status_code == 400

    def test_invalid_repo_id(self, logged_in):
        response = logged_in.delete("/api/repos/abc")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid repository id"
        assert logged_in.get("/api/repos/0/records").status_code == 400

    def test_missing_repo(self, logged_in):
        assert logged_in.delete("/api/repos/42").status_code == 404
        assert logged_in.get("/api/repos/42/records").status_code == 404


class TestRecordApi:
    @pytest.fixture
    def repo_id(self, library):
        return create_repo(library, "论语").id

    def test_create_and_get(self, logged_in, repo_id):
        response = logged_in.post(
            f"/api/repos/{repo_id}/records", json={"source": " 子曰：“不舍昼夜。” "}
        )
        assert response.status_code == 201
        assert response.json()["data"] == {
            "id": 1,
            "source": "子曰：“不舍昼夜。”",
            "target": None,
            "meta": None,
        }
        detail = logged_in.get(f"/api/repos/{repo_id}/records/1").json()["data"]
        assert detail["source_tokens"] == []

    def test_reads_are_public(self, client, library, repo_id):
        create_record(library, repo_id, "子曰")
        assert client.get(f"/api/repos/{repo_id}/records").status_code == 200
        assert client.get(f"/api/repos/{repo_id}/records/1").status_code == 200

    def test_create_duplicate(self, logged_in, repo_id):
        logged_in.post(f"/api/repos/{repo_id}/records", json={"source": "子曰"})
        response = logged_in.post(f"/api/repos/{repo_id}/records", json={"source": "子曰"})
        assert response.status_code == 409

    def test_save_record(self, logged_in, library, repo_id):
        create_record(library, repo_id, LUNYU["source"])
        response = logged_in.put(f"/api/repos/{repo_id}/records/1", json=LUNYU)
        assert response.status_code == 200

        detail = logged_in.get(f"/api/repos/{repo_id}/records/1").json()["data"]
        assert detail["target"] == "孔子说"
        assert detail["alignment"] == LUNYU["alignment"]

    def test_save_wrapped_payload(self, logged_in, library, repo_id):
        create_record(library, repo_id, LUNYU["source"])
        response = logged_in.put(f"/api/repos/{repo_id}/records/1", json={"data": LUNYU})
        assert response.status_code == 200

    def test_save_requires_login(self, client, library, repo_id):
        create_record(library, repo_id, LUNYU["source"])
        response = client.put(f"/api/repos/{repo_id}/records/1", json=LUNYU)
        assert response.status_code == 401

    def test_save_invalid_payload(self, logged_in, library, repo_id):
        create_record(library, repo_id, LUNYU["source"])
        bad = dict(LUNYU, alignment=[{"source_id": 1, "target_id": 5, "relation_type": "语义"}])
        response = logged_in.put(f"/api/repos/{repo_id}/records/1", json=bad)
        assert response.status_code == 400
        assert "target_id" in response.json()["error"]

        empty = dict(LUNYU, source="  ")
        response = logged_in.put(f"/api/repos/{repo_id}/records/1", json=empty)
        assert response.status_code == 400

    def test_save_undecodable_body(self, logged_in, library, repo_id):
        create_record(library, repo_id, LUNYU["source"])
        response = logged_in.put(
            f"/api/repos/{repo_id}/records/1",
            content=b'{"source": "\xff\xfe"}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing record payload"

    def test_save_missing_record(self, logged_in, repo_id):
        response = logged_in.put(f"/api/repos/{repo_id}/records/9", json=LUNYU)
        assert response.status_code == 404

    def test_invalid_identifiers(self, logged_in, repo_id):
        response = logged_in.get(f"/api/repos/{repo_id}/records/x")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid identifiers"

    def test_import(self, logged_in, repo_id):
        raw = json.dumps(LUNYU, ensure_ascii=False)
        response = logged_in.post(f"/api/repos/{repo_id}/records/import", json={"raw": raw})
        assert response.status_code == 201
        assert response.json()["data"]["id"] == 1
        records = logged_in.get(f"/api/repos/{repo_id}/records").json()["data"]
        assert records == [{"id": 1, "source": LUNYU["source"]}]

    def test_import_rejects_with_first_error(self, logged_in, repo_id):
        response = logged_in.post(
            f"/api/repos/{repo_id}/records/import", json={"raw": "{\"source\": \"\"}"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "source 必须是非空字符串。"


class TestResources:
    def test_vocabulary(self, client):
        data = client.get("/api/resources/vocabulary").json()["data"]
        assert "名词" in data["pos"]
        assert "语义" in data["relation_type"]
        assert "source_tokens" in data["import_prompt"]

    def test_record_schema(self, client):
        data = client.get("/api/resources/record_schema").json()["data"]
        assert "source_tokens" in data["required"]
