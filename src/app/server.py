"""웹 앱 서버.

FastAPI 기반. 코퍼스 서고의 자료고·조목을 JSON API로 제공한다.
편집 화면(클라이언트)은 editor 패키지가 이 API를 호출한다.

API 엔드포인트:
    /api/auth/*                 → routers/auth.py
    /api/dashboard, /api/repos* → routers/repos.py
    GET /api/resources/vocabulary     → 词性·句法·关系 추천 어휘 + Import 프롬프트
    GET /api/resources/record_schema  → 조목 JSON 스키마
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.record_validator import get_record_schema
from core.vocabulary import get_vocabulary

from app._state import configure_library
from app.routers import auth, repos

logger = logging.getLogger(__name__)

app = FastAPI(
    title="文白对照语料标注平台",
    description="文言原文与白话译文的分词、词性、句法角色、注释与词对齐标注",
    version="0.3.0",
)

app.include_router(auth.router)
app.include_router(repos.router)


def configure(library_path: str | Path) -> FastAPI:
    """서고 경로를 설정한다.

    목적: 서버 시작 전에 서고 경로를 지정한다.
    입력: library_path — 서고 디렉토리 경로.
    출력: 설정된 FastAPI 앱 인스턴스.
    """
    configure_library(library_path)
    return app


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    """라우터가 처리하지 못한 예외. 내용은 로그에만 남긴다."""
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(
        {"message": "error", "error": "Internal Server Error"},
        status_code=500,
    )


@app.get("/api/resources/vocabulary")
async def api_vocabulary():
    """편집기 드롭다운과 Import 대화상자에 쓰는 어휘 목록."""
    return {"message": "success", "data": get_vocabulary()}


@app.get("/api/resources/record_schema")
async def api_record_schema():
    """조목 JSON 스키마 (draft-07)."""
    return {"message": "success", "data": get_record_schema()}
