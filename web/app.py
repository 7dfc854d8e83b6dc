"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config.loader import get_settings
from core.logging import setup_logging
from web.routes import health, ledger

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리"""
    settings = get_settings()
    setup_logging("web", console_level=logging.getLevelName(settings.log_level))

    # 시작 시 generated ledger 디렉토리 준비
    settings.generated_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Web: generated ledger 디렉토리 {settings.generated_dir}")

    yield

    logger.info("Web: 종료")


app = FastAPI(
    title="Squirrel Ledger API",
    description="Plain-text 복식부기 원장 파싱 및 generated ledger 관리 API",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (로컬 UI 셸용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(ledger.router)
