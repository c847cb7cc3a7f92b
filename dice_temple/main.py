"""
dice_temple.main
~~~~~~~~~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dice_temple.api import room, ws
from dice_temple.core.config import settings
from dice_temple.core.logging import get_logger, setup_logging
from dice_temple.schemas.api_response import ApiResponse
from dice_temple.services.room_hub import RoomHub

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
    # ── 启动 ──
    app.state.room_hub = RoomHub(
        dm_secret=settings.DM_SECRET, default_room_id=settings.DEFAULT_ROOM_ID,
    )
    logger.info(
        "🎲 应用已启动 | env=%s | debug=%s | log_level=%s",
        settings.ENVIRONMENT,
        settings.debug,
        settings.effective_log_level,
    )
    yield
    # ── 关闭 ──
    logger.info("👋 应用已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人实时掷骰房间后端 API",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# ── CORS 中间件 ───────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(room.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket Rooms"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP 异常同样包装为 ApiResponse.fail() 格式。"""
    response = ApiResponse.fail(msg=str(exc.detail), code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=response.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(status_code=500, content=response.model_dump())


@app.get("/health", tags=["System"])
async def health_check() -> JSONResponse:
    """验证服务是否正常运行。"""
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "debug": settings.debug,
            "log_level": settings.effective_log_level,
            "message": "Dice Temple 已就绪！🎲",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dice_temple.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.debug,
        log_level=settings.effective_log_level.lower(),
    )
