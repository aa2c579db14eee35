"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + EventHub 初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from taskmarket.core.config import get_db_path
from taskmarket.core.store import create_store_group

from .errors import register_error_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, lifecycle, matching, providers, stream, tasks
from .services.event_hub import EventHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和 EventHub，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.event_hub = EventHub()
    log.info("gateway_started", db_path=db_path)

    yield

    await store_group.close()
    log.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TaskMarket Gateway",
        version="0.1.0",
        description="服务市场任务生命周期 API",
        lifespan=lifespan,
    )

    # 注册中间件（后注册的在外层：Logging 先生成 request_id，再由 Trace 绑定 trace_id）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    register_error_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(lifecycle.router, tags=["lifecycle"])
    app.include_router(matching.router, tags=["matching"])
    app.include_router(providers.router, tags=["providers"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
