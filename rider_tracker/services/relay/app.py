# rider_tracker/services/relay/app.py
"""
FastAPI приложение Rider Tracker.

WebSocket endpoints:
- /ws/rider - постоянный канал курьерского приложения
- /ws/admin - наблюдатели (панель администратора)

REST endpoints:
- /api/... - курьеры и геолокация (см. routes.py)
- GET /health - проверка здоровья
- GET /stats - статистика relay
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rider_tracker.common.constants import TypeMsg
from rider_tracker.common.exceptions import RiderTrackerError
from rider_tracker.common.logger import log_error, log_info, log_warning, setup_logging
from rider_tracker.config import settings
from rider_tracker.core.presence import PresenceRegistry
from rider_tracker.core.riders import RiderStore, bootstrap_store
from rider_tracker.infra.database import DatabaseManager, close_db, init_db
from rider_tracker.services.relay.broadcaster import ObserverBroadcaster
from rider_tracker.services.relay.dependencies import get_db, get_relay
from rider_tracker.services.relay.routes import router
from rider_tracker.services.relay.service import TrackingRelay
from rider_tracker.shared.models.common import HealthStatus, error_body
from rider_tracker.worker.retention import RetentionSweeper


SERVICE_NAME = "rider_tracker"


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    setup_logging()
    await log_info("Rider Tracker запускается...", type_msg=TypeMsg.INFO)

    db = DatabaseManager()
    await init_db(db)

    store = RiderStore(db)
    await bootstrap_store(store, settings.database.SNAPSHOT_IMPORT_PATH)

    broadcaster = ObserverBroadcaster()
    sweeper = RetentionSweeper(
        store,
        retention_days=settings.retention.RETENTION_DAYS,
        interval_seconds=settings.retention.SWEEP_INTERVAL_SECONDS,
    )

    app.state.db = db
    app.state.store = store
    app.state.broadcaster = broadcaster
    app.state.relay = TrackingRelay(store, PresenceRegistry(), broadcaster)
    app.state.sweeper = sweeper

    await sweeper.start()
    await log_info(
        f"Rider Tracker слушает {settings.server.HOST}:{settings.server.PORT}",
        type_msg=TypeMsg.INFO,
    )

    yield

    await sweeper.stop()
    await close_db(db)
    await log_info("Rider Tracker остановлен", type_msg=TypeMsg.INFO)


# =============================================================================
# ОБРАБОТЧИКИ ОШИБОК
# =============================================================================

async def rider_tracker_error_handler(request: Request, exc: RiderTrackerError) -> JSONResponse:
    """Доменные ошибки -> их HTTP статус."""
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Невалидное тело или параметры запроса -> 400."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content=error_body(details or "Invalid request"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Прочие ошибки -> 500 с текстом исключения."""
    await log_error(
        f"Необработанная ошибка {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(status_code=500, content=error_body(str(exc)))


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

def create_app() -> FastAPI:
    """Создаёт приложение; компоненты в app.state появляются в lifespan."""
    app = FastAPI(
        title="Rider Tracker",
        description="Relay геолокации курьеров для панели администратора.",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RiderTrackerError, rider_tracker_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)

    # === HEALTH CHECK ===

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check(db: DatabaseManager = Depends(get_db)) -> HealthStatus:
        """Проверка здоровья сервиса."""
        deps = {"postgres": "healthy" if await db.health_check() else "unhealthy"}
        overall = "healthy" if all(v == "healthy" for v in deps.values()) else "degraded"

        return HealthStatus(
            service=SERVICE_NAME,
            status=overall,
            version=settings.system.VERSION,
            dependencies=deps,
        )

    # === STATS ===

    @app.get("/stats", tags=["Stats"])
    async def get_stats(relay: TrackingRelay = Depends(get_relay)) -> dict[str, Any]:
        """Статистика присутствия и рассылки."""
        return relay.get_stats()

    # === WEBSOCKET ENDPOINTS ===

    @app.websocket("/ws/rider")
    async def websocket_rider(websocket: WebSocket) -> None:
        """
        Постоянный канал курьера.

        Входящие кадры:
        - {"event": "rider-connect", "data": {"riderId": .., "riderName": ..}}
        - {"event": "location-update", "data": {"riderId": .., "latitude": .., "longitude": ..}}
        - {"event": "rider-disconnect", "data": {"riderId": ..}}

        Обрыв соединения без rider-disconnect переводит курьера в inactive.
        """
        relay: TrackingRelay = websocket.app.state.relay
        connection_id = uuid4().hex
        await websocket.accept()

        try:
            while True:
                text = await websocket.receive_text()
                try:
                    frame = json.loads(text)
                except json.JSONDecodeError:
                    await log_warning(f"Кадр от {connection_id} не является JSON")
                    continue
                await relay.dispatch(connection_id, frame)

        except WebSocketDisconnect:
            pass
        except Exception as e:
            await log_error(f"Ошибка канала курьера {connection_id}: {e}", exc_info=True)
        finally:
            await relay.handle_connection_closed(connection_id)

    @app.websocket("/ws/admin")
    async def websocket_admin(websocket: WebSocket) -> None:
        """
        Канал наблюдателя: получает location-update и rider-status.
        Входящие сообщения игнорируются.
        """
        broadcaster: ObserverBroadcaster = websocket.app.state.broadcaster
        connection_id = uuid4().hex
        await broadcaster.connect(websocket, connection_id)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await broadcaster.disconnect(connection_id)

    return app


app = create_app()
