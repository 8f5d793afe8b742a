# Main FastAPI Application - Smart Chair Posture Server
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartchair import config
from smartchair import logger
from smartchair.async_database import AsyncpgPostureStore
from smartchair.broadcaster import Broadcaster
from smartchair.database import PostureStore, SqlPostureStore, create_db_engine, init_database, test_connection
from smartchair.errors import InvalidInputError, IngestionError, PersistenceError
from smartchair.pipeline import IngestionPipeline
from smartchair.registry import ChairRegistry
from smartchair.utils import utcnow, parse_iso_timestamp

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION - services live on app.state
# ============================================================================

def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_store(request: Request) -> PostureStore:
    return request.app.state.store


def get_registry(request: Request) -> ChairRegistry:
    return request.app.state.registry


async def read_json_body(request: Request) -> dict:
    """Parse the JSON body; anything that is not a JSON object counts as empty"""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# ============================================================================
# HEALTH CHECK & DISCOVERY
# ============================================================================

@router.get("/api/health")
async def health_check():
    """Route to check if the server is running"""
    return {"status": "Server is running"}


@router.get("/api/chairids")
async def get_active_chair_ids(store: PostureStore = Depends(get_store)):
    """Chair ids that have sent data within the active window (default 1 hour)"""
    since = utcnow() - timedelta(seconds=config.ACTIVE_WINDOW_SECONDS)
    ids = await store.query_distinct_chair_ids(since)
    return {"ids": ids}


@router.get("/api/chairids/registered")
async def get_registered_chair_ids(registry: ChairRegistry = Depends(get_registry)):
    """Every chair id this process has seen since startup"""
    return {"ids": registry.list_ids()}


@router.get("/api/history/{chair_id}")
async def get_history(chair_id: str, request: Request, store: PostureStore = Depends(get_store)):
    """
    Historical posture records for one chair, newest first
    
    Query params: limit (default 100), from / to (ISO timestamps)
    """
    params = request.query_params
    try:
        limit = int(params.get("limit", config.HISTORY_DEFAULT_LIMIT))
        if limit < 1:
            raise ValueError("limit must be positive")
        from_time = parse_iso_timestamp(params["from"]) if params.get("from") else None
        to_time = parse_iso_timestamp(params["to"]) if params.get("to") else None
    except ValueError as e:
        logger.log_warning("Invalid History Query", {"chair_id": chair_id, "reason": str(e)})
        raise InvalidInputError("Invalid history query") from e

    records = await store.query_history(
        chair_id,
        limit=min(limit, config.HISTORY_MAX_LIMIT),
        from_time=from_time,
        to_time=to_time
    )
    return [record.to_dict() for record in records]


# ============================================================================
# INGESTION ROUTES
# ============================================================================

@router.post("/chair")
async def receive_chair_data(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Receive pressure sensor data from the smart chair"""
    body = await read_json_body(request)
    logger.log_api("POST /chair", {"chair_id": body.get("id")})

    result = await pipeline.ingest_pressure(body.get("id"), body.get("sensors"))

    return {
        "message": "Data received successfully",
        "postureStatus": result["postureStatus"]
    }


@router.post("/posenet")
async def receive_posenet_data(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Receive PoseNet keypoints from the camera client"""
    body = await read_json_body(request)
    logger.log_api("POST /posenet", {"chair_id": body.get("chairId")})

    result = await pipeline.ingest_pose(body.get("chairId"), body.get("keypoints"))

    return {
        "message": "PoseNet data received successfully",
        "postureStatus": result["postureStatus"]
    }


# ============================================================================
# REAL-TIME UPDATES
# ============================================================================

@router.websocket("/ws")
async def posture_stream(websocket: WebSocket):
    """Push chairData / postureUpdate events to dashboards"""
    broadcaster: Broadcaster = websocket.app.state.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            # Client messages are ignored; receiving detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        broadcaster.disconnect(websocket)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=400, content={"error": exc.message})


async def server_error_handler(request: Request, exc: Exception):
    if isinstance(exc, PersistenceError):
        logger.log_error(f"{request.method} {request.url.path} Failed", exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


# ============================================================================
# STARTUP/SHUTDOWN
# ============================================================================

def create_store() -> PostureStore:
    """Build the configured store and make sure its tables exist"""
    engine = create_db_engine(config.DATABASE_URL)

    db_ok = test_connection(engine)
    init_ok = init_database(engine)
    if not (db_ok and init_ok):
        logger.log_warning("Database Not Ready", {"database_url": config.DATABASE_URL.split("@")[-1]})

    if config.USE_ASYNC_POOL and config.DATABASE_URL.startswith("postgresql"):
        engine.dispose()
        return AsyncpgPostureStore(config.DATABASE_URL)
    return SqlPostureStore(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and services on startup, release them on shutdown"""
    logger.log_lifecycle("STARTUP", "Initializing Smart Chair Posture Server")

    owns_store = app.state.store is None
    if owns_store:
        app.state.store = create_store()
        app.state.pipeline = IngestionPipeline(
            registry=app.state.registry,
            store=app.state.store,
            broadcaster=app.state.broadcaster
        )

    logger.log_success("Server Ready", {
        "store": type(app.state.store).__name__,
        "port": config.PORT
    })

    yield

    logger.log_lifecycle("SHUTDOWN", "Stopping all services")
    if owns_store:
        try:
            await app.state.store.close()
            logger.log_success("Store Closed", {})
        except Exception as e:
            logger.log_error("Store Close Failed", e)


def create_app(store: Optional[PostureStore] = None,
               registry: Optional[ChairRegistry] = None,
               broadcaster: Optional[Broadcaster] = None) -> FastAPI:
    """
    Application factory
    
    When no store is given the configured one is created on startup.
    """
    app = FastAPI(
        title="Smart Chair Posture API",
        description="Pressure sensor + PoseNet posture classification with live updates",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.registry = registry if registry is not None else ChairRegistry()
    app.state.broadcaster = broadcaster if broadcaster is not None else Broadcaster()
    app.state.store = store
    app.state.pipeline = None
    if store is not None:
        app.state.pipeline = IngestionPipeline(
            registry=app.state.registry,
            store=store,
            broadcaster=app.state.broadcaster
        )

    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(IngestionError, server_error_handler)
    app.add_exception_handler(PersistenceError, server_error_handler)

    app.include_router(router)
    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run("smartchair.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
