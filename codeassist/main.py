"""codeassist: FastAPI app forwarding code prompts to DeepSeek.

Loads config.yaml on startup. Exposes /api/process for refactor/debug/
comment/generate requests, /api/register and /api/login for accounts,
/api/history for per-user request logs, and serves the static pages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from codeassist.accounts import AccountService, InMemoryUserStore, MongoUserStore, UserStore
from codeassist.config import AppConfig, load_config
from codeassist.errors import (
    CodeAssistError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PersistenceError,
)
from codeassist.history import HistoryStore, InMemoryHistoryStore, MongoHistoryStore
from codeassist.pipeline.client import DeepSeekClient, ModelClient
from codeassist.pipeline.handler import ProcessHandler
from codeassist.schemas import Credentials, HistoryEntry, ProcessRequest

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROCESS_ERROR = {"error": "Error processing request"}
SERVER_ERROR = {"message": "server error"}
USERNAME_EXISTS = {"message": "username exists"}
INVALID_CREDENTIALS = {"message": "invalid credentials"}


# ---------------------------------------------------------------------------
# Lifespan & wiring
# ---------------------------------------------------------------------------


def _mongo_client(config: AppConfig) -> AsyncMongoClient:
    # History timestamps read back as UTC-aware datetimes
    return AsyncMongoClient(
        config.mongo.uri,
        serverSelectionTimeoutMS=config.mongo.server_selection_timeout_ms,
        tz_aware=True,
    )


async def _connect_mongo(config: AppConfig) -> AsyncMongoClient:
    client = _mongo_client(config)
    try:
        await client.admin.command("ping")
        logger.info("Connected to MongoDB")
    except PyMongoError as e:
        # Keep serving; account and history calls will fail with PersistenceError
        logger.error(f"MongoDB connection error: {e}")
    return client


async def _ensure_indexes(*stores) -> None:
    for store in stores:
        try:
            await store.ensure_indexes()
        except PersistenceError as e:
            logger.error(f"Index setup failed: {e}")


def create_app(
    config: AppConfig,
    *,
    model_client: ModelClient | None = None,
    history: HistoryStore | None = None,
    users: UserStore | None = None,
) -> FastAPI:
    """Build the application. Collaborators not passed in are created from config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mongo: AsyncMongoClient | None = None
        db = None
        needs_mongo = (users is None and config.accounts.backend == "mongo") or (
            history is None and config.history.backend == "mongo"
        )
        if needs_mongo:
            mongo = await _connect_mongo(config)
            db = mongo.get_default_database(default=config.mongo.database)

        user_store = users
        if user_store is None:
            if config.accounts.backend == "mongo":
                user_store = MongoUserStore(db[config.mongo.users_collection])
                await _ensure_indexes(user_store)
            else:
                user_store = InMemoryUserStore()

        history_store = history
        if history_store is None:
            if config.history.backend == "mongo":
                history_store = MongoHistoryStore(db[config.mongo.history_collection])
                await _ensure_indexes(history_store)
            else:
                history_store = InMemoryHistoryStore()

        app.state.config = config
        app.state.accounts = AccountService(user_store, config.accounts.bcrypt_rounds)
        app.state.history = history_store
        app.state.handler = ProcessHandler(
            model_client or DeepSeekClient(config),
            history_store,
            locale=config.pipeline.locale,
            timeout=config.model.timeout,
        )
        logger.info(
            f"codeassist started (model={config.model.name}, "
            f"accounts={config.accounts.backend}, history={config.history.backend}, "
            f"origins={config.server.allowed_origins})"
        )
        yield
        if mongo is not None:
            await mongo.close()
        logger.info("codeassist shutting down")

    app = FastAPI(title="codeassist", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(_router(config))
    app.mount(
        "/",
        StaticFiles(directory=config.static_path(), check_dir=False),
        name="static",
    )
    return app


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_handler(request: Request) -> ProcessHandler:
    return request.app.state.handler


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_history(request: Request) -> HistoryStore:
    return request.app.state.history


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _router(config: AppConfig) -> APIRouter:
    router = APIRouter()

    @router.get("/", include_in_schema=False)
    async def index():
        return RedirectResponse(config.server.landing_page, status_code=302)

    @router.get("/health")
    async def health():
        """Liveness check."""
        return {
            "status": "healthy",
            "model": config.model.name,
            "history_backend": config.history.backend,
        }

    @router.post("/api/process")
    async def process(
        body: ProcessRequest, handler: ProcessHandler = Depends(get_handler)
    ):
        """Run the prompt pipeline and return the formatted answer as a JSON string."""
        logger.info(
            f"Received request: action={body.action!r}, username={body.username!r}"
        )
        try:
            formatted = await handler.process(body)
        except Exception as e:
            logger.error(f"Error processing request: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=PROCESS_ERROR)

        preview = formatted[:200] + ("..." if len(formatted) > 200 else "")
        logger.info(f"API response: {preview}")
        return formatted

    @router.post("/api/register")
    async def register(
        body: Credentials, accounts: AccountService = Depends(get_accounts)
    ):
        try:
            await accounts.register(body.username, body.password)
        except DuplicateUsernameError:
            return JSONResponse(status_code=400, content=USERNAME_EXISTS)
        except Exception as e:
            logger.error(f"Registration error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=SERVER_ERROR)
        return {"success": True}

    @router.post("/api/login")
    async def login(body: Credentials, accounts: AccountService = Depends(get_accounts)):
        try:
            await accounts.login(body.username, body.password)
        except InvalidCredentialsError:
            return JSONResponse(status_code=401, content=INVALID_CREDENTIALS)
        except Exception as e:
            logger.error(f"Login error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=SERVER_ERROR)
        return {"success": True}

    @router.get("/api/history", response_model=list[HistoryEntry])
    async def history(username: str = "", store: HistoryStore = Depends(get_history)):
        try:
            return await store.list(username)
        except CodeAssistError as e:
            logger.error(f"History lookup error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=SERVER_ERROR)

    return router


# ---------------------------------------------------------------------------
# Module-level app for uvicorn
# ---------------------------------------------------------------------------

_boot_config = load_config()
logging.getLogger().setLevel(_boot_config.server.log_level.upper())

app = create_app(_boot_config)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "codeassist.main:app",
        host=_boot_config.server.host,
        port=_boot_config.server.port,
    )
