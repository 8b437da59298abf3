from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
from app.utils.supabase_client_handlers import create_supabase_client, close_supabase_client
from app.configs.app_settings import settings
from app.realtime.connection_registry import ConnectionRegistry
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.stores.memory_store import InMemoryEntityStore
from app.stores.supabase_store import SupabaseEntityStore
from app.routes.gig_routes import gig_router
from app.routes.bid_routes import bid_router
from app.routes.hire_routes import hire_router
from app.routes.message_routes import message_router
from app.routes.realtime_routes import realtime_router
from app.routes.clerk_webhook_routes import clerk_webhook_router
import logging

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # before yield = startup
    if settings.ENTITY_STORE_BACKEND == "memory":
        app.state.entity_store = InMemoryEntityStore()
        logger.info("✅ In-memory entity store initialized")
    else:
        supabase_client = await create_supabase_client()
        app.state.entity_store = SupabaseEntityStore(supabase_client)
        logger.info("✅ Supabase async client initialized")

    # one registry per app, handed to everything through app.state
    app.state.connection_registry = ConnectionRegistry()
    app.state.notification_dispatcher = NotificationDispatcher(app.state.connection_registry)

    yield
    # after yield = shutdown
    await app.state.notification_dispatcher.drain()
    if settings.ENTITY_STORE_BACKEND != "memory":
        await close_supabase_client()
        logger.info("✅ Supabase client closed")


app = FastAPI(title="GigFlow API", version="1.0.0", lifespan=lifespan)


# Global handler for request validation errors (form fields, query and path params)
@app.exception_handler(RequestValidationError)
async def custom_request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.info(f"Request validation failed on {request.url.path}")
    return JSONResponse(status_code=400, content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())})


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_DOMAIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(gig_router, prefix=settings.API_V1_STR)
app.include_router(bid_router, prefix=settings.API_V1_STR)
app.include_router(hire_router, prefix=settings.API_V1_STR)
app.include_router(message_router, prefix=settings.API_V1_STR)
app.include_router(realtime_router, prefix=settings.API_V1_STR)
app.include_router(clerk_webhook_router, prefix=settings.API_V1_STR)


@app.get(f"{settings.API_V1_STR}/health")
async def health():
    return {"status": "OK", "message": "GigFlow API is running"}


@app.get("/")
async def root():
    return {"message": "Welcome to GigFlow API"}
