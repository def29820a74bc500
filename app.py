from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from routers.signaling import signaling_router
from backend import membership_store
from directory import PresenceDirectory
from transport import HttpPushTransport
from logging_config import get_logger, setup_logging
from constants import LOG_FILE, LOG_LEVEL

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await membership_store.ping()
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
        raise
    transport = HttpPushTransport()
    app.state.directory = PresenceDirectory(membership_store, transport)
    logger.info("Presence directory ready")
    try:
        yield
    finally:
        await transport.close()
        await membership_store.close()
        logger.info("Presence directory stopped")


app = FastAPI(lifespan=lifespan)

# The push bridge and browsers on other origins call in here
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(signaling_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Unknown paths and methods are client errors like any other bad request
    status_code = 400 if exc.status_code in (404, 405) else exc.status_code
    if status_code != exc.status_code:
        logger.warning(f"Rejected {request.method} {request.url.path}")
    return JSONResponse({"detail": exc.detail}, status_code=status_code)


logger.info("FastAPI application initialized")
