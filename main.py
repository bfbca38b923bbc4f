import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import CORS_ORIGINS, LOG_LEVEL, PORT, RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS, is_production
from database import db, ensure_indexes, get_db
from ratelimit import RateLimiter
from routers import comments, hairstyles, notifications, posts, salons, users

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("cutmatch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(db)
    except PyMongoError as e:
        logger.error("Could not create indexes: %s", e)
    yield


# App setup
app = FastAPI(title="Cut Match API", lifespan=lifespan)

limiter = RateLimiter(RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


# Middleware
@app.middleware("http")
async def rate_limit(request: Request, call_next):
    if not request.url.path.startswith("/api"):
        return await call_next(request)
    client = request.client.host if request.client else "unknown"
    allowed, remaining, reset = limiter.hit(client)
    headers = limiter.headers(remaining, reset)
    if not allowed:
        logger.warning("Rate limit exceeded for %s", client)
        return JSONResponse(
            status_code=429,
            content={"message": "Too many requests from this IP, please try again after 15 minutes"},
            headers=headers,
        )
    response = await call_next(request)
    response.headers.update(headers)
    return response


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path,
                response.status_code, (time.perf_counter() - start) * 1000)
    return response


# Added last so it wraps the middlewares above, including 429 responses.
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error formatting
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={
        "message": "Invalid request data",
        "errors": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
    })


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception):
    # Served by ServerErrorMiddleware, outside the http middlewares.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={
        "message": str(exc) or exc.__class__.__name__,
        "stack": None if is_production() else "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }, headers=SECURITY_HEADERS)


app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(hairstyles.router)
app.include_router(salons.router)
app.include_router(notifications.router)


# Routes
@app.get("/")
def root():
    return {"message": "Cut Match API"}


@app.get("/test")
def test_database(database=Depends(get_db)):
    try:
        collections = database.list_collection_names()
        return {"backend": "ok", "database": "ok", "collections": collections}
    except Exception as e:
        return {"backend": "ok", "database": f"error: {str(e)[:80]}"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
