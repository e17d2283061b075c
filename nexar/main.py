import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import CORS_ORIGINS, RECORD_STORE_BACKEND
from .core.errors import NexarError
from .routes import (
    achievements,
    admin,
    auth,
    cloud,
    developer,
    friends,
    games,
    messages,
    parental,
    store,
    subscription,
    users,
    wallet,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Nexar API", version=__version__)


@app.exception_handler(NexarError)
async def nexar_error_handler(request: Request, exc: NexarError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.get("/health")
def health_check():
    return {"status": "ok", "store": RECORD_STORE_BACKEND, "version": __version__}


@app.head("/health")
def health_check_head():
    return None


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(friends.router, prefix="/friends", tags=["friends"])
app.include_router(messages.router, prefix="/messages", tags=["messages"])
app.include_router(achievements.router, prefix="/achievements", tags=["achievements"])
app.include_router(cloud.router, prefix="/cloud", tags=["cloud"])
app.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
app.include_router(parental.router, prefix="/parental", tags=["parental"])
app.include_router(subscription.router, prefix="/subscription", tags=["subscription"])
app.include_router(games.router, prefix="/games", tags=["games"])
app.include_router(developer.router, prefix="/developer", tags=["developer"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(store.router, prefix="/store", tags=["store"])
