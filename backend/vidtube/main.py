from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import install_exception_handlers
from .routes_auth import router as auth_router
from .routes_comments import router as comments_router
from .routes_dashboard import router as dashboard_router
from .routes_likes import router as likes_router
from .routes_playlists import router as playlists_router
from .routes_subscriptions import router as subscriptions_router
from .routes_tweets import router as tweets_router
from .routes_users import router as users_router
from .routes_videos import router as videos_router
from .settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("vidtube")

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(videos_router)
app.include_router(comments_router)
app.include_router(likes_router)
app.include_router(tweets_router)
app.include_router(playlists_router)
app.include_router(subscriptions_router)
app.include_router(dashboard_router)

logger.info(f"[startup] {settings.app_name} configured for environment={settings.environment}")
