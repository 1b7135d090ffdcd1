from fastapi import FastAPI

from habitflow.api.routers.habits import router as habits_router
from habitflow.api.routers.mood import router as mood_router
from habitflow.api.routers.profile import router as profile_router
from habitflow.logging_utils import configure_logging
from habitflow.settings import settings


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    app = FastAPI(title="Habitflow API")

    app.include_router(habits_router)
    app.include_router(profile_router)
    app.include_router(mood_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
