# barberbook/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI

from barberbook.config import configure_logging
from barberbook.db import init_db
from barberbook.errors import register_error_handlers
from barberbook.routers import appointments_routes, availability_routes, schedules_routes, users_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="barberbook", lifespan=lifespan if use_lifespan else None)
    register_error_handlers(app)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    app.include_router(users_routes.router)
    app.include_router(availability_routes.router)
    app.include_router(schedules_routes.router)
    app.include_router(appointments_routes.router)
    return app


app = create_app()
