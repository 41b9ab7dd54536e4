import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from equiptrak.api.v1.auth import router as auth_router
from equiptrak.api.v1.companies import router as companies_router
from equiptrak.api.v1.conversations import router as conversations_router
from equiptrak.api.v1.equipment import router as equipment_router
from equiptrak.api.v1.health import router as health_router
from equiptrak.api.v1.service_records import router as service_records_router
from equiptrak.core.config import settings
from equiptrak.db import models
from equiptrak.db.init_db import seed_initial_data
from equiptrak.db.session import engine

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("equiptrak")

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="EquipTrak - equipment, service records and company chat",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    models.Base.metadata.create_all(bind=engine)
    seed_initial_data()
    if settings.ENV.lower() == "production":
        if settings.SECRET_KEY == "dev-secret-change-me":
            logger.warning("SECRET_KEY is using the default value in production.")
        if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            logger.warning("SQLALCHEMY_DATABASE_URI points to SQLite in production.")


app.include_router(health_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(companies_router, prefix="/api")
app.include_router(equipment_router, prefix="/api")
app.include_router(service_records_router, prefix="/api")
app.include_router(conversations_router, prefix="/api")
