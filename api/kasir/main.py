import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kasir.core.config import settings
from kasir.core.errors import register_error_handlers
from kasir.db.schema import create_schema
from kasir.db.session import SessionLocal, engine
from kasir.routers import auth, catalog, customers, installments, reports, sales, service, users
from kasir.routers import settings as settings_router
from kasir.services.users import ensure_admin

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.auto_create_schema:
        create_schema(engine)
    with SessionLocal() as db:
        ensure_admin(db, settings.admin_email, settings.admin_password, settings.admin_full_name)
    logger.info("Kasir API started")
    yield


app = FastAPI(title="Kasir API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(catalog.router)
app.include_router(customers.router)
app.include_router(sales.router)
app.include_router(service.router)
app.include_router(installments.router)
app.include_router(reports.router)
app.include_router(settings_router.router)


@app.get("/health")
def health():
    return {"status": "ok"}
