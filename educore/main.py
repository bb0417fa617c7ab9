import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from educore.api.v1.aggregation.router import router as aggregation_router
from educore.api.v1.fee_types.router import router as fee_types_router
from educore.api.v1.fees.router import router as fees_router
from educore.api.v1.grading.router import router as grading_router
from educore.api.v1.reports.router import router as reports_router
from educore.core.config import settings

# Registers auth.users / auth.roles on Base.metadata (attendance.marked_by points at auth.users)
import educore.auth.models  # noqa: F401


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="EduCore School Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(fee_types_router)
    app.include_router(fees_router)
    app.include_router(grading_router)
    app.include_router(aggregation_router)
    app.include_router(reports_router)

    return app


app = create_app()
