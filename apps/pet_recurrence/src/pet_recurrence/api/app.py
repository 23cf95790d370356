"""FastAPI app bootstrap for pet_recurrence."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pet_recurrence.api.error_handlers import register_error_handlers
from pet_recurrence.api.routes import v1_router
from pet_recurrence.db.session import get_db_session
from pet_recurrence.services.rule_mutations import RuleMutationChannel


def create_app(*, mutation_channel: RuleMutationChannel | None = None) -> FastAPI:
    """Create and configure FastAPI application instance."""

    app = FastAPI(
        title="Pet Recurrence API",
        version="0.1.0",
    )
    app.state.rule_mutation_channel = mutation_channel or RuleMutationChannel()

    @app.get("/health/live", include_in_schema=False)
    def health_live() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/health/ready", include_in_schema=False)
    def health_ready(
        db_session: Annotated[Session, Depends(get_db_session)],
    ) -> dict[str, str]:
        try:
            db_session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database is unavailable",
            ) from exc
        return {"status": "ready"}

    register_error_handlers(app)
    app.include_router(v1_router)
    return app


app = create_app()
