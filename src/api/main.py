"""
API Service - Main entry point.
FastAPI application exposing analysis, cover letters and the BaaS-backed screens.
"""

from contextlib import asynccontextmanager
from typing import Optional

import click
import uvicorn
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from matcher.batch import run_batch
from shared.config import Settings, get_settings
from shared.errors import MatchAIError, RateLimited
from shared.logging_config import setup_logging
from shared.models import (
    AnalysisRequest,
    BatchRequest,
    CoverLetterRequest,
    ExplainLetterRequest,
    FeedbackStatusUpdate,
    FeedbackSubmission,
    Principal,
    QuotaStatus,
    RefineLetterRequest,
    SavedLetterCreate,
)

from .deps import Services, get_optional_principal, get_principal, get_services, require_admin


async def handle_matchai_error(request: Request, exc: MatchAIError) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Build the application; ``services`` replaces the production wiring."""
    settings = settings or get_settings()
    services = services or Services.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.baas.close()

    app = FastAPI(title="MatchAI API", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MatchAIError, handle_matchai_error)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    # ---------------------------------------------------------------------
    # Analysis
    # ---------------------------------------------------------------------

    @app.post("/analyze")
    async def analyze(
        body: AnalysisRequest,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ) -> JSONResponse:
        result = await services.invoker.run_analysis(principal, body)
        return JSONResponse(result.model_dump(mode="json", by_alias=True))

    @app.get("/quota", response_model=QuotaStatus)
    async def quota(
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ) -> QuotaStatus:
        return await services.gate.status(principal)

    @app.post("/dashboard/batch")
    async def dashboard_batch(
        body: BatchRequest,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ) -> JSONResponse:
        report = await run_batch(services.invoker, principal, body)
        return JSONResponse(report.model_dump(mode="json", by_alias=True))

    # ---------------------------------------------------------------------
    # Cover letters
    # ---------------------------------------------------------------------

    @app.post("/cover-letters")
    async def generate_cover_letter(
        body: CoverLetterRequest,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ):
        return await services.writer.generate(body)

    @app.post("/cover-letters/refine")
    async def refine_cover_letter(
        body: RefineLetterRequest,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ):
        return await services.writer.refine(body)

    @app.post("/cover-letters/explain")
    async def explain_cover_letter(
        body: ExplainLetterRequest,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ):
        return await services.writer.explain(body)

    # ---------------------------------------------------------------------
    # Saved letters
    # ---------------------------------------------------------------------

    @app.get("/letters")
    async def list_letters(
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ):
        return await services.letters.list_for(principal)

    @app.post("/letters", status_code=201)
    async def save_letter(
        body: SavedLetterCreate,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ):
        return await services.letters.save(principal, body)

    @app.delete("/letters/{letter_id}", status_code=204)
    async def delete_letter(
        letter_id: str,
        principal: Principal = Depends(get_principal),
        services: Services = Depends(get_services),
    ) -> Response:
        await services.letters.delete(principal, letter_id)
        return Response(status_code=204)

    # ---------------------------------------------------------------------
    # Feedback and admin
    # ---------------------------------------------------------------------

    @app.post("/feedback", status_code=201)
    async def submit_feedback(
        body: FeedbackSubmission,
        principal: Optional[Principal] = Depends(get_optional_principal),
        services: Services = Depends(get_services),
    ):
        return await services.feedback.submit(body, principal)

    @app.get("/admin/feedback")
    async def list_feedback(
        admin: Principal = Depends(require_admin),
        services: Services = Depends(get_services),
    ):
        return await services.feedback.list_all()

    @app.patch("/admin/feedback/{feedback_id}")
    async def update_feedback(
        feedback_id: str,
        body: FeedbackStatusUpdate,
        admin: Principal = Depends(require_admin),
        services: Services = Depends(get_services),
    ):
        return await services.feedback.update_status(feedback_id, body.status)

    @app.get("/admin/roles")
    async def list_roles(
        admin: Principal = Depends(require_admin),
        services: Services = Depends(get_services),
    ):
        return await services.roles.list_roles()

    return app


@click.command()
@click.option("--host", "-h", default=None, help="Bind address (default: API_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: API_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def main(host: Optional[str], port: Optional[int], reload: bool):
    """MatchAI API - Serves CV matching and cover letters over HTTP."""
    settings = get_settings()
    setup_logging(settings)

    host = host or settings.api_host
    port = port or settings.api_port
    logger.info(f"Starting API on {host}:{port}")

    if reload:
        uvicorn.run("api.main:create_app", factory=True, host=host, port=port, reload=True)
    else:
        uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    main()
