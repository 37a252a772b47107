"""FastAPI application streaming onboarding runs as Server-Sent Events."""

from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from repo_onboarding import __version__
from repo_onboarding.config import Settings
from repo_onboarding.logging import get_logger
from repo_onboarding.pipeline import SSE_DONE, OnboardingPipeline, build_pipeline, encode_sse

logger = get_logger("server")

PipelineFactory = Callable[[], OnboardingPipeline]


class OnboardingRequest(BaseModel):
    owner: str = ""
    repo: str = ""


class HealthResponse(BaseModel):
    status: str
    version: str


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _default_pipeline() -> OnboardingPipeline:
    return build_pipeline(Settings.from_env())


def create_app(pipeline_factory: PipelineFactory = _default_pipeline) -> FastAPI:
    """Create the FastAPI application exposing the onboarding stream."""
    app = FastAPI(title="Repository Onboarding Service", version=__version__)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/api/onboarding", response_model=None)
    async def onboarding(
        payload: OnboardingRequest,
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ) -> StreamingResponse | JSONResponse:
        token = _bearer_token(authorization)
        if token is None:
            return JSONResponse(
                status_code=401,
                content={"error": "GitHub authentication required"},
            )

        # A fresh pipeline per request keeps runs isolated.
        pipeline = pipeline_factory()
        logger.info("Starting onboarding stream for %s/%s", payload.owner, payload.repo)

        async def stream() -> AsyncIterator[str]:
            events = pipeline.start_analysis(
                payload.owner, payload.repo, token, is_disconnected=request.is_disconnected
            )
            try:
                async for event in events:
                    yield encode_sse(event)
            finally:
                await events.aclose()
            if not await request.is_disconnected():
                yield SSE_DONE

        return StreamingResponse(
            stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
