"""FastAPI application entrypoint for specgraph service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..diff_engine import IncrementalValidator
from ..git.revision import GitRevisionSource, RevisionError
from ..pipeline import Pipeline
from ..reporting import count_errors


class ValidateRequest(BaseModel):
    path: str
    exclude_paths: List[str] = []


class DiffRequest(BaseModel):
    path: str
    target_branch: str
    source_branch: str = "HEAD"
    exclude_paths: List[str] = []


class FindingsResponse(BaseModel):
    status: str
    errors: int
    findings: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: str


def _default_pipeline() -> Pipeline:
    return Pipeline()


def _default_revisions(path: str, target: str, source: str) -> GitRevisionSource:
    return GitRevisionSource(path, target, source)


def create_app(
    pipeline_factory: Callable[[], Pipeline] = _default_pipeline,
    revisions_factory: Callable[[str, str, str], Any] = _default_revisions,
) -> FastAPI:
    """Create the FastAPI application exposing specgraph operations."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install specgraph[service]`."
        )

    app = FastAPI(title="specgraph service", version="1.0.0")

    async def get_pipeline() -> Pipeline:
        # A fresh pipeline per request keeps traversal state isolated.
        return pipeline_factory()

    async def _in_executor(func: Callable[[], Any]) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:  # pragma: no cover
            return func()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/validate", response_model=FindingsResponse)
    async def validate(
        payload: ValidateRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> FindingsResponse:
        def _run() -> List[Any]:
            return pipeline.validate_dir(payload.path, payload.exclude_paths, missing_ok=False).values()

        findings = await _in_executor(_run)
        return _response(findings)

    @app.post("/diff", response_model=FindingsResponse)
    async def diff(
        payload: DiffRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> FindingsResponse:
        def _run() -> List[Any]:
            revisions = revisions_factory(payload.path, payload.target_branch, payload.source_branch)
            return list(IncrementalValidator(pipeline).run(revisions, payload.exclude_paths))

        findings = await _in_executor(_run)
        return _response(findings)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(
        _: Any, exc: NotADirectoryError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RevisionError)
    async def revision_error_handler(
        _: Any, exc: RevisionError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _response(findings: List[Any]) -> "FindingsResponse":
    return FindingsResponse(
        status="ok",
        errors=count_errors(findings),
        findings=[finding.to_dict() for finding in findings],
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install specgraph[service]`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
