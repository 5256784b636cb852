from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ...config import build_intake_config
from ...errors import OrderSubmissionError
from ...logging import get_logger
from ...paths import find_project_root
from ..service import OrderExtractionService, build_service


LOG = get_logger("intake-frontend")


async def _json_object(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _require_text(payload: Dict[str, Any]) -> str:
    text = payload.get("text")
    if not isinstance(text, str):
        raise HTTPException(status_code=400, detail="Field 'text' must be a string")
    return text


def _optional_object(payload: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail=f"Field '{key}' must be an object")
    return value


async def _json_http_error(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)


def create_app(
    service: Optional[OrderExtractionService] = None,
    *,
    root_dir: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing analyze/confirm over one intake session."""

    if service is None:
        project_root = find_project_root(root_dir)
        service = build_service(build_intake_config(script_dir=project_root))

    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "pattern_store": service.repository.location,
                "patterns": len(service.store),
                "catalog": len(service.catalog),
            }
        )

    async def analyze(request: Request) -> JSONResponse:
        payload = await _json_object(request)
        analysis = service.analyze(_require_text(payload))
        return JSONResponse(analysis.to_dict())

    async def confirm(request: Request) -> JSONResponse:
        payload = await _json_object(request)
        text = _require_text(payload)
        mapping = _optional_object(payload, "mapping")
        overrides = _optional_object(payload, "overrides")
        try:
            result = service.confirm(text, mapping, overrides)
        except OrderSubmissionError as exc:
            LOG.error("Confirm failed: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return JSONResponse(result.to_dict())

    async def patterns(_: Request) -> JSONResponse:
        return JSONResponse(service.store.to_dict())

    async def catalog(_: Request) -> JSONResponse:
        return JSONResponse([asdict(p) for p in service.catalog])

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/analyze", analyze, methods=["POST"]),
        Route("/api/confirm", confirm, methods=["POST"]),
        Route("/api/patterns", patterns, methods=["GET"]),
        Route("/api/catalog", catalog, methods=["GET"]),
    ]

    app = Starlette(debug=False, routes=routes, exception_handlers={HTTPException: _json_http_error})

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    if "*" in origins:
        cors_allow_origins = ["*"]
    else:
        cors_allow_origins = origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


__all__ = ["create_app"]
