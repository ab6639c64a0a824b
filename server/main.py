"""
Main FastAPI application for the Math Solver & 3D Surface API.
"""

import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
import sympy as sp
from lxml import etree

import math_routes
import plot3d_routes
from errors import ApiError
from schemas import HealthResponse
from settings import Settings, configure_logging, load_settings

__version__ = "1.0.0"

logger = logging.getLogger("mathsolver.api")


def _error_response(
    request: Request, status_code: int, error: str, type: str, details: Optional[Any] = None
) -> JSONResponse:
    settings: Settings = request.app.state.settings
    content: Dict[str, Any] = {
        "success": False,
        "error": error,
        "type": type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    # Internal detail is only hidden for server errors; validation detail describes the input.
    if details is not None and not (settings.is_production and status_code >= 500):
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return _error_response(request, exc.status_code, exc.error, exc.type, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("Invalid request body for %s: %s", request.url.path, exc.errors())
        return _error_response(
            request, 400, "Invalid request body", "validation", jsonable_encoder(exc.errors())
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}\n{traceback.format_exc()}")
        return _error_response(request, 500, "Internal server error", "server", str(exc))


def _register_health(app: FastAPI) -> None:
    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint with service status."""
        # Test SymPy functionality
        try:
            x = sp.Symbol('x')
            expr = x**3
            derivative = sp.diff(expr, x)
            sympy_status = f"OK - Test: d/dx {expr} -> {derivative}"
        except Exception as e:
            sympy_status = f"ERROR - {str(e)}"

        # Test lxml functionality
        try:
            root = etree.Element("math")
            etree.SubElement(root, "mi").text = "x"
            lxml_status = "OK - MathML processing available"
        except Exception as e:
            lxml_status = f"ERROR - {str(e)}"

        return HealthResponse(
            status="ok",
            message="Math solver backend running",
            services={
                "fastapi": "OK",
                "sympy": sympy_status,
                "lxml": lxml_status,
            },
        )


def _register_frontend(app: FastAPI, build_dir: Path) -> bool:
    """Serve a prebuilt single-page frontend; unknown paths fall back to index.html."""
    build_dir = build_dir.resolve()
    index = build_dir / "index.html"
    if not index.is_file():
        logger.warning("Frontend build not found at %s; serving the API only", build_dir)
        return False

    @app.get("/{full_path:path}", include_in_schema=False)
    async def frontend(full_path: str):
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (build_dir / full_path).resolve()
        if full_path and candidate.is_file() and build_dir in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(index)

    logger.info("Serving frontend build from %s", build_dir)
    return True


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Math Solver & 3D Surface API",
        description="Step-by-step expression solving and 3D surface mesh generation",
        version=__version__,
    )
    app.state.settings = settings

    # Configure CORS for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(math_routes.router)
    app.include_router(plot3d_routes.router)
    _register_health(app)

    serving_frontend = settings.is_production and _register_frontend(app, settings.frontend_build_dir)
    if not serving_frontend:
        @app.get("/")
        async def root() -> Dict[str, str]:
            """Root endpoint describing the running service."""
            return {
                "message": "Math Solver & 3D Surface API",
                "status": "running",
                "version": __version__,
            }

    return app


app = create_app()


if __name__ == "__main__":
    import sys
    import argparse
    import uvicorn

    settings = app.state.settings
    parser = argparse.ArgumentParser(
        prog="python main.py",
        description=(
            "Run the Math Solver & 3D Surface API server.\n\n"
            "Examples:\n"
            "  python main.py serve --host 0.0.0.0 --port 5000 --reload\n"
            "  python -m uvicorn main:app --reload\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="Command to execute. Use 'serve' to start the API server.",
    )
    parser.add_argument("--host", default=settings.host, help=f"Host address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port number (default: PORT or {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (development)")

    args = parser.parse_args()

    # If run with no arguments, print usage and exit without starting the server
    if args.command is None:
        print("Usage: python main.py serve [--host HOST] [--port PORT] [--reload]")
        print("Alternative: python -m uvicorn main:app --host 0.0.0.0 --port 5000 --reload")
        sys.exit(0)

    if args.command in {"serve", "run", "start"}:
        if args.reload:
            uvicorn.run("main:app", host=args.host, port=args.port, reload=True)
        else:
            uvicorn.run(app, host=args.host, port=args.port)
    else:
        print(f"Unknown command: {args.command}")
        print("Use: python main.py serve [--host HOST] [--port PORT] [--reload]")
