"""
Route module resolution and mounting.

The service mounts exactly one route module under a path prefix. The module
is named by an import path of the form ``package.module:attribute``; the
attribute defaults to ``router`` and must be a FastAPI ``APIRouter``.

A route module may also expose an async ``startup(database)`` callable,
awaited once the database is connected (e.g. to create indexes).
"""

import importlib
import structlog
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, FastAPI

from api.src.config import Settings

logger = structlog.get_logger(__name__)

StartupHook = Callable[..., Awaitable[None]]


class RouteModuleError(Exception):
    """Raised when the configured route module cannot be resolved."""


@dataclass
class RouteModule:
    """A resolved route module."""
    path: str
    router: APIRouter
    startup: Optional[StartupHook] = None


def load_route_module(path: str) -> RouteModule:
    """
    Import a route module from a ``module:attribute`` path.

    Args:
        path: Import path, e.g. ``api.src.routers.users:router``

    Returns:
        Resolved route module

    Raises:
        RouteModuleError: If the module cannot be imported, or the attribute
            is missing or is not an APIRouter
    """
    module_name, _, attribute = path.partition(":")
    attribute = attribute or "router"

    if not module_name:
        raise RouteModuleError(f"Invalid route module path: {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise RouteModuleError(f"Cannot import route module {module_name!r}: {e}") from e

    router = getattr(module, attribute, None)
    if router is None:
        raise RouteModuleError(f"Route module {module_name!r} has no attribute {attribute!r}")
    if not isinstance(router, APIRouter):
        raise RouteModuleError(
            f"{path!r} is a {type(router).__name__}, expected an APIRouter"
        )

    startup = getattr(module, "startup", None)
    if startup is not None and not callable(startup):
        startup = None

    return RouteModule(path=path, router=router, startup=startup)


def load_router(path: str) -> APIRouter:
    """Import just the router from a ``module:attribute`` path."""
    return load_route_module(path).router


def mount_routes(app: FastAPI, settings: Settings) -> RouteModule:
    """
    Mount the configured route module under the configured prefix.

    Args:
        app: FastAPI application
        settings: Application settings

    Returns:
        The mounted route module
    """
    route_module = load_route_module(settings.routes_module)
    app.include_router(route_module.router, prefix=settings.routes_prefix)

    logger.info(
        "routes_mounted",
        module=settings.routes_module,
        prefix=settings.routes_prefix,
        routes=len(route_module.router.routes)
    )
    return route_module
