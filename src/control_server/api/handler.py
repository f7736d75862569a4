"""
Control Server API Handler
==========================

FastAPI application serving the user API behind GitHub login.

For On-Call Engineers:
    If logins fail for everyone:
    1. Check GITHUB_SECRET is set and matches the GitHub OAuth app
    2. Check GITHUB_REDIRECT_URL matches the OAuth app callback exactly
    3. Check SESSION_SECRET is stable across instances

    If every protected route returns 401, the session cookie is not coming
    back: check the cookie name, SameSite and HTTPS settings.

For Developers:
    - Routes and their permitted roles are declared in one RouteRegistry;
      see build_registry for the full table
    - Uses Mangum adapter for Lambda Function URL compatibility
    - create_app takes its collaborators as arguments so tests can inject an
      in-memory store and a stubbed GitHub transport

X-Ray Tracing:
    X-Ray is enabled for distributed tracing across all Lambda invocations.
"""

# X-Ray must be imported and patched before other imports
from aws_xray_sdk.core import patch_all  # noqa: E402

patch_all()

import logging  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from functools import lru_cache  # noqa: E402
from typing import Any  # noqa: E402

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from mangum import Mangum  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from src.control_server.api.images import ImageAPI  # noqa: E402
from src.control_server.api.login import LoginController  # noqa: E402
from src.control_server.api.users import UserAPI  # noqa: E402
from src.control_server.shared.auth.github import GitHubOAuthClient  # noqa: E402
from src.control_server.shared.config import AppConfig  # noqa: E402
from src.control_server.shared.dynamodb import get_table  # noqa: E402
from src.control_server.shared.errors import (  # noqa: E402
    ControlServerError,
    error_response,
)
from src.control_server.shared.routing import RouteRegistry  # noqa: E402
from src.control_server.shared.user_store import (  # noqa: E402
    DynamoUserStore,
    UserStore,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_registry(
    config: AppConfig,
    store: UserStore,
    github_client: GitHubOAuthClient,
) -> RouteRegistry:
    """Declare every route of the API, in match order."""
    registry = RouteRegistry()
    UserAPI(store).register_routes(registry)
    ImageAPI(store).register_routes(registry)
    LoginController(config.oauth, store, github_client).register_routes(registry)
    return registry


async def control_server_error_handler(
    request: Request, exc: ControlServerError
) -> JSONResponse:
    """Render any ControlServerError as ``{"detail", "code"}``.

    Registered for ControlServerError rather than Exception so it runs
    inside SessionMiddleware and session changes made before the error
    (such as a consumed OAuth state) still reach the cookie.
    """
    return JSONResponse(error_response(exc), status_code=exc.status_code)


def create_app(
    config: AppConfig,
    store: UserStore | None = None,
    github_client: GitHubOAuthClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration
        store: User store; a DynamoUserStore on config.users_table by default
        github_client: GitHub OAuth client; built from config.oauth by default

    Raises:
        InvalidRoleError, DuplicateRouteError: Route table is malformed
    """
    if store is None:
        store = DynamoUserStore(get_table(config.users_table))
    if github_client is None:
        github_client = GitHubOAuthClient(config.oauth)

    registry = build_registry(config, store, github_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Logs startup and shutdown events for monitoring.
        """
        logger.info(
            "Control server starting",
            extra={
                "environment": config.environment,
                "table": config.users_table,
                "route_count": len(registry.routes),
            },
        )
        yield
        logger.info("Control server shutting down")

    app = FastAPI(
        title="Control Server",
        description="User management API with GitHub login",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session.secret_key,
        session_cookie=config.session.cookie_name,
        max_age=config.session.max_age,
        same_site=config.session.same_site,
        https_only=config.session.https_only,
    )
    app.add_exception_handler(ControlServerError, control_server_error_handler)

    registry.mount(app)

    app.state.config = config
    app.state.registry = registry
    return app


@lru_cache(maxsize=1)
def get_app() -> FastAPI:
    """Application built from the environment, created on first use."""
    return create_app(AppConfig.from_env())


# Lambda handler function
def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda entry point.

    Wraps the FastAPI app with Mangum for Lambda Function URL compatibility.

    Args:
        event: Lambda event (API Gateway or Function URL format)
        context: Lambda context

    Returns:
        HTTP response dict
    """
    logger.info(
        "Control server Lambda invoked",
        extra={
            "path": event.get("rawPath", event.get("path", "unknown")),
            "method": event.get("requestContext", {})
            .get("http", {})
            .get("method", "unknown"),
        },
    )
    return Mangum(get_app(), lifespan="off")(event, context)
