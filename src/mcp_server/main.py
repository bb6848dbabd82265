"""MCP Server - FastAPI Application.

Serves the components found by the registry over HTTP: listings with
cursor pagination, tool calls, resource reads and prompt rendering.
Components are loaded once, in the application lifespan.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from mcp_server.wiring import describe_prompt, describe_resource, describe_tool
from registry import ComponentRegistry
from shared.config import Settings, get_settings
from shared.errors import InvalidCursorError, RegistryItemLoadError
from shared.logging import get_logger, setup_logging
from shared.models import ComponentKind
from shared.schema import validate_schema

logger = get_logger(__name__)


# Request/Response Models
class ToolCallRequest(BaseModel):
    """Arguments for a tool call."""
    arguments: dict[str, Any] = Field(default_factory=dict)


class PromptGetRequest(BaseModel):
    """Arguments for rendering a prompt."""
    arguments: dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    name: str
    version: str
    state: str
    tools: int
    resources: int
    prompts: int


def get_registry(request: Request) -> ComponentRegistry:
    """Dependency returning the application's registry."""
    return request.app.state.registry


def _page(
    request: Request,
    registry: ComponentRegistry,
    kind: ComponentKind,
    cursor: Optional[str],
) -> tuple[list[Any], Optional[str]]:
    settings: Settings = request.app.state.settings
    try:
        return registry.list_page(kind, cursor, settings.server.page_size)
    except InvalidCursorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ComponentRegistry] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        settings: Application settings (defaults to ``get_settings()``)
        registry: Registry to serve; one is built from the settings if omitted

    Returns:
        FastAPI application whose lifespan runs the load pass
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or get_settings()
        setup_logging(app_settings.log_level, json_output=app_settings.environment == "production")
        logger.info("Starting MCP Server", name=app_settings.server.name)

        app_registry = registry or ComponentRegistry(app_settings.registry)
        result = await app_registry.load_all(app_settings.autoload)

        app.state.settings = app_settings
        app.state.registry = app_registry
        stats = app_registry.stats
        logger.info(
            "MCP Server started",
            tools=stats.tools,
            resources=stats.resources,
            prompts=stats.prompts,
            errors=len(result.errors),
        )

        yield

        logger.info("Shutting down MCP Server")
        app_registry.close()

    app = FastAPI(
        title="MCP Server",
        description="Convention-driven MCP component server",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request, registry: ComponentRegistry = Depends(get_registry)):
        """Health check endpoint."""
        app_settings: Settings = request.app.state.settings
        stats = registry.stats
        return HealthResponse(
            status="healthy",
            name=app_settings.server.name,
            version=app_settings.server.version,
            state=registry.state.value,
            tools=stats.tools,
            resources=stats.resources,
            prompts=stats.prompts,
        )

    @app.get("/tools", tags=["Tools"])
    async def list_tools(
        request: Request,
        cursor: Optional[str] = Query(default=None),
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """List tools, one page at a time."""
        tools, next_cursor = _page(request, registry, ComponentKind.TOOL, cursor)
        return {"tools": [describe_tool(t) for t in tools], "nextCursor": next_cursor}

    @app.post("/tools/{tool_name}/call", tags=["Tools"])
    async def call_tool(
        tool_name: str,
        body: ToolCallRequest,
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """
        Execute a tool.

        Arguments are validated against the tool's input schema first;
        handler failures come back as ``isError`` results, not HTTP errors.
        """
        tool = registry.get_tool(tool_name)
        if tool is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Tool '{tool_name}' not found",
            )

        is_valid, errors = validate_schema(body.arguments, tool.input_schema)
        if not is_valid:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"message": "Invalid tool arguments", "errors": errors},
            )

        result = await tool.call(body.arguments)
        logger.info("Tool called", tool=tool_name, is_error=result.is_error)
        return result.model_dump(by_alias=True)

    @app.get("/resources", tags=["Resources"])
    async def list_resources(
        request: Request,
        cursor: Optional[str] = Query(default=None),
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """List resources, one page at a time."""
        resources, next_cursor = _page(request, registry, ComponentKind.RESOURCE, cursor)
        return {"resources": [describe_resource(r) for r in resources], "nextCursor": next_cursor}

    @app.get("/resources/read", tags=["Resources"])
    async def read_resource(
        uri: str = Query(...),
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """Read a resource's content by uri."""
        resource = registry.get_resource(uri)
        if resource is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Resource '{uri}' not found",
            )

        try:
            text = await resource.read()
        except Exception as e:
            error = RegistryItemLoadError("resource", uri, str(e))
            logger.error("Resource read failed", uri=uri, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(error),
            ) from e

        entry: dict[str, Any] = {"uri": resource.uri, "text": text}
        mime_type = resource.mime_type or resource.content_type
        if mime_type:
            entry["mimeType"] = mime_type
        return {"contents": [entry]}

    @app.get("/prompts", tags=["Prompts"])
    async def list_prompts(
        request: Request,
        cursor: Optional[str] = Query(default=None),
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """List prompts, one page at a time."""
        prompts, next_cursor = _page(request, registry, ComponentKind.PROMPT, cursor)
        return {"prompts": [describe_prompt(p) for p in prompts], "nextCursor": next_cursor}

    @app.post("/prompts/{prompt_name}/get", tags=["Prompts"])
    async def get_prompt(
        prompt_name: str,
        body: PromptGetRequest,
        registry: ComponentRegistry = Depends(get_registry),
    ):
        """Render a prompt with the given arguments."""
        prompt = registry.get_prompt(prompt_name)
        if prompt is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Prompt '{prompt_name}' not found",
            )

        try:
            messages = await prompt.render(body.arguments)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e),
            ) from e

        return {
            "description": prompt.description,
            "messages": [m.model_dump() for m in messages],
        }

    return app


app = create_app()


def main():
    """Run the MCP Server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mcp_server.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
