"""
Internal API routes for administrative functions

Protected by the Core API key; not meant to be exposed publicly.
"""
from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from api.dependencies import get_plugin_manager
from core.responses import api_response
from pipeline.chain import compose_middleware
from pipeline.middleware import api_key_middleware, logging_middleware

router = APIRouter(prefix="/internal", tags=["internal"])


async def handle_list_plugins(request: Request) -> Response:
    plugins = get_plugin_manager(request).get_plugins()
    return api_response(
        {
            "count": len(plugins),
            "plugins": [plugin.describe() for plugin in plugins],
        }
    )


_list_plugins = compose_middleware(logging_middleware, api_key_middleware)(handle_list_plugins)


@router.get("/plugins")
async def list_plugins(request: Request) -> Response:
    """Registered plugins in execution order, with their capabilities"""
    return await _list_plugins(request)
