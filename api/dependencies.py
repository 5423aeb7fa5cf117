"""
API dependencies

Process-wide collaborators are built once by the application lifespan and
kept on ``app.state``; these accessors hand them to route handlers.
"""
from typing import Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request

from checkout.payments import PaymentService
from core.exceptions import ConfigurationError, ValidationError
from gateway.linkbay import LinkBayClient
from gateway.stripe_client import StripeGateway
from plugins.manager import PluginManager

ModelT = TypeVar("ModelT", bound=BaseModel)


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise ConfigurationError(f"{name} is not initialised", setting=name)
    return value


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared HTTP client, opened and closed by the lifespan"""
    return _state(request, "http_client")


def get_core_api(request: Request) -> LinkBayClient:
    return _state(request, "core_api")


def get_plugin_manager(request: Request) -> PluginManager:
    return _state(request, "plugin_manager")


def get_stripe_gateway(request: Request) -> StripeGateway:
    return _state(request, "stripe_gateway")


def get_payment_service(request: Request) -> PaymentService:
    return PaymentService(
        core_api=get_core_api(request),
        plugin_manager=get_plugin_manager(request),
        http_client=get_http_client(request),
        stripe_gateway=get_stripe_gateway(request),
    )


async def parse_body(request: Request, model: Type[ModelT]) -> ModelT:
    """
    Parse the JSON body into ``model``

    Raises:
        ValidationError: body is not JSON or does not match the model
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise ValidationError("Invalid request body", errors=errors) from e
