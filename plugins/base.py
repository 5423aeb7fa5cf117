"""
Plugin descriptors and the context threaded through lifecycle hooks
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Hook(str, Enum):
    """Checkout lifecycle points a plugin can attach to"""

    BEFORE_CHECKOUT_INIT = "beforeCheckoutInit"
    BEFORE_PAYMENT = "beforePayment"
    AFTER_PAYMENT_SUCCESS = "afterPaymentSuccess"
    AFTER_PAYMENT_FAILURE = "afterPaymentFailure"
    ON_VALIDATION = "onValidation"


class PluginContext(BaseModel):
    """Tenant, session and a partial view of the checkout session"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tenant_id: str
    session_id: str
    checkout_data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def cart(self) -> Dict[str, Any]:
        return self.checkout_data.get("cart") or {}

    @property
    def shipping_address(self) -> Dict[str, Any]:
        return self.checkout_data.get("shippingAddress") or {}


@dataclass
class ValidationResult:
    """Outcome of an onValidation hook or of the aggregated validation run"""

    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))


HookFunction = Callable[[PluginContext], Awaitable[Any]]


@dataclass
class Plugin:
    """
    Named, versioned extension

    ``hooks`` maps each lifecycle point the plugin handles to an async
    callable. The declared hooks are the plugin's capabilities; the manager
    only dispatches a hook to plugins that declare it.
    """

    name: str
    version: str
    hooks: Dict[Hook, HookFunction] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self):
        self.hooks = {Hook(hook): fn for hook, fn in self.hooks.items()}

    @property
    def capabilities(self) -> FrozenSet[Hook]:
        return frozenset(self.hooks)

    def supports(self, hook: Hook) -> bool:
        return hook in self.hooks

    def get_hook(self, hook: Hook) -> HookFunction:
        return self.hooks[hook]

    def describe(self) -> Dict[str, Any]:
        """Serializable summary used by the internal plugin listing"""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "capabilities": sorted(hook.value for hook in self.capabilities),
        }
