"""
Plugin Manager

Runs registered plugins at each checkout lifecycle hook, in registration
order. Mutation hooks (beforeCheckoutInit, beforePayment) thread the context
from one plugin to the next; observer hooks all see the same context;
validation collects errors from every plugin.
"""
import asyncio
from enum import Enum
from typing import Any, List, Optional

from core.config import Settings
from core.exceptions import PluginExecutionError
from core.logging import get_logger
from core.metrics import metrics
from plugins.base import Hook, Plugin, PluginContext, ValidationResult


class PluginErrorPolicy(str, Enum):
    """What happens when a plugin hook raises or times out"""

    CONTINUE = "continue"  # Log, discard the plugin's output, move on
    ABORT = "abort"  # Re-raise as PluginExecutionError


class PluginManager:
    """Ordered collection of plugins and the hook dispatcher"""

    def __init__(
        self,
        error_policy: PluginErrorPolicy = PluginErrorPolicy.CONTINUE,
        hook_timeout: Optional[float] = None,
    ):
        self.error_policy = PluginErrorPolicy(error_policy)
        self.hook_timeout = hook_timeout
        self._plugins: List[Plugin] = []
        self.logger = get_logger("plugins.manager", domain="plugins")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PluginManager":
        return cls(
            error_policy=PluginErrorPolicy(settings.plugin_error_policy),
            hook_timeout=settings.plugin_hook_timeout_seconds,
        )

    def register(self, plugin: Plugin) -> None:
        """Append a plugin; registering the same name twice runs it twice"""
        self.logger.info(f"Registering plugin: {plugin.name} v{plugin.version}")
        self._plugins.append(plugin)

    def unregister(self, plugin_name: str) -> None:
        """Remove every plugin registered under ``plugin_name``"""
        self._plugins = [p for p in self._plugins if p.name != plugin_name]
        self.logger.info(f"Unregistered plugin: {plugin_name}")

    def get_plugins(self) -> List[Plugin]:
        """Snapshot of the registered plugins in registration order"""
        return list(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    async def execute_before_checkout_init(self, context: PluginContext) -> PluginContext:
        return await self._run_mutation_hook(Hook.BEFORE_CHECKOUT_INIT, context)

    async def execute_before_payment(self, context: PluginContext) -> PluginContext:
        return await self._run_mutation_hook(Hook.BEFORE_PAYMENT, context)

    async def execute_after_payment_success(self, context: PluginContext) -> None:
        await self._run_observer_hook(Hook.AFTER_PAYMENT_SUCCESS, context)

    async def execute_after_payment_failure(self, context: PluginContext) -> None:
        await self._run_observer_hook(Hook.AFTER_PAYMENT_FAILURE, context)

    async def execute_on_validation(self, context: PluginContext) -> ValidationResult:
        """
        Run every onValidation hook and aggregate the errors

        Errors are kept in plugin order. A plugin that raises contributes
        ``"Plugin <name> validation failed"`` instead of its own errors.
        """
        errors: List[str] = []

        for plugin in self._plugins_for(Hook.ON_VALIDATION):
            try:
                result = self._coerce_validation(
                    await self._invoke(plugin, Hook.ON_VALIDATION, context.model_copy(deep=True))
                )
                if result is not None and not result.valid and result.errors:
                    errors.extend(result.errors)
                self.logger.debug(f"Executed {Hook.ON_VALIDATION.value} for {plugin.name}")
            except Exception as e:
                self._handle_failure(plugin, Hook.ON_VALIDATION, e)
                errors.append(f"Plugin {plugin.name} validation failed")

        return ValidationResult.from_errors(errors)

    async def _run_mutation_hook(self, hook: Hook, context: PluginContext) -> PluginContext:
        current = context.model_copy(deep=True)

        for plugin in self._plugins_for(hook):
            try:
                result = await self._invoke(plugin, hook, current.model_copy(deep=True))
                if result is not None:
                    current = self._coerce_context(result)
                self.logger.debug(f"Executed {hook.value} for {plugin.name}")
            except Exception as e:
                # Output of the failed plugin is discarded, previous context carries on
                self._handle_failure(plugin, hook, e)

        return current

    async def _run_observer_hook(self, hook: Hook, context: PluginContext) -> None:
        for plugin in self._plugins_for(hook):
            try:
                await self._invoke(plugin, hook, context.model_copy(deep=True))
                self.logger.debug(f"Executed {hook.value} for {plugin.name}")
            except Exception as e:
                self._handle_failure(plugin, hook, e)

    def _plugins_for(self, hook: Hook) -> List[Plugin]:
        return [plugin for plugin in self._plugins if plugin.supports(hook)]

    async def _invoke(self, plugin: Plugin, hook: Hook, context: PluginContext) -> Any:
        call = plugin.get_hook(hook)(context)
        if self.hook_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.hook_timeout)

    def _handle_failure(self, plugin: Plugin, hook: Hook, error: Exception) -> None:
        if isinstance(error, asyncio.TimeoutError):
            self.logger.error(f"Timeout in {plugin.name}.{hook.value} after {self.hook_timeout}s")
        else:
            self.logger.error(f"Error in {plugin.name}.{hook.value}: {error}", exc_info=True)
        metrics.track_plugin_failure(plugin.name, hook.value)

        if self.error_policy == PluginErrorPolicy.ABORT:
            raise PluginExecutionError(plugin.name, hook.value, error) from error

    @staticmethod
    def _coerce_context(result: Any) -> PluginContext:
        if isinstance(result, PluginContext):
            return result
        if isinstance(result, dict):
            return PluginContext.model_validate(result)
        raise TypeError(f"Mutation hook must return a PluginContext, got {type(result).__name__}")

    @staticmethod
    def _coerce_validation(result: Any) -> Optional[ValidationResult]:
        if result is None or isinstance(result, ValidationResult):
            return result
        if isinstance(result, dict):
            return ValidationResult(valid=bool(result.get("valid")), errors=list(result.get("errors") or []))
        raise TypeError(f"Validation hook must return a ValidationResult, got {type(result).__name__}")
