"""
Plugin hooks around checkout session transitions
"""
from typing import Optional

from checkout.models import CheckoutSession, CheckoutStatus
from checkout.session import CheckoutSessionStore
from core.exceptions import CheckoutValidationError
from core.logging import get_logger
from plugins.base import PluginContext
from plugins.manager import PluginManager

logger = get_logger("checkout.lifecycle", domain="checkout")


def build_plugin_context(session: CheckoutSession) -> PluginContext:
    """Context handed to plugins: tenant, session id and the session itself"""
    return PluginContext(
        tenant_id=session.tenant_id,
        session_id=session.id,
        checkout_data=session.to_wire(),
    )


async def begin_checkout(store: CheckoutSessionStore, manager: PluginManager) -> CheckoutSession:
    """Load the session and let plugins annotate it before checkout starts"""
    session = store.session or store.load()
    context = await manager.execute_before_checkout_init(build_plugin_context(session))
    return _merge_plugin_metadata(store, context)


async def prepare_payment(store: CheckoutSessionStore, manager: PluginManager) -> PluginContext:
    """
    Validate the session with plugins and run the pre-payment hooks

    Raises:
        CheckoutValidationError: a plugin rejected the checkout; the session
            is marked failed
    """
    session = store.session or store.load()

    validation = await manager.execute_on_validation(build_plugin_context(session))
    if not validation.valid:
        store.set_status(CheckoutStatus.FAILED)
        logger.info(f"Checkout {session.id} rejected by plugins: {validation.errors}")
        raise CheckoutValidationError(validation.errors)

    context = await manager.execute_before_payment(build_plugin_context(session))
    _merge_plugin_metadata(store, context)
    store.set_status(CheckoutStatus.PROCESSING)
    return context


async def complete_payment(
    store: CheckoutSessionStore,
    manager: PluginManager,
    succeeded: bool,
    context: Optional[PluginContext] = None,
) -> CheckoutSession:
    """Record the payment outcome and notify the after-payment hooks"""
    session = store.set_status(CheckoutStatus.COMPLETED if succeeded else CheckoutStatus.FAILED)
    context = context or build_plugin_context(session)

    if succeeded:
        await manager.execute_after_payment_success(context)
    else:
        await manager.execute_after_payment_failure(context)

    return session


def _merge_plugin_metadata(store: CheckoutSessionStore, context: PluginContext) -> CheckoutSession:
    metadata = context.checkout_data.get("metadata")
    if isinstance(metadata, dict) and metadata:
        return store.update_metadata(metadata)
    return store.session
