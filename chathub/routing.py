import inspect
import os
import pkgutil
import time
from dataclasses import dataclass
from importlib import import_module
from typing import Any, Awaitable, Callable

from fastapi import APIRouter
from jsonschema import ValidationError, validate

from chathub.exceptions import HubMethodError
from chathub.logging import logger
from chathub.managers.broadcast import BroadcastDispatcher
from chathub.managers.connection import HubConnection
from chathub.managers.connection_registry import ConnectionRegistry
from chathub.schemas.hub import CompletionMessage, InvocationMessage
from chathub.utils.metrics import MetricsCollector


@dataclass
class HubCallerContext:
    """
    Everything a hub method needs to know about its caller.

    Attributes:
        connection: Connection the invocation arrived on.
        registry: Registry of all live connections.
        dispatcher: Dispatcher broadcasting to the registry.
    """

    connection: HubConnection
    registry: ConnectionRegistry
    dispatcher: BroadcastDispatcher

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


HubMethodType = Callable[..., Awaitable[Any]]
JsonSchemaType = dict[str, Any]


class HubMethodRouter:
    """
    Router for hub method invocations.

    Maps invocation targets to handler coroutines. A handler receives the
    HubCallerContext followed by the invocation arguments:

        @hub_router.register("SendMessage")
        async def send_message(context, user, message): ...
    """

    def __init__(self):
        """
        The `methods_registry` dictionary maps invocation targets to their
        handler coroutines.

        The `schemas_registry` dictionary maps invocation targets to the JSON
        schema their argument list is validated against, if any.
        """
        self.methods_registry: dict[str, HubMethodType] = {}
        self.schemas_registry: dict[str, JsonSchemaType | None] = {}

    def register(self, target: str, json_schema: JsonSchemaType | None = None):
        """
        Decorator registering a handler for an invocation target.

        Registering the same handler twice is a no-op (module reloads),
        registering a different handler for a taken target is an error.

        Args:
            target: Invocation target name, matched case-sensitively.
            json_schema: Optional JSON schema for the `arguments` array.

        Returns:
            A decorator function that registers the handler.
        """

        def decorator(func: HubMethodType):
            if target in self.methods_registry:
                if self.methods_registry[target] != func:
                    raise ValueError(
                        f"Different handler already registered for hub method {target}"
                    )
                return func

            self.methods_registry[target] = func
            self.schemas_registry[target] = json_schema
            logger.info(
                f"Register {func.__module__}.{func.__name__} for hub method: {target}"
            )

            return func

        return decorator

    def has_method(self, target: str) -> bool:
        return target in self.methods_registry

    async def invoke(
        self, context: HubCallerContext, invocation: InvocationMessage
    ) -> Any:
        """
        Run the handler of an invocation.

        Args:
            context: Caller context passed as the first handler argument.
            invocation: The invocation to run.

        Returns:
            Whatever the handler returns.

        Raises:
            HubMethodError: If the target is unknown, the argument count
                does not match the handler signature or the arguments do
                not match the registered JSON schema.
        """
        handler = self.methods_registry.get(invocation.target)
        if handler is None:
            raise HubMethodError(f"Unknown hub method '{invocation.target}'")

        signature = inspect.signature(handler)
        try:
            signature.bind(context, *invocation.arguments)
        except TypeError as ex:
            expected = len(signature.parameters) - 1
            raise HubMethodError(
                f"Invocation provides {len(invocation.arguments)} argument(s) "
                f"but target expects {expected}."
            ) from ex

        if json_schema := self.schemas_registry.get(invocation.target):
            try:
                validate(invocation.arguments, json_schema)
            except ValidationError as ex:
                raise HubMethodError(
                    f"Failed to bind arguments of '{invocation.target}': "
                    f"{ex.message}"
                ) from ex

        return await handler(context, *invocation.arguments)

    async def handle_invocation(
        self, context: HubCallerContext, invocation: InvocationMessage
    ) -> CompletionMessage | None:
        """
        Handle an invocation and build its completion.

        Handler failures never propagate: they are logged and reported to
        the caller as a completion error.

        Args:
            context: Caller context.
            invocation: The invocation received from the client.

        Returns:
            A CompletionMessage if the invocation carried an invocationId
            (the caller waits for a result), None otherwise.
        """
        start_time = time.time()
        result = None
        error = None

        try:
            result = await self.invoke(context, invocation)
        except HubMethodError as ex:
            error = str(ex)
            logger.warning(
                f"Invocation of '{invocation.target}' from connection "
                f"{context.connection_id} failed: {error}"
            )
        except Exception:
            error = (
                f"An unexpected error occurred invoking '{invocation.target}' "
                "on the server."
            )
            logger.exception(
                f"Unhandled error in hub method '{invocation.target}'"
            )

        if not self.has_method(invocation.target):
            target_label, status = "<unknown>", "unknown"
        else:
            target_label = invocation.target
            status = "ok" if error is None else "error"

        MetricsCollector.record_invocation(
            target_label, status, time.time() - start_time
        )

        if invocation.invocation_id is None:
            return None

        return CompletionMessage(
            invocation_id=invocation.invocation_id, result=result, error=error
        )


hub_router = HubMethodRouter()


# Track registered modules to prevent duplicate logging
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def collect_subrouters() -> APIRouter:
    """
    Collects all HTTP and websocket routers of the application.

    Every module in `api/http` and `api/ws/consumers` must expose a
    `router` attribute, which is included into the returned router.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/http"]):
        api = import_module(f".{module}", package=f"{app_name}.api.http")
        main_router.include_router(api.router)

        if module not in _registered_http_modules:
            logger.info(f'Register "{module}" api')
            _registered_http_modules.add(module)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/ws/consumers"]):
        ws_consumer = import_module(
            f".{module}", package=f"{app_name}.api.ws.consumers"
        )
        main_router.include_router(ws_consumer.router)

        if module not in _registered_ws_modules:
            logger.info(f'Register "{module}" websocket consumer')
            _registered_ws_modules.add(module)

    return main_router
