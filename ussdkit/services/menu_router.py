"""Path-based dispatch over the accumulated-input convention.

Static menu trees need no stored state: the accumulated input *is* the
position in the tree.  :class:`MenuRouter` maps paths to handlers::

    router = MenuRouter()
    router.on_initial(main_menu)
    router.on_path("1", account_menu)
    router.on_path("1*1", account_number)
    router.on_prefix("2*", services_subtree)

Resolution order: initial handler for an empty input, then an exact
path, then the longest matching prefix.  Anything else is a routing
miss and ends the session with :data:`ROUTING_MISS_MESSAGE`; a miss is
a normal outcome, not an error.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Final

import structlog

from ussdkit.models.request import NavigationRequest
from ussdkit.models.response import ResponseDirective, Terminate

logger = structlog.get_logger(__name__)

ROUTING_MISS_MESSAGE: Final[str] = "Invalid option. Please try again."

MenuHandler = Callable[[NavigationRequest], ResponseDirective | Awaitable[ResponseDirective]]


class MenuRouter:
    """Dispatches a :class:`NavigationRequest` to the handler for its path."""

    __slots__ = ("_exact", "_initial", "_miss_message", "_prefixes")

    def __init__(self, *, miss_message: str = ROUTING_MISS_MESSAGE) -> None:
        self._initial: MenuHandler | None = None
        self._exact: dict[str, MenuHandler] = {}
        self._prefixes: list[tuple[str, MenuHandler]] = []
        self._miss_message = miss_message

    # -- Registration ----------------------------------------------------------

    def on_initial(self, handler: MenuHandler) -> MenuHandler:
        self._initial = handler
        return handler

    def on_path(self, path: str, handler: MenuHandler) -> MenuHandler:
        if not path:
            raise ValueError("use on_initial() for the empty path")
        self._exact[path] = handler
        return handler

    def on_prefix(self, prefix: str, handler: MenuHandler) -> MenuHandler:
        if not prefix:
            raise ValueError("prefix must not be empty")
        self._prefixes.append((prefix, handler))
        # Longest prefix first so the most specific subtree wins.
        self._prefixes.sort(key=lambda item: len(item[0]), reverse=True)
        return handler

    def route(self, path: str) -> Callable[[MenuHandler], MenuHandler]:
        """Decorator form of :meth:`on_path` (``""`` registers the initial handler)."""

        def decorator(handler: MenuHandler) -> MenuHandler:
            if path == "":
                return self.on_initial(handler)
            return self.on_path(path, handler)

        return decorator

    # -- Dispatch --------------------------------------------------------------

    def resolve(self, request: NavigationRequest) -> MenuHandler | None:
        if request.is_initial():
            return self._initial
        handler = self._exact.get(request.accumulated_input)
        if handler is not None:
            return handler
        for prefix, prefix_handler in self._prefixes:
            if request.starts_with_path(prefix):
                return prefix_handler
        return None

    async def dispatch(self, request: NavigationRequest) -> ResponseDirective:
        handler = self.resolve(request)
        if handler is None:
            logger.info(
                "menu.routing_miss",
                session_id=request.session_id,
                path=request.accumulated_input,
            )
            return Terminate(self._miss_message)
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result
