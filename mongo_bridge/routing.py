from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import RouterConfigurationError
from .schemas import COMMAND_TAGS

# (gateway, command, db_name) -> result
Handler = Callable[[Any, Any, str], Awaitable[Any]]


class CommandRouter:
    """Groups command handlers by concern, like an HTTP router groups routes."""

    def __init__(self, tags: Optional[List[str]] = None) -> None:
        self.tags = tags or []
        self.handlers: Dict[str, Handler] = {}

    def command(self, tag: str) -> Callable[[Handler], Handler]:
        if tag not in COMMAND_TAGS:
            raise RouterConfigurationError(f"Unknown command tag: {tag}")

        def decorator(func: Handler) -> Handler:
            if tag in self.handlers:
                raise RouterConfigurationError(f"Duplicate handler for command: {tag}")
            self.handlers[tag] = func
            return func

        return decorator
