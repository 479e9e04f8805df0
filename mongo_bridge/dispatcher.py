import logging
from typing import Any, Dict, Iterable, Optional

from .errors import RouterConfigurationError
from .routers import agg, collections, databases, documents, health, indexes
from .routing import CommandRouter, Handler
from .schemas import COMMAND_TAGS, CommandBase, DatabaseCommand, command_tag

logger = logging.getLogger(__name__)

DEFAULT_ROUTERS = (
    health.router,
    databases.router,
    collections.router,
    documents.router,
    indexes.router,
    agg.router,
)


class Dispatcher:
    """Routes a validated command to its gateway operation.

    Every command scoped to a database (those carrying ``dbName``) first
    awaits ``gateway.ensure_database`` exactly once for that database.
    ``health`` and ``listDatabases`` never do.
    """

    def __init__(
        self,
        gateway: Any,
        default_db: str,
        routers: Optional[Iterable[CommandRouter]] = None,
    ) -> None:
        self._gateway = gateway
        self._default_db = default_db
        self._handlers: Dict[str, Handler] = {}
        for router in DEFAULT_ROUTERS if routers is None else routers:
            self.include_router(router)
        missing = sorted(set(COMMAND_TAGS) - set(self._handlers))
        if missing:
            raise RouterConfigurationError(f"No handler for commands: {', '.join(missing)}")

    def include_router(self, router: CommandRouter) -> None:
        for tag, handler in router.handlers.items():
            if tag in self._handlers:
                raise RouterConfigurationError(f"Duplicate handler for command: {tag}")
            self._handlers[tag] = handler

    def effective_db(self, command: CommandBase) -> str:
        if isinstance(command, DatabaseCommand):
            return command.db_name
        return self._default_db

    async def dispatch(self, command: CommandBase) -> Any:
        tag = command_tag(command)
        handler = self._handlers.get(tag)
        # Unreachable once the union is validated and coverage checked above
        if handler is None:
            raise AssertionError(f"Unknown command: {tag}")

        db_name = self.effective_db(command)
        if isinstance(command, DatabaseCommand):
            await self._gateway.ensure_database(db_name)
        logger.debug("Dispatching %s on %s", tag, db_name)
        return await handler(self._gateway, command, db_name)
