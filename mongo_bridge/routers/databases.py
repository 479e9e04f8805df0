from ..routing import CommandRouter

router = CommandRouter(tags=["databases"])


@router.command("listDatabases")
async def list_databases(gateway, command, db_name):
    """Server-wide catalog; not scoped to ``db_name``."""
    return await gateway.list_databases()
