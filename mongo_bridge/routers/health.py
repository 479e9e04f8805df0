from ..routing import CommandRouter

router = CommandRouter(tags=["health"])


@router.command("health")
async def health(gateway, command, db_name):
    return await gateway.health()
