from ..routing import CommandRouter

router = CommandRouter(tags=["aggregation"])


@router.command("aggregate")
async def run_aggregation(gateway, command, db_name):
    """Run an aggregation pipeline and return every result document."""
    return await gateway.aggregate(db_name, command.collection_name, command.pipeline)
