from ..routing import CommandRouter

router = CommandRouter(tags=["indexes"])


@router.command("createIndex")
async def create_index(gateway, command, db_name):
    return await gateway.create_index(db_name, command.collection_name, command.keys, command.options)


@router.command("listIndexes")
async def list_indexes(gateway, command, db_name):
    return await gateway.list_indexes(db_name, command.collection_name)
