from ..routing import CommandRouter

router = CommandRouter(tags=["collections"])


@router.command("listCollections")
async def list_collections(gateway, command, db_name):
    return await gateway.list_collections(db_name)


@router.command("dropCollection")
async def drop_collection(gateway, command, db_name):
    return await gateway.drop_collection(db_name, command.collection_name)
