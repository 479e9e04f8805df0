from ..routing import CommandRouter

router = CommandRouter(tags=["documents"])


@router.command("createDocument")
async def create_document(gateway, command, db_name):
    return await gateway.create_document(db_name, command.collection_name, command.document)


@router.command("findDocuments")
async def find_documents(gateway, command, db_name):
    return await gateway.find_documents(db_name, command.collection_name, command.query)


@router.command("updateDocument")
async def update_document(gateway, command, db_name):
    # $set merge, never a full replace
    return await gateway.update_document(db_name, command.collection_name, command.id, command.update)


@router.command("deleteDocument")
async def delete_document(gateway, command, db_name):
    return await gateway.delete_document(db_name, command.collection_name, command.id)
