from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import CommandValidationError


class CommandBase(BaseModel):
    # Strict: no coercion between JSON types. Unknown keys are dropped.
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")


class DatabaseCommand(CommandBase):
    """Commands scoped to one database carry ``dbName``."""

    db_name: str = Field(..., alias="dbName")


class CollectionCommand(DatabaseCommand):
    collection_name: str = Field(..., alias="collectionName")


class HealthCommand(CommandBase):
    command: Literal["health"]


class ListDatabasesCommand(CommandBase):
    command: Literal["listDatabases"]


class ListCollectionsCommand(DatabaseCommand):
    command: Literal["listCollections"]


class CreateDocumentCommand(CollectionCommand):
    command: Literal["createDocument"]
    document: Dict[str, Any]


class FindDocumentsCommand(CollectionCommand):
    command: Literal["findDocuments"]
    query: Optional[Dict[str, Any]] = None


class UpdateDocumentCommand(CollectionCommand):
    command: Literal["updateDocument"]
    id: str
    update: Dict[str, Any]


class DeleteDocumentCommand(CollectionCommand):
    command: Literal["deleteDocument"]
    id: str


class AggregateCommand(CollectionCommand):
    command: Literal["aggregate"]
    pipeline: List[Dict[str, Any]]


class CreateIndexCommand(CollectionCommand):
    command: Literal["createIndex"]
    keys: Dict[str, Any]
    options: Optional[Dict[str, Any]] = None


class ListIndexesCommand(CollectionCommand):
    command: Literal["listIndexes"]


class DropCollectionCommand(CollectionCommand):
    command: Literal["dropCollection"]


Command = Annotated[
    Union[
        HealthCommand,
        ListDatabasesCommand,
        ListCollectionsCommand,
        CreateDocumentCommand,
        FindDocumentsCommand,
        UpdateDocumentCommand,
        DeleteDocumentCommand,
        AggregateCommand,
        CreateIndexCommand,
        ListIndexesCommand,
        DropCollectionCommand,
    ],
    Field(discriminator="command"),
]

COMMAND_MODELS = get_args(get_args(Command)[0])

# tag -> model, e.g. "findDocuments" -> FindDocumentsCommand
COMMAND_TAGS: Dict[str, type] = {
    get_args(model.model_fields["command"].annotation)[0]: model for model in COMMAND_MODELS
}

_command_adapter = TypeAdapter(Command)


def parse_command(data: Any) -> CommandBase:
    """Validate a decoded JSON value into exactly one command model."""
    try:
        return _command_adapter.validate_python(data)
    except ValidationError as e:
        raise CommandValidationError(e.errors(include_url=False)) from e


def command_tag(command: CommandBase) -> str:
    return command.command  # type: ignore[attr-defined]
