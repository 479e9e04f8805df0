from typing import Any, Dict, List


class BridgeError(Exception):
    """Base class for errors reported back to the caller as ``{"error": ...}``."""


class CommandValidationError(BridgeError):
    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        parts = []
        for err in errors:
            loc = ".".join(str(p) for p in err.get("loc", ()))
            parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        super().__init__("Invalid command: " + "; ".join(parts))


class InvalidIdentifier(BridgeError):
    def __init__(self, value: Any, reason: str = ""):
        self.value = value
        message = f"Invalid document id {value!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CollectionNotFound(BridgeError):
    def __init__(self, db: str, collection: str):
        self.db = db
        self.collection = collection
        super().__init__(f"ns not found: {db}.{collection}")


class RouterConfigurationError(Exception):
    """Command handlers are missing or registered twice. A programming error."""
