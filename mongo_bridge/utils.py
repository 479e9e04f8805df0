import base64
import math
import re
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.decimal128 import Decimal128
from bson.errors import InvalidId

_CREDENTIALS_RE = re.compile(r"(?<=//)[^/@]+:[^@/]+@")


def to_jsonable(obj: Any) -> Any:
    """Recursively convert Mongo objects (e.g., ObjectId) to JSON-serializable types."""
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, Decimal128):
        # Convert Decimal128 to string to preserve precision in JSON
        return str(obj.to_decimal())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, float) and not math.isfinite(obj):
        # NaN and Infinity are not valid JSON
        return None
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, bytes):
        # bson.Binary is a bytes subclass
        return base64.b64encode(obj).decode("ascii")
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(i) for i in obj]
    return obj


def from_jsonable(doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Convert _id string to ObjectId if present, leave others as-is."""
    d = dict(doc or {})
    _id = d.get("_id")
    if isinstance(_id, str):
        try:
            d["_id"] = ObjectId(_id)
        except InvalidId:
            pass
    return d


def redact_uri(uri: str) -> str:
    """Hide ``user:pass@`` in a connection string as ``***@``."""
    return _CREDENTIALS_RE.sub("***@", uri)
