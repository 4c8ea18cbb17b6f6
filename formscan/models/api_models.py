# formscan/models/api_models.py
from pydantic import BaseModel
from typing import Optional, Any, Dict
from .extract_models import CompositeMeta


class ExtractB64In(BaseModel):
    filename: str
    b64: str
    schema_example: Optional[Dict[str, Any]] = None


class ExtractResponse(BaseModel):
    ok: bool = True
    content: Optional[str] = None
    meta: Optional[CompositeMeta] = None
    error: Optional[str] = None
