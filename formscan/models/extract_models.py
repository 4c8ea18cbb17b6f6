# formscan/models/extract_models.py
from pydantic import BaseModel, Field
from typing import List


class PageImageMeta(BaseModel):
    page: int
    width: int
    height: int
    offset_y: int = Field(..., description="top edge of the page inside the composite")


class CompositeMeta(BaseModel):
    source: str
    path: str
    width: int
    height: int
    page_count: int
    size_bytes: int
    pages: List[PageImageMeta] = []
