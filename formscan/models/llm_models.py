# formscan/models/llm_models.py
from pydantic import BaseModel, Field
from typing import List, Optional, Literal, Union


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: Union[str, List[Union[TextPart, ImagePart]]]


class ExtractionRequest(BaseModel):
    model: str = "gpt-4o"
    messages: List[ChatMessage]
    temperature: float = 0
    top_p: float = 0
    max_tokens: int = 4096


# --- response side: only the fields we read are required ---

class ResponseMessage(BaseModel):
    role: Optional[str] = None
    content: str


class Choice(BaseModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[Choice] = Field(..., min_length=1)
