# formscan/models/config_models.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional

# keys in the KEY = VALUE settings file written by the provisioner
RESOURCE_GROUP_KEY = "AZURE_RESOURCE_GROUP_NAME"
ENDPOINT_KEY = "AZURE_OPENAI_ENDPOINT"
API_KEY_KEY = "AZURE_OPENAI_API_KEY"
DEPLOYMENT_KEY = "AZURE_OPENAI_VISION_MODEL_DEPLOYMENT_NAME"
API_VERSION_KEY = "AZURE_OPENAI_API_VERSION"

REQUIRED_KEYS = (ENDPOINT_KEY, API_KEY_KEY, DEPLOYMENT_KEY)
DEFAULT_API_VERSION = "2024-06-01"


class ServiceConfig(BaseModel):
    """Connection settings for the inference endpoint."""

    endpoint: str = Field(..., description="https://<account>.openai.azure.com/")
    api_key: str
    deployment_name: str
    api_version: str = DEFAULT_API_VERSION
    resource_group: Optional[str] = None

    @field_validator("endpoint")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_mapping(cls, values: dict) -> "ServiceConfig":
        return cls(
            endpoint=values[ENDPOINT_KEY],
            api_key=values[API_KEY_KEY],
            deployment_name=values[DEPLOYMENT_KEY],
            api_version=values.get(API_VERSION_KEY) or DEFAULT_API_VERSION,
            resource_group=values.get(RESOURCE_GROUP_KEY) or None,
        )
