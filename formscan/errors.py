# formscan/errors.py
from typing import Optional

import httpx


class FormscanError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class ConfigError(FormscanError):
    pass


class SchemaFileError(FormscanError):
    pass


class ProvisioningError(FormscanError):
    def __init__(self, message: str, *, command: Optional[list] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr


class InputFileError(FormscanError):
    pass


class DocumentDecodeError(FormscanError):
    pass


class EmptyDocumentError(FormscanError):
    pass


class ExtractionHTTPError(FormscanError):
    """Inference endpoint answered with a non-success status.

    `response` is the raw httpx.Response; callers print it as-is.
    """

    def __init__(self, response: httpx.Response):
        super().__init__(f"inference endpoint returned HTTP {response.status_code}")
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class ExtractionTransportError(FormscanError):
    pass


class ResponseShapeError(FormscanError):
    pass
