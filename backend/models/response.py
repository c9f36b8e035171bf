"""
JSON response envelope
"""

from typing import Any, Optional

from pydantic import BaseModel, model_serializer, model_validator


class ResponseEnvelope(BaseModel):
    """Body shape for every JSON response: {"error", "message", "data"?}"""
    error: bool = False
    message: str = ""
    data: Optional[Any] = None

    @model_validator(mode="after")
    def no_data_on_error(self):
        if self.error and self.data is not None:
            raise ValueError("error responses must not carry data")
        return self

    @model_serializer(mode="wrap")
    def drop_empty_data(self, handler):
        dumped = handler(self)
        if self.data is None:
            dumped.pop("data", None)
        return dumped
