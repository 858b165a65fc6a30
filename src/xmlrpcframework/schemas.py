# xmlrpcframework/schemas.py
from typing import Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MethodCall(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method_name: str = Field(..., min_length=1)
    params: List[Any] = Field(default_factory=list)


class Fault(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fault_code: int = Field(..., alias="faultCode")
    fault_string: str = Field(..., alias="faultString")

    @field_validator("fault_string", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        if isinstance(v, bytes):
            return v.decode("utf-8", "replace")
        return v if isinstance(v, str) else str(v)


class MethodResponse(BaseModel):
    """Decoded <methodResponse>: a single value or a fault, never both."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Optional[Any] = None
    fault: Optional[Fault] = None

    @model_validator(mode="after")
    def _one_of(self):
        if self.fault is not None and self.value is not None:
            raise ValueError("response carries both a value and a fault")
        return self

    @property
    def is_fault(self) -> bool:
        return self.fault is not None
