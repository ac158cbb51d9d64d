"""Certificate template document schemas."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _TemplateModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubjectTemplate(_TemplateModel):
    common_name: str = Field(default="", alias="commonName")
    country: List[str] = Field(default_factory=list)
    organization: List[str] = Field(default_factory=list)
    organizational_unit: List[str] = Field(default_factory=list, alias="organizationalUnit")
    locality: List[str] = Field(default_factory=list)
    province: List[str] = Field(default_factory=list)


class BasicConstraintsTemplate(_TemplateModel):
    is_ca: bool = Field(default=False, alias="isCA")
    max_path_len: Optional[int] = Field(default=None, alias="maxPathLen", ge=0)


class ExtensionTemplate(_TemplateModel):
    id: str
    critical: bool = False
    value: str = Field(description="Base64 encoded DER extension value")


class TemplateDocument(_TemplateModel):
    subject: SubjectTemplate = Field(default_factory=SubjectTemplate)
    serial_number: Optional[int] = Field(default=None, alias="serialNumber", gt=0)
    not_before: Optional[datetime] = Field(default=None, alias="notBefore")
    key_usage: List[str] = Field(default_factory=list, alias="keyUsage")
    ext_key_usage: List[str] = Field(default_factory=list, alias="extKeyUsage")
    basic_constraints: BasicConstraintsTemplate = Field(
        default_factory=BasicConstraintsTemplate, alias="basicConstraints"
    )
    extensions: List[ExtensionTemplate] = Field(default_factory=list)


__all__ = [
    "BasicConstraintsTemplate",
    "ExtensionTemplate",
    "SubjectTemplate",
    "TemplateDocument",
]
