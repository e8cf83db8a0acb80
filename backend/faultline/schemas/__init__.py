# backend/faultline/schemas/__init__.py
from __future__ import annotations

"""
Pydantic schemas for the external contracts.

This module is the contract layer and is used by:
- the HTTP renderer (ErrorBody is the JSON error response)
- the /api/kinds route and the `kinds` CLI command (KindInfo)
- the `check-config` CLI command (AppConfig and its sections)
"""

import ipaddress
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ---------- Error Schemas ----------


class ErrorBody(BaseModel):
    """JSON body of every error response."""

    model_config = ConfigDict(populate_by_name=True)

    exception_type: str = Field(alias="exceptionType")
    code: int
    message: str
    details: Union[str, Dict[str, List[str]]]
    error_code: str = Field(alias="errorCode")
    timestamp: str
    trace_id: str = Field(alias="traceId")


class KindInfo(BaseModel):
    kind: str
    code: str
    message: str
    http_status: int
    exit_code: int
    retryable: bool


# ---------- Application Config Schemas ----------


class _ConfigSection(BaseModel):
    # Accept both snake_case and camelCase keys in config files.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RepositoryConfig(_ConfigSection):
    source_repository: str
    target_repository: str
    clone_directory: str = Field(min_length=1)


class FileMapping(_ConfigSection):
    target_path: str = Field(min_length=1)
    content_file: str = Field(min_length=1)


class NetworkConfig(_ConfigSection):
    cidr_ranges: List[str] = Field(default_factory=list)
    ping_timeout_ms: int = Field(default=1000, gt=0)

    @field_validator("cidr_ranges")
    @classmethod
    def validate_cidr_ranges(cls, value: List[str]) -> List[str]:
        for cidr in value:
            try:
                ipaddress.ip_network(cidr, strict=False)
            except ValueError as exc:
                raise ValueError(f"Invalid CIDR format: {cidr}") from exc
        return value


class PullRequestConfig(_ConfigSection):
    title: str = Field(min_length=1)
    base_branch: str = "main"
    branch_name: str = Field(min_length=1)
    body: str = ""
    labels: List[str] = Field(default_factory=list)


class AppConfig(_ConfigSection):
    repository: RepositoryConfig
    file_mappings: List[FileMapping] = Field(default_factory=list)
    network: Optional[NetworkConfig] = None
    pull_request: Optional[PullRequestConfig] = None
