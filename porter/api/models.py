"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class RunStatusEnum(str, Enum):
    INIT = "init"
    VERIFYING = "verifying"
    EXPORTING = "exporting"
    IMPORTING = "importing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


# Request Models
class RunCreate(BaseModel):
    source: str
    package: str
    output: str = "file"
    target: Optional[str] = None
    output_dir: str = "./export"
    capture_only: bool = False


# Response Models
class RunResponse(BaseModel):
    status: RunStatusEnum
    request: Dict[str, Any]
    suppressed: List[str] = Field(default_factory=list)
    comments: List[str] = Field(default_factory=list)
    rows: Dict[str, int] = Field(default_factory=dict)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None


class PackageSummary(BaseModel):
    id: str
    name: str


class PackageListResponse(BaseModel):
    packages: List[PackageSummary]
    total: int


class FeatureSupport(BaseModel):
    feature: str
    support: str


class FeatureListResponse(BaseModel):
    kind: str
    name: str
    features: List[FeatureSupport]
