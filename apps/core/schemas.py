"""
Pydantic schemas for API validation
"""

from pydantic import BaseModel, Field
from typing import List


class ExtensionListResponse(BaseModel):
    data: List[str]


class InstallRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=214)


class ExtensionActionResponse(BaseModel):
    success: bool
    message: str


class ScheduleState(BaseModel):
    enabled: bool


class HealthResponse(BaseModel):
    status: str
    database: str


class ServerInfoResponse(BaseModel):
    service: str
    version: str
    uptime_seconds: float
    extensions: int
    hooks: int
    endpoints: int
    schedule_enabled: bool
