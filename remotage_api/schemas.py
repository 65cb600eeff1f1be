"""
Pydantic schemas for the Remotage API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str


class Lead(BaseModel):
    id: str
    type: str
    fullName: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    day: Optional[str] = None
    createdAt: datetime


class CreateLeadResponse(BaseModel):
    message: str
    lead: Lead


class PageContent(BaseModel):
    id: str
    data: Any = None
    version: int
    lastModified: datetime
    createdAt: datetime
    updatedAt: datetime


class SaveContentResponse(BaseModel):
    message: str
    content: PageContent


class MessageResponse(BaseModel):
    message: str
