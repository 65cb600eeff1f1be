"""
HTTP routes for the Remotage API.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from remotage_api.db import DbClient
from remotage_api.dependencies import get_db_client
from remotage_api.schemas import (
    CreateLeadResponse,
    HealthResponse,
    Lead,
    MessageResponse,
    PageContent,
    SaveContentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _section_count(data: Any) -> int:
    if isinstance(data, dict) and isinstance(data.get("sections"), list):
        return len(data["sections"])
    return 0


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="OK", message="Server is running")


@router.get("/leads", response_model=list[Lead])
def list_leads(db: DbClient = Depends(get_db_client)):
    return [Lead(**lead.as_dict()) for lead in db.list_leads()]


@router.post("/leads", response_model=CreateLeadResponse, status_code=201)
def create_lead(
    payload: Any = Body(None),
    db: DbClient = Depends(get_db_client),
):
    """
    Store a query or booking submission. Field checks are left to the store.
    """
    lead = db.create_lead(payload if isinstance(payload, dict) else {})
    logger.info("Saved %s lead %s", lead.type, lead.lead_id)
    return CreateLeadResponse(
        message="Lead saved successfully", lead=Lead(**lead.as_dict())
    )


@router.get("/content/{content_id}")
def get_content(content_id: str, db: DbClient = Depends(get_db_client)) -> Any:
    content = db.get_content(content_id)
    if content is None:
        logger.info("No content found for ID: %s", content_id)
        return None
    logger.info(
        "Retrieved content ID: %s (v%d) with %d sections",
        content_id,
        content.version,
        _section_count(content.data),
    )
    return content.data


@router.get("/content")
def list_content(db: DbClient = Depends(get_db_client)) -> dict[str, Any]:
    return {content.content_id: content.data for content in db.list_content()}


@router.post("/content", response_model=SaveContentResponse)
def save_content(
    payload: Any = Body(None),
    db: DbClient = Depends(get_db_client),
):
    """
    Create or replace a content section, bumping its version by one.
    """
    body = payload if isinstance(payload, dict) else {}
    content_id = body.get("id")
    if not content_id:
        raise HTTPException(status_code=400, detail="Content ID is required")

    data = body.get("data")
    logger.info(
        "Saving content with ID: %s (%d sections)", content_id, _section_count(data)
    )
    content = db.upsert_content(str(content_id), data)
    logger.info(
        "Saved version %d of content ID: %s", content.version, content.content_id
    )
    return SaveContentResponse(
        message="Content saved successfully",
        content=PageContent(**content.as_dict()),
    )


@router.delete("/content/{content_id}", response_model=MessageResponse)
def delete_content(content_id: str, db: DbClient = Depends(get_db_client)):
    if db.delete_content(content_id):
        logger.info("Deleted content ID: %s", content_id)
    return MessageResponse(message="Content deleted successfully")
