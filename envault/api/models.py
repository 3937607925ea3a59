"""Pydantic request models for the API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from envault.models import ROOT_FOLDER_ID


class RollbackRequest(BaseModel):
    version: int
    environment: str = Field(min_length=1)
    # Only an absent key means the root folder; "" or null select no snapshot.
    folderId: str | None = ROOT_FOLDER_ID
