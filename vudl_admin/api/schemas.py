"""API schema definitions"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NewObjectRequest(BaseModel):
    """New object request; missing fields are reported with their own messages"""
    model: Optional[str] = Field(None, description="Content model, e.g. vudl-system:FolderCollection")
    title: Optional[str] = Field(None, description="Title of the new object")
    state: Optional[str] = Field(None, description="Initial state (Active, Inactive, Deleted)")
    parent: Optional[str] = Field(None, description="Parent PID (omit for a top-level object)")


class PropagateStateRequest(BaseModel):
    """State change for an object and, optionally, its descendants"""
    model_config = ConfigDict(populate_by_name=True)

    state: str = Field(..., min_length=1, description="New state")
    expected_descendants: int = Field(
        0,
        ge=0,
        alias="expectedDescendants",
        description="Number of descendants to update (0 leaves descendants alone)",
    )


class PropagationResponse(BaseModel):
    """Final result of a state propagation"""
    message: str
    severity: str


class ChildCountsResponse(BaseModel):
    """Child and descendant counts"""
    directChildren: int
    totalDescendants: int


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = "ok"

