from pydantic import BaseModel, ConfigDict, Field


class ViewDecisionContext(BaseModel):
    """Per-request facts the host supplies to decide whether a view counts."""

    model_config = ConfigDict(frozen=True)

    content_type: str | None = Field(None, description="Type of the requested content item, e.g. 'post'")
    is_single: bool = Field(False, description="Request targets one item, not a listing or archive")
    is_primary_query: bool = Field(False, description="Main content query of the request, not an embedded one")
    viewer_can_edit: bool = Field(False, description="Viewer holds the editing capability")
