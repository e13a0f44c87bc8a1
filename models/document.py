"""
Project document data models.

Documents belong to a project and are tagged with a review stage. They are
owned by the store; this application only reads and filters them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional


class ReviewStage(Enum):
    """
    Review stage a document is delivered in.

    Each member carries a display label and a short description for the
    delivery dialog.
    """

    REVIEW_1 = "review_1"
    REVIEW_2 = "review_2"
    REVIEW_3 = "review_3"

    @property
    def label(self) -> str:
        """Display label (e.g. 'Review 1')."""
        return _STAGE_LABELS[self][0]

    @property
    def description(self) -> str:
        """One-line description of what the stage covers."""
        return _STAGE_LABELS[self][1]

    @classmethod
    def values(cls) -> List[str]:
        """All machine values in stage order."""
        return [stage.value for stage in cls]

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON responses."""
        return {
            "value": self.value,
            "label": self.label,
            "description": self.description,
        }


_STAGE_LABELS = {
    ReviewStage.REVIEW_1: ("Review 1", "Initial project review and requirements"),
    ReviewStage.REVIEW_2: ("Review 2", "Mid-project review and progress assessment"),
    ReviewStage.REVIEW_3: ("Review 3", "Final review and project completion"),
}


@dataclass(frozen=True)
class ProjectDocument:
    """A downloadable document attached to a project."""

    id: str
    """Document identifier."""

    project_id: str
    """Project this document belongs to."""

    name: str
    """Display name."""

    url: str
    """Download URL sent to the customer."""

    document_category: str
    """Category label (e.g. 'presentation', 'report')."""

    review_stage: str
    """Review stage machine value (see ReviewStage)."""

    is_active: bool = True
    """Inactive documents are never delivered."""

    description: Optional[str] = None
    """Optional human-readable description."""

    size: Optional[str] = None
    """Size as reported by the store."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "url": self.url,
            "document_category": self.document_category,
            "review_stage": self.review_stage,
            "is_active": self.is_active,
            "description": self.description,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectDocument":
        """Create from a store row."""
        size = data.get("size")
        return cls(
            id=str(data.get("id", "")),
            project_id=str(data.get("project_id", data.get("projectId")) or ""),
            name=data.get("name", ""),
            url=data.get("url", ""),
            document_category=data.get("document_category", ""),
            review_stage=data.get("review_stage", ""),
            is_active=bool(data.get("is_active", True)),
            description=data.get("description") or None,
            size=str(size) if size is not None else None,
        )
