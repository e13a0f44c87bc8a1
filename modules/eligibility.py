"""
Document Eligibility

Turns "all documents for a project" into "documents to include in this
send": a document goes out when it is active and its review stage was
selected. Catalog order is preserved.
"""

from typing import Collection, Dict, Iterable, List

from core.exceptions import NoEligibleDocumentsError
from models.document import ProjectDocument, ReviewStage
from models.order import Order


def filter_documents(
    documents: Iterable[ProjectDocument],
    selected_stages: Collection[str]
) -> List[ProjectDocument]:
    """Active documents whose stage is in selected_stages, in input order."""
    return [
        doc for doc in documents
        if doc.review_stage in selected_stages and doc.is_active
    ]


def resolve(
    order: Order,
    documents: Iterable[ProjectDocument],
    selected_stages: Collection[str]
) -> List[ProjectDocument]:
    """
    Resolve the documents to deliver for an order.

    Args:
        order: Order being delivered
        documents: The order project's document catalog
        selected_stages: Review stage values to include

    Returns:
        Eligible documents in catalog order

    Raises:
        NoEligibleDocumentsError: If nothing is eligible
    """
    eligible = filter_documents(documents, selected_stages)
    if not eligible:
        raise NoEligibleDocumentsError(order_id=order.id, stages=list(selected_stages))
    return eligible


def count_by_stage(documents: Iterable[ProjectDocument]) -> Dict[str, int]:
    """Active document count per review stage, every stage present."""
    counts = {stage: 0 for stage in ReviewStage.values()}
    for doc in documents:
        if doc.is_active and doc.review_stage in counts:
            counts[doc.review_stage] += 1
    return counts
