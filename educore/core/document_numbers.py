"""
Invoice and receipt number allocation.

Numbers come from a per-(school, document type, year) counter row that is
bumped with a single UPDATE inside the caller's transaction, so the number
and the row consuming it commit or roll back together.
"""

from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.enums import DocumentType
from educore.core.models import DocumentCounter

PREFIXES = {
    DocumentType.INVOICE: "INV",
    DocumentType.RECEIPT: "RCP",
}


def format_document_number(document_type: DocumentType, year: int, value: int) -> str:
    """INV-2025-000001 / RCP-2025-000042."""
    return f"{PREFIXES[document_type]}-{year}-{value:06d}"


async def next_sequence_value(
    db: AsyncSession,
    school_id: UUID,
    document_type: DocumentType,
    year: int,
) -> int:
    """
    Increment and return the counter. Does not commit.
    A concurrent first-use insert for the same key fails with IntegrityError on flush.
    """
    key = (
        DocumentCounter.school_id == school_id,
        DocumentCounter.document_type == document_type.value,
        DocumentCounter.year == year,
    )
    result = await db.execute(
        update(DocumentCounter)
        .where(*key)
        .values(last_value=DocumentCounter.last_value + 1)
        .returning(DocumentCounter.last_value)
        .execution_options(synchronize_session=False)
    )
    value = result.scalar_one_or_none()
    if value is None:
        db.add(
            DocumentCounter(
                school_id=school_id,
                document_type=document_type.value,
                year=year,
                last_value=1,
            )
        )
        await db.flush()
        return 1

    return int(value)


async def allocate_document_number(
    db: AsyncSession,
    school_id: UUID,
    document_type: DocumentType,
    year: int,
) -> str:
    value = await next_sequence_value(db, school_id, document_type, year)
    return format_document_number(document_type, year, value)
