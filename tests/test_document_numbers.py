from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.document_numbers import allocate_document_number, format_document_number
from educore.core.enums import DocumentType
from educore.core.models import DocumentCounter


def test_format_document_number() -> None:
    assert format_document_number(DocumentType.INVOICE, 2025, 1) == "INV-2025-000001"
    assert format_document_number(DocumentType.RECEIPT, 2026, 42) == "RCP-2026-000042"


async def test_counter_is_per_school_type_and_year(db_session: AsyncSession, school, other_school) -> None:
    school_id, other_id = school.id, other_school.id
    numbers = [await allocate_document_number(db_session, school_id, DocumentType.INVOICE, 2025) for _ in range(3)]
    assert numbers == ["INV-2025-000001", "INV-2025-000002", "INV-2025-000003"]

    assert await allocate_document_number(db_session, school_id, DocumentType.INVOICE, 2026) == "INV-2026-000001"
    assert await allocate_document_number(db_session, school_id, DocumentType.RECEIPT, 2025) == "RCP-2025-000001"
    assert await allocate_document_number(db_session, other_id, DocumentType.INVOICE, 2025) == "INV-2025-000001"
    await db_session.commit()


async def test_rolled_back_number_is_reissued(db_session: AsyncSession, school) -> None:
    school_id = school.id
    assert await allocate_document_number(db_session, school_id, DocumentType.RECEIPT, 2025) == "RCP-2025-000001"
    await db_session.commit()

    assert await allocate_document_number(db_session, school_id, DocumentType.RECEIPT, 2025) == "RCP-2025-000002"
    await db_session.rollback()

    assert await allocate_document_number(db_session, school_id, DocumentType.RECEIPT, 2025) == "RCP-2025-000002"
    await db_session.commit()
    counter = (await db_session.execute(select(DocumentCounter))).scalars().one()
    assert counter.last_value == 2
