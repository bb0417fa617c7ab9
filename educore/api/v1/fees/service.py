"""Fees service: fee structures, invoices, payments, waivers. Financial logic with audit."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.document_numbers import allocate_document_number
from educore.core.enums import DocumentType, InvoiceStatus, LearnerStatus, Term
from educore.core.exceptions import ConflictError, ValidationError
from educore.core.models import (
    Branch,
    FeeInvoice,
    FeePayment,
    FeeStructure,
    FeeStructureItem,
    FeeType,
    Learner,
)
from educore.core.tenant import TenantContext

from .audit_service import log_fee_audit
from .schemas import (
    BulkInvoiceCreate,
    BulkInvoiceResponse,
    FeeStructureCreate,
    FeeStructureDeleteResponse,
    FeeStructureItemCreate,
    FeeStructureItemResponse,
    FeeStructureResponse,
    FeeStructureUpdate,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceWaive,
    PaymentCreate,
    PaymentResponse,
    PaymentWithInvoiceResponse,
)

logger = logging.getLogger(__name__)

# Statuses that no longer accept payments
CLOSED_INVOICE_STATUSES = (InvoiceStatus.PAID.value, InvoiceStatus.WAIVED.value)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _enum_value(val) -> Optional[str]:
    if val is None:
        return None
    return val.value if hasattr(val, "value") else str(val)


def _nullable_eq(column, value):
    return column.is_(None) if value is None else column == value


def compute_invoice_status(balance: Decimal, paid_amount: Decimal, current: str) -> str:
    """Status after a payment: a pure function of balance and paid amount."""
    if balance < 0:
        return InvoiceStatus.OVERPAID.value
    if balance == 0:
        return InvoiceStatus.PAID.value
    if paid_amount > 0:
        return InvoiceStatus.PARTIAL.value
    return current


# --- Fee Structure ---
def _structure_to_response(fs: FeeStructure, invoice_count: int = 0) -> FeeStructureResponse:
    return FeeStructureResponse(
        id=_to_uuid(fs.id),
        school_id=_to_uuid(fs.school_id),
        branch_id=_to_uuid(fs.branch_id),
        name=fs.name,
        description=fs.description,
        grade=fs.grade,
        term=fs.term,
        academic_year=fs.academic_year,
        active=fs.active,
        archived=fs.archived,
        archived_at=fs.archived_at,
        total_amount=fs.total_amount,
        items=[
            FeeStructureItemResponse(
                id=_to_uuid(i.id),
                fee_type_id=_to_uuid(i.fee_type_id),
                amount=_to_decimal(i.amount),
                mandatory=i.mandatory,
            )
            for i in fs.items
        ],
        invoice_count=invoice_count,
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


async def _load_structure(db: AsyncSession, ctx: TenantContext, fee_structure_id: UUID) -> FeeStructure:
    result = await db.execute(
        select(FeeStructure)
        .where(FeeStructure.id == fee_structure_id)
        .execution_options(populate_existing=True)
    )
    return ctx.ensure_owned(result.scalar_one_or_none(), "Fee structure")


async def _invoice_count(db: AsyncSession, fee_structure_id: UUID) -> int:
    result = await db.execute(
        select(func.count(FeeInvoice.id)).where(FeeInvoice.fee_structure_id == fee_structure_id)
    )
    return int(result.scalar_one())


async def _validate_items(
    db: AsyncSession,
    ctx: TenantContext,
    items: Iterable[FeeStructureItemCreate],
) -> List[FeeStructureItem]:
    items = list(items)
    fee_type_ids = [i.fee_type_id for i in items]
    if len(set(fee_type_ids)) != len(fee_type_ids):
        raise ValidationError("A fee type may appear only once in a fee structure")
    result = await db.execute(select(FeeType).where(FeeType.id.in_(fee_type_ids)))
    fee_types = {ft.id: ft for ft in result.scalars().all()}
    for fee_type_id in fee_type_ids:
        ft = fee_types.get(fee_type_id)
        if not ft or ft.school_id != ctx.school_id:
            raise ValidationError(f"Invalid fee type {fee_type_id}")
        if not ft.is_active:
            raise ValidationError(f"Fee type {ft.code} is inactive")
    return [
        FeeStructureItem(fee_type_id=i.fee_type_id, amount=i.amount, mandatory=i.mandatory)
        for i in items
    ]


async def _ensure_unique_structure(
    db: AsyncSession,
    ctx: TenantContext,
    name: str,
    academic_year: int,
    term: Optional[str],
    grade: Optional[str],
    exclude_id: Optional[UUID] = None,
) -> None:
    stmt = select(FeeStructure.id).where(
        FeeStructure.school_id == ctx.school_id,
        FeeStructure.name == name,
        FeeStructure.academic_year == academic_year,
        _nullable_eq(FeeStructure.term, term),
        _nullable_eq(FeeStructure.grade, grade),
        FeeStructure.archived.is_(False),
    )
    if exclude_id is not None:
        stmt = stmt.where(FeeStructure.id != exclude_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none():
        raise ConflictError("A fee structure with this name already exists for this year, term and grade")


async def create_fee_structure(
    db: AsyncSession,
    ctx: TenantContext,
    payload: FeeStructureCreate,
) -> FeeStructureResponse:
    name = payload.name.strip()
    term = _enum_value(payload.term)
    grade = (payload.grade or "").strip() or None
    branch_id = ctx.branch_id or payload.branch_id
    if branch_id is not None and branch_id != ctx.branch_id:
        branch = await db.get(Branch, branch_id)
        if not branch or branch.school_id != ctx.school_id:
            raise ValidationError("Invalid branch")

    await _ensure_unique_structure(db, ctx, name, payload.academic_year, term, grade)
    items = await _validate_items(db, ctx, payload.items)
    try:
        fs = FeeStructure(
            school_id=ctx.school_id,
            branch_id=branch_id,
            name=name,
            description=(payload.description or "").strip() or None,
            grade=grade,
            term=term,
            academic_year=payload.academic_year,
            active=payload.active,
            archived=False,
            created_by=ctx.user_id,
            items=items,
        )
        db.add(fs)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure could not be created")
    fs = await _load_structure(db, ctx, fs.id)
    return _structure_to_response(fs)


async def list_fee_structures(
    db: AsyncSession,
    ctx: TenantContext,
    academic_year: Optional[int] = None,
    term: Optional[Term] = None,
    grade: Optional[str] = None,
    active: Optional[bool] = None,
    include_archived: bool = False,
) -> List[FeeStructureResponse]:
    stmt = ctx.scope(select(FeeStructure), FeeStructure)
    if not include_archived:
        stmt = stmt.where(FeeStructure.archived.is_(False))
    if academic_year is not None:
        stmt = stmt.where(FeeStructure.academic_year == academic_year)
    if term is not None:
        stmt = stmt.where(FeeStructure.term == term.value)
    if grade:
        stmt = stmt.where(FeeStructure.grade == grade)
    if active is not None:
        stmt = stmt.where(FeeStructure.active.is_(active))
    stmt = stmt.order_by(FeeStructure.academic_year.desc(), FeeStructure.name)
    structures = (await db.execute(stmt)).scalars().all()

    counts = {}
    if structures:
        count_rows = await db.execute(
            select(FeeInvoice.fee_structure_id, func.count(FeeInvoice.id))
            .where(FeeInvoice.fee_structure_id.in_([fs.id for fs in structures]))
            .group_by(FeeInvoice.fee_structure_id)
        )
        counts = {sid: int(n) for sid, n in count_rows.all()}
    return [_structure_to_response(fs, counts.get(fs.id, 0)) for fs in structures]


async def get_fee_structure(
    db: AsyncSession,
    ctx: TenantContext,
    fee_structure_id: UUID,
) -> FeeStructureResponse:
    fs = await _load_structure(db, ctx, fee_structure_id)
    return _structure_to_response(fs, await _invoice_count(db, fs.id))


async def update_fee_structure(
    db: AsyncSession,
    ctx: TenantContext,
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
) -> FeeStructureResponse:
    """Name, description and active are always editable; items and grade/term/year freeze once invoiced."""
    fs = await _load_structure(db, ctx, fee_structure_id)
    if fs.archived:
        raise ConflictError("Archived fee structures cannot be modified")

    fields = payload.model_fields_set
    new_term = _enum_value(payload.term) if "term" in fields else fs.term
    new_grade = ((payload.grade or "").strip() or None) if "grade" in fields else fs.grade
    new_year = payload.academic_year if payload.academic_year is not None else fs.academic_year
    scope_changed = (new_term, new_grade, new_year) != (fs.term, fs.grade, fs.academic_year)

    invoice_count = await _invoice_count(db, fs.id)
    if invoice_count and (payload.items is not None or scope_changed):
        raise ConflictError(
            "Fee structure is referenced by invoices; items, grade, term and academic year cannot change"
        )

    new_name = payload.name.strip() if payload.name is not None else fs.name
    if new_name != fs.name or scope_changed:
        await _ensure_unique_structure(db, ctx, new_name, new_year, new_term, new_grade, exclude_id=fs.id)

    if payload.items is not None:
        fs.items = await _validate_items(db, ctx, payload.items)
    fs.name = new_name
    fs.term = new_term
    fs.grade = new_grade
    fs.academic_year = new_year
    if payload.description is not None:
        fs.description = payload.description.strip() or None
    if payload.active is not None:
        fs.active = payload.active
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure update conflict")
    fs = await _load_structure(db, ctx, fee_structure_id)
    return _structure_to_response(fs, invoice_count)


async def delete_fee_structure(
    db: AsyncSession,
    ctx: TenantContext,
    fee_structure_id: UUID,
) -> FeeStructureDeleteResponse:
    """SUPER_ADMIN hard-deletes; other roles archive. Refused while invoices reference it."""
    fs = await _load_structure(db, ctx, fee_structure_id)
    if await _invoice_count(db, fs.id):
        raise ConflictError("Fee structure is referenced by invoices and cannot be deleted")

    if ctx.is_super_admin:
        await db.delete(fs)
        await db.commit()
        logger.info("Fee structure %s deleted by %s", fee_structure_id, ctx.user_id)
        return FeeStructureDeleteResponse(id=fee_structure_id, deleted=True, archived=False)

    fs.archived = True
    fs.active = False
    fs.archived_at = datetime.now(timezone.utc)
    fs.archived_by = ctx.user_id
    await log_fee_audit(
        db, ctx.school_id, "fee_structures", fs.id,
        "ARCHIVE",
        {"active": True, "archived": False},
        {"active": False, "archived": True},
        ctx.user_id,
    )
    await db.commit()
    logger.info("Fee structure %s archived by %s", fee_structure_id, ctx.user_id)
    return FeeStructureDeleteResponse(id=fee_structure_id, deleted=False, archived=True)


# --- Invoice ---
def _invoice_to_response(inv: FeeInvoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=_to_uuid(inv.id),
        school_id=_to_uuid(inv.school_id),
        branch_id=_to_uuid(inv.branch_id),
        invoice_number=inv.invoice_number,
        learner_id=_to_uuid(inv.learner_id),
        fee_structure_id=_to_uuid(inv.fee_structure_id),
        term=inv.term,
        academic_year=inv.academic_year,
        due_date=inv.due_date,
        total_amount=_to_decimal(inv.total_amount),
        paid_amount=_to_decimal(inv.paid_amount),
        balance=_to_decimal(inv.balance),
        status=inv.status,
        waived_at=inv.waived_at,
        waived_by=_to_uuid(inv.waived_by),
        waiver_reason=inv.waiver_reason,
        generated_by=_to_uuid(inv.generated_by),
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


def _check_invoiceable(fs: FeeStructure, term: str, academic_year: int) -> Decimal:
    """Return the frozen total for a new invoice against fs."""
    if fs.archived or not fs.active:
        raise ValidationError("Fee structure is archived or inactive")
    if not fs.items:
        raise ValidationError("Fee structure has no items")
    if fs.academic_year != academic_year:
        raise ValidationError("Academic year does not match the fee structure")
    if fs.term is not None and fs.term != term:
        raise ValidationError("Term does not match the fee structure")
    return fs.total_amount


async def _new_invoice(
    db: AsyncSession,
    ctx: TenantContext,
    learner: Learner,
    fs: FeeStructure,
    term: str,
    academic_year: int,
    due_date,
    total: Decimal,
) -> FeeInvoice:
    """Allocate a number and stage one invoice. Caller commits."""
    invoice_number = await allocate_document_number(db, ctx.school_id, DocumentType.INVOICE, academic_year)
    inv = FeeInvoice(
        school_id=ctx.school_id,
        branch_id=learner.branch_id,
        invoice_number=invoice_number,
        learner_id=learner.id,
        fee_structure_id=fs.id,
        term=term,
        academic_year=academic_year,
        due_date=due_date,
        total_amount=total,
        paid_amount=Decimal("0"),
        balance=total,
        status=InvoiceStatus.PENDING.value,
        generated_by=ctx.user_id,
    )
    db.add(inv)
    await db.flush()
    await log_fee_audit(
        db, ctx.school_id, "fee_invoices", inv.id,
        "CREATE",
        None,
        {"invoice_number": invoice_number, "learner_id": str(learner.id), "fee_structure_id": str(fs.id), "total_amount": str(total)},
        ctx.user_id,
    )
    return inv


async def create_invoice(
    db: AsyncSession,
    ctx: TenantContext,
    payload: InvoiceCreate,
) -> InvoiceResponse:
    learner = ctx.ensure_owned(await db.get(Learner, payload.learner_id), "Learner")
    fs = await _load_structure(db, ctx, payload.fee_structure_id)
    term = payload.term.value
    total = _check_invoiceable(fs, term, payload.academic_year)
    if fs.grade is not None and fs.grade != learner.grade:
        raise ValidationError("Learner grade does not match the fee structure")

    existing = await db.execute(
        select(FeeInvoice.id).where(
            FeeInvoice.learner_id == learner.id,
            FeeInvoice.fee_structure_id == fs.id,
            FeeInvoice.term == term,
            FeeInvoice.academic_year == payload.academic_year,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Invoice already exists for this learner, fee structure, term and year")

    try:
        inv = await _new_invoice(db, ctx, learner, fs, term, payload.academic_year, payload.due_date, total)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Invoice already exists or invoice number is in use")
    await db.refresh(inv)
    logger.info("Invoice %s created for learner %s (total %s)", inv.invoice_number, learner.id, total)
    return _invoice_to_response(inv)


async def bulk_generate_invoices(
    db: AsyncSession,
    ctx: TenantContext,
    payload: BulkInvoiceCreate,
) -> BulkInvoiceResponse:
    """One invoice per matching active learner without one; existing invoices are skipped."""
    fs = await _load_structure(db, ctx, payload.fee_structure_id)
    term = payload.term.value
    total = _check_invoiceable(fs, term, payload.academic_year)
    if fs.grade is not None and fs.grade != payload.grade:
        raise ValidationError("Grade does not match the fee structure")

    stmt = ctx.scope(select(Learner), Learner).where(
        Learner.grade == payload.grade,
        Learner.status == LearnerStatus.ACTIVE.value,
        Learner.archived.is_(False),
    )
    if payload.stream:
        stmt = stmt.where(Learner.stream == payload.stream)
    learners = (await db.execute(stmt.order_by(Learner.admission_number))).scalars().all()
    if not learners:
        raise ValidationError("No active learners found for the specified criteria")

    invoiced = await db.execute(
        select(FeeInvoice.learner_id).where(
            FeeInvoice.fee_structure_id == fs.id,
            FeeInvoice.term == term,
            FeeInvoice.academic_year == payload.academic_year,
            FeeInvoice.learner_id.in_([learner.id for learner in learners]),
        )
    )
    already = set(invoiced.scalars().all())

    created: List[FeeInvoice] = []
    try:
        for learner in learners:
            if learner.id in already:
                continue
            created.append(
                await _new_invoice(db, ctx, learner, fs, term, payload.academic_year, payload.due_date, total)
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Invoice generation conflicted with a concurrent run; nothing was created")

    skipped = len(learners) - len(created)
    logger.info(
        "Bulk invoices for structure %s (%s %s, grade %s): %s created, %s skipped",
        fs.id, term, payload.academic_year, payload.grade, len(created), skipped,
    )
    return BulkInvoiceResponse(
        invoices=[_invoice_to_response(inv) for inv in created],
        created_count=len(created),
        skipped_count=skipped,
    )


async def list_invoices(
    db: AsyncSession,
    ctx: TenantContext,
    status: Optional[InvoiceStatus] = None,
    term: Optional[Term] = None,
    academic_year: Optional[int] = None,
    grade: Optional[str] = None,
    learner_id: Optional[UUID] = None,
) -> List[InvoiceResponse]:
    stmt = ctx.scope(select(FeeInvoice), FeeInvoice)
    if status is not None:
        stmt = stmt.where(FeeInvoice.status == status.value)
    if term is not None:
        stmt = stmt.where(FeeInvoice.term == term.value)
    if academic_year is not None:
        stmt = stmt.where(FeeInvoice.academic_year == academic_year)
    if learner_id is not None:
        stmt = stmt.where(FeeInvoice.learner_id == learner_id)
    if grade:
        stmt = stmt.join(Learner, FeeInvoice.learner_id == Learner.id).where(Learner.grade == grade)
    stmt = stmt.order_by(FeeInvoice.created_at.desc(), FeeInvoice.invoice_number.desc())
    result = await db.execute(stmt)
    return [_invoice_to_response(inv) for inv in result.scalars().all()]


async def get_invoice(db: AsyncSession, ctx: TenantContext, invoice_id: UUID) -> InvoiceResponse:
    inv = ctx.ensure_owned(await db.get(FeeInvoice, invoice_id), "Invoice")
    return _invoice_to_response(inv)


async def list_learner_invoices(
    db: AsyncSession,
    ctx: TenantContext,
    learner_id: UUID,
) -> List[InvoiceResponse]:
    ctx.ensure_owned(await db.get(Learner, learner_id), "Learner")
    return await list_invoices(db, ctx, learner_id=learner_id)


async def waive_invoice(
    db: AsyncSession,
    ctx: TenantContext,
    invoice_id: UUID,
    payload: InvoiceWaive,
) -> InvoiceResponse:
    """Administrative override. Amounts are untouched so balance == total - paid still holds."""
    result = await db.execute(
        select(FeeInvoice)
        .where(FeeInvoice.id == invoice_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    inv = ctx.ensure_owned(result.scalar_one_or_none(), "Invoice")
    if inv.status in CLOSED_INVOICE_STATUSES:
        raise ConflictError(f"Invoice is already {inv.status} and cannot be waived")

    old_status = inv.status
    inv.status = InvoiceStatus.WAIVED.value
    inv.waived_at = datetime.now(timezone.utc)
    inv.waived_by = ctx.user_id
    inv.waiver_reason = payload.reason.strip()
    await log_fee_audit(
        db, ctx.school_id, "fee_invoices", inv.id,
        "WAIVE",
        {"status": old_status},
        {"status": inv.status, "reason": inv.waiver_reason, "balance": str(_to_decimal(inv.balance))},
        ctx.user_id,
    )
    await db.commit()
    await db.refresh(inv)
    logger.info("Invoice %s waived by %s", inv.invoice_number, ctx.user_id)
    return _invoice_to_response(inv)


# --- Payment ---
def _payment_to_response(p: FeePayment) -> PaymentResponse:
    return PaymentResponse(
        id=_to_uuid(p.id),
        school_id=_to_uuid(p.school_id),
        invoice_id=_to_uuid(p.invoice_id),
        receipt_number=p.receipt_number,
        amount=_to_decimal(p.amount),
        payment_method=p.payment_method,
        reference=p.reference,
        notes=p.notes,
        paid_at=p.paid_at,
        received_by=_to_uuid(p.received_by),
    )


async def record_payment(
    db: AsyncSession,
    ctx: TenantContext,
    payload: PaymentCreate,
) -> PaymentWithInvoiceResponse:
    """Receipt allocation, payment insert and invoice update commit together."""
    result = await db.execute(
        select(FeeInvoice)
        .where(FeeInvoice.id == payload.invoice_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    inv = ctx.ensure_owned(result.scalar_one_or_none(), "Invoice")
    if inv.status in CLOSED_INVOICE_STATUSES:
        raise ConflictError(f"Invoice is {inv.status} and cannot accept payments")

    amount = payload.amount
    now = datetime.now(timezone.utc)
    try:
        receipt_number = await allocate_document_number(db, ctx.school_id, DocumentType.RECEIPT, now.year)
        payment = FeePayment(
            school_id=ctx.school_id,
            invoice_id=inv.id,
            receipt_number=receipt_number,
            amount=amount,
            payment_method=payload.payment_method.value,
            reference=(payload.reference or "").strip() or None,
            notes=(payload.notes or "").strip() or None,
            paid_at=now,
            received_by=ctx.user_id,
        )
        db.add(payment)
        await db.flush()

        old = {"paid_amount": str(_to_decimal(inv.paid_amount)), "balance": str(_to_decimal(inv.balance)), "status": inv.status}
        paid = _to_decimal(inv.paid_amount) + amount
        balance = _to_decimal(inv.total_amount) - paid
        inv.paid_amount = paid
        inv.balance = balance
        inv.status = compute_invoice_status(balance, paid, inv.status)
        await log_fee_audit(
            db, ctx.school_id, "fee_payments", payment.id,
            "PAYMENT",
            old,
            {"receipt_number": receipt_number, "amount": str(amount), "paid_amount": str(paid), "balance": str(balance), "status": inv.status},
            ctx.user_id,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Receipt number conflict; payment was not recorded")

    await db.refresh(payment)
    await db.refresh(inv)
    logger.info(
        "Payment %s of %s recorded on invoice %s (balance %s, %s)",
        receipt_number, amount, inv.invoice_number, inv.balance, inv.status,
    )
    return PaymentWithInvoiceResponse(
        payment=_payment_to_response(payment),
        invoice=_invoice_to_response(inv),
    )


async def list_invoice_payments(
    db: AsyncSession,
    ctx: TenantContext,
    invoice_id: UUID,
) -> List[PaymentResponse]:
    ctx.ensure_owned(await db.get(FeeInvoice, invoice_id), "Invoice")
    result = await db.execute(
        select(FeePayment)
        .where(FeePayment.invoice_id == invoice_id, FeePayment.school_id == ctx.school_id)
        .order_by(FeePayment.paid_at, FeePayment.receipt_number)
    )
    return [_payment_to_response(p) for p in result.scalars().all()]
