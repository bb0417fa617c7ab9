"""Fees router: fee structures, invoices (single, bulk, waive), payments."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.rbac import check_permission
from educore.core.enums import InvoiceStatus, Term
from educore.core.exceptions import ServiceError
from educore.core.tenant import TenantContext, get_tenant_context
from educore.db.session import get_db

from .schemas import (
    BulkInvoiceCreate,
    BulkInvoiceResponse,
    FeeStructureCreate,
    FeeStructureDeleteResponse,
    FeeStructureResponse,
    FeeStructureUpdate,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceWaive,
    PaymentCreate,
    PaymentResponse,
    PaymentWithInvoiceResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Fee Structure ---
@router.post(
    "/structures",
    response_model=FeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee_structure(
    payload: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeStructureResponse:
    try:
        return await service.create_fee_structure(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/structures",
    response_model=List[FeeStructureResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_structures(
    academic_year: Optional[int] = Query(None),
    term: Optional[Term] = Query(None),
    grade: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    include_archived: bool = Query(False, description="Include archived structures"),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[FeeStructureResponse]:
    return await service.list_fee_structures(
        db,
        ctx,
        academic_year=academic_year,
        term=term,
        grade=grade,
        active=active,
        include_archived=include_archived,
    )


@router.get(
    "/structures/{fee_structure_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeStructureResponse:
    try:
        return await service.get_fee_structure(db, ctx, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/structures/{fee_structure_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def update_fee_structure(
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeStructureResponse:
    try:
        return await service.update_fee_structure(db, ctx, fee_structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/structures/{fee_structure_id}",
    response_model=FeeStructureDeleteResponse,
    dependencies=[Depends(check_permission("fees", "delete"))],
)
async def delete_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeStructureDeleteResponse:
    try:
        return await service.delete_fee_structure(db, ctx, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Invoice ---
@router.post(
    "/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_invoice(
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> InvoiceResponse:
    try:
        return await service.create_invoice(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/invoices/bulk",
    response_model=BulkInvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def bulk_generate_invoices(
    payload: BulkInvoiceCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> BulkInvoiceResponse:
    try:
        return await service.bulk_generate_invoices(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/invoices",
    response_model=List[InvoiceResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    term: Optional[Term] = Query(None),
    academic_year: Optional[int] = Query(None),
    grade: Optional[str] = Query(None),
    learner_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[InvoiceResponse]:
    return await service.list_invoices(
        db,
        ctx,
        status=status_filter,
        term=term,
        academic_year=academic_year,
        grade=grade,
        learner_id=learner_id,
    )


@router.get(
    "/invoices/{invoice_id}",
    response_model=InvoiceResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> InvoiceResponse:
    try:
        return await service.get_invoice(db, ctx, invoice_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/invoices/{invoice_id}/waive",
    response_model=InvoiceResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def waive_invoice(
    invoice_id: UUID,
    payload: InvoiceWaive,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> InvoiceResponse:
    try:
        return await service.waive_invoice(db, ctx, invoice_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/invoices/{invoice_id}/payments",
    response_model=List[PaymentResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_invoice_payments(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[PaymentResponse]:
    try:
        return await service.list_invoice_payments(db, ctx, invoice_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/learners/{learner_id}/invoices",
    response_model=List[InvoiceResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_learner_invoices(
    learner_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[InvoiceResponse]:
    try:
        return await service.list_learner_invoices(db, ctx, learner_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Payment ---
@router.post(
    "/payments",
    response_model=PaymentWithInvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> PaymentWithInvoiceResponse:
    try:
        return await service.record_payment(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
