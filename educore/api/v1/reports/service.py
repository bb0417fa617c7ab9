"""Read-only rollups over invoices, payments, learners and attendance. Nothing is cached."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.enums import AttendanceStatus, LearnerStatus, Term
from educore.core.exceptions import ValidationError
from educore.core.models import Attendance, FeeInvoice, FeePayment, Learner
from educore.core.tenant import TenantContext

from .schemas import (
    AttendanceSummary,
    DashboardResponse,
    FeeStatsResponse,
    FeeSummary,
    GradeCount,
    InvoiceStatusBreakdown,
    PaymentMethodBreakdown,
    RecentPayment,
)

PERIODS = ("today", "week", "month", "term")
RECENT_PAYMENTS_LIMIT = 10


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def period_bounds(period: str, today: date) -> Tuple[date, date]:
    """Inclusive date range for a named period ending today. Weeks start on Sunday; terms start Jan, May, Sep."""
    if period == "today":
        return today, today
    if period == "week":
        return today - timedelta(days=(today.weekday() + 1) % 7), today
    if period == "month":
        return today.replace(day=1), today
    if period == "term":
        start_month = 1 if today.month < 5 else 5 if today.month < 9 else 9
        return today.replace(month=start_month, day=1), today
    raise ValidationError(f"Unknown period {period}; expected one of {', '.join(PERIODS)}")


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _invoice_filters(stmt, ctx: TenantContext, academic_year: Optional[int], term: Optional[Term]):
    stmt = ctx.scope(stmt, FeeInvoice)
    if academic_year is not None:
        stmt = stmt.where(FeeInvoice.academic_year == academic_year)
    if term is not None:
        stmt = stmt.where(FeeInvoice.term == term.value)
    return stmt


def _payment_filters(stmt, start_date: Optional[date], end_date: Optional[date]):
    if start_date is not None:
        stmt = stmt.where(FeePayment.paid_at >= _day_start(start_date))
    if end_date is not None:
        stmt = stmt.where(FeePayment.paid_at < _day_start(end_date + timedelta(days=1)))
    return stmt


async def _fee_breakdown(
    db: AsyncSession,
    ctx: TenantContext,
    academic_year: Optional[int] = None,
    term: Optional[Term] = None,
):
    stmt = _invoice_filters(
        select(
            FeeInvoice.status,
            func.count(FeeInvoice.id),
            func.coalesce(func.sum(FeeInvoice.total_amount), 0),
            func.coalesce(func.sum(FeeInvoice.paid_amount), 0),
            func.coalesce(func.sum(FeeInvoice.balance), 0),
        ),
        ctx, academic_year, term,
    ).group_by(FeeInvoice.status).order_by(FeeInvoice.status)
    rows = (await db.execute(stmt)).all()
    breakdown = [
        InvoiceStatusBreakdown(
            status=status,
            count=int(count),
            total_amount=_to_decimal(total),
            paid_amount=_to_decimal(paid),
            balance=_to_decimal(balance),
        )
        for status, count, total, paid, balance in rows
    ]
    summary = FeeSummary(
        total_expected=sum((b.total_amount for b in breakdown), Decimal("0")),
        total_collected=sum((b.paid_amount for b in breakdown), Decimal("0")),
        total_outstanding=sum((b.balance for b in breakdown), Decimal("0")),
    )
    return breakdown, summary


async def get_fee_stats(
    db: AsyncSession,
    ctx: TenantContext,
    academic_year: Optional[int] = None,
    term: Optional[Term] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> FeeStatsResponse:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    breakdown, summary = await _fee_breakdown(db, ctx, academic_year, term)

    method_stmt = _payment_filters(
        _invoice_filters(
            select(
                FeePayment.payment_method,
                func.count(FeePayment.id),
                func.coalesce(func.sum(FeePayment.amount), 0),
            ).join(FeeInvoice, FeePayment.invoice_id == FeeInvoice.id),
            ctx, academic_year, term,
        ),
        start_date, end_date,
    ).group_by(FeePayment.payment_method).order_by(FeePayment.payment_method)
    by_method = [
        PaymentMethodBreakdown(payment_method=method, count=int(count), amount=_to_decimal(amount))
        for method, count, amount in (await db.execute(method_stmt)).all()
    ]

    recent_stmt = _payment_filters(
        _invoice_filters(
            select(FeePayment, FeeInvoice.invoice_number, FeeInvoice.learner_id, Learner)
            .join(FeeInvoice, FeePayment.invoice_id == FeeInvoice.id)
            .join(Learner, FeeInvoice.learner_id == Learner.id),
            ctx, academic_year, term,
        ),
        start_date, end_date,
    ).order_by(FeePayment.paid_at.desc(), FeePayment.receipt_number.desc()).limit(RECENT_PAYMENTS_LIMIT)
    recent = [
        RecentPayment(
            id=p.id,
            receipt_number=p.receipt_number,
            amount=_to_decimal(p.amount),
            payment_method=p.payment_method,
            paid_at=p.paid_at,
            invoice_id=p.invoice_id,
            invoice_number=invoice_number,
            learner_id=learner_id,
            learner_name=learner.full_name,
            admission_number=learner.admission_number,
        )
        for p, invoice_number, learner_id, learner in (await db.execute(recent_stmt)).all()
    ]

    return FeeStatsResponse(
        total_invoices=sum(b.count for b in breakdown),
        invoices_by_status=breakdown,
        payments_by_method=by_method,
        recent_payments=recent,
        summary=summary,
    )


async def get_dashboard(
    db: AsyncSession,
    ctx: TenantContext,
    period: str = "today",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> DashboardResponse:
    today = today or datetime.now(timezone.utc).date()
    if start_date or end_date:
        start = start_date or end_date
        end = end_date or today
        if start > end:
            raise ValidationError("start_date must not be after end_date")
        period = "custom"
    else:
        start, end = period_bounds(period, today)

    learners = ctx.scope(select(Learner.id), Learner).where(Learner.archived.is_(False)).subquery()
    total_learners = (await db.execute(select(func.count()).select_from(learners))).scalar_one()
    active_learners = (
        await db.execute(
            ctx.scope(select(func.count(Learner.id)), Learner).where(
                Learner.archived.is_(False),
                Learner.status == LearnerStatus.ACTIVE.value,
            )
        )
    ).scalar_one()
    grade_rows = (
        await db.execute(
            ctx.scope(select(Learner.grade, func.count(Learner.id)), Learner)
            .where(Learner.archived.is_(False))
            .group_by(Learner.grade)
            .order_by(Learner.grade)
        )
    ).all()

    attendance_stmt = (
        select(Attendance.status, func.count(Attendance.id))
        .join(Learner, Attendance.learner_id == Learner.id)
        .where(
            Attendance.school_id == ctx.school_id,
            Attendance.date >= start,
            Attendance.date <= end,
        )
        .group_by(Attendance.status)
    )
    if ctx.branch_id is not None:
        attendance_stmt = ctx.scope(attendance_stmt, Learner)
    by_status = {s.value: 0 for s in AttendanceStatus}
    for status, count in (await db.execute(attendance_stmt)).all():
        by_status[status] = int(count)
    marked = sum(by_status.values())
    average = round(by_status[AttendanceStatus.PRESENT.value] / marked * 100, 1) if marked else 0.0

    _, fee_summary = await _fee_breakdown(db, ctx)

    return DashboardResponse(
        total_learners=int(total_learners),
        active_learners=int(active_learners),
        learners_by_grade=[GradeCount(grade=g, count=int(c)) for g, c in grade_rows],
        attendance=AttendanceSummary(
            period=period,
            start_date=start,
            end_date=end,
            by_status=by_status,
            average_attendance=average,
        ),
        fees=fee_summary,
    )
