from educore.core.models.school import Branch, School
from educore.core.models.learner import Learner
from educore.core.models.attendance import Attendance
from educore.core.models.fee_type import FeeType
from educore.core.models.fee_structure import FeeStructure, FeeStructureItem
from educore.core.models.fee_invoice import FeeInvoice
from educore.core.models.fee_payment import FeePayment
from educore.core.models.document_counter import DocumentCounter
from educore.core.models.fee_audit_log import FeeAuditLog
from educore.core.models.grading import GradingRange, GradingSystem
from educore.core.models.aggregation_config import AggregationConfig

__all__ = [
    "School",
    "Branch",
    "Learner",
    "Attendance",
    "FeeType",
    "FeeStructure",
    "FeeStructureItem",
    "FeeInvoice",
    "FeePayment",
    "DocumentCounter",
    "FeeAuditLog",
    "GradingSystem",
    "GradingRange",
    "AggregationConfig",
]
