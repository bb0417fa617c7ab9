from enum import Enum


class Term(str, Enum):
    TERM_1 = "TERM_1"
    TERM_2 = "TERM_2"
    TERM_3 = "TERM_3"


class FeeCategory(str, Enum):
    ACADEMIC = "ACADEMIC"
    TRANSPORT = "TRANSPORT"
    BOARDING = "BOARDING"
    ACTIVITY = "ACTIVITY"
    OTHER = "OTHER"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERPAID = "OVERPAID"
    WAIVED = "WAIVED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MPESA = "MPESA"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    CARD = "CARD"


class DocumentType(str, Enum):
    INVOICE = "INVOICE"
    RECEIPT = "RECEIPT"


class LearnerStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRANSFERRED = "TRANSFERRED"
    GRADUATED = "GRADUATED"
    DROPPED_OUT = "DROPPED_OUT"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class GradingSystemType(str, Enum):
    SUMMATIVE = "SUMMATIVE"
    CBC = "CBC"


class AssessmentType(str, Enum):
    OPENER = "OPENER"
    CAT = "CAT"
    ASSIGNMENT = "ASSIGNMENT"
    MIDTERM = "MIDTERM"
    END_TERM = "END_TERM"
    PROJECT = "PROJECT"


class AggregationStrategy(str, Enum):
    SIMPLE_AVERAGE = "SIMPLE_AVERAGE"
    BEST_N = "BEST_N"
    DROP_LOWEST_N = "DROP_LOWEST_N"
    WEIGHTED_AVERAGE = "WEIGHTED_AVERAGE"
    MEDIAN = "MEDIAN"
