"""Results of multi-step mutations"""

from dataclasses import dataclass, field
from typing import List

from budget_tracker.infrastructure.database.models import PaymentInstallment, PaymentTransaction, Project


@dataclass
class ProjectCreation:
    """Created project; warnings report follow-up steps that failed after commit"""

    project: Project
    installments: List[PaymentInstallment]
    warnings: List[str] = field(default_factory=list)


@dataclass
class TransactionResult:
    """Stored transaction plus any overage warnings"""

    transaction: PaymentTransaction
    warnings: List[str] = field(default_factory=list)
