"""Shared plumbing for services: owner scoping, clock, and the unit of work"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from budget_tracker.config import Settings, settings
from budget_tracker.domain.exceptions import (
    BusinessRuleFailure,
    ConflictFailure,
    DomainException,
    StoreFailure,
)
from budget_tracker.domain.validation import ValidationContext
from budget_tracker.infrastructure.observability.metrics import record_business_rule_rejection
from budget_tracker.utils.date_utils import Clock
from budget_tracker.utils.money import to_cents

logger = logging.getLogger(__name__)


class Service:
    """Base for services bound to one session and one owner"""

    def __init__(self, db: Session, owner_id: str, config: Settings = settings, clock: Clock = date.today):
        self.db = db
        self.owner_id = owner_id
        self.config = config
        self.clock = clock

    @property
    def tolerance_cents(self) -> int:
        return to_cents(self.config.installment_sum_tolerance)

    def validation_context(self) -> ValidationContext:
        return ValidationContext(today=self.clock(), settings=self.config)

    def page_bounds(self, page: int, page_size: Optional[int]) -> Tuple[int, int]:
        """Clamp a requested page into the configured limits"""
        size = page_size or self.config.default_page_size
        return max(page, 1), min(max(size, 1), self.config.max_page_size)

    def integrity_failure(self, exc: IntegrityError) -> DomainException:
        """Constraint violation raised while writing; most often a concurrent change"""
        return ConflictFailure("The data changed while saving, refetch and retry")

    @contextmanager
    def unit_of_work(self, operation: str) -> Iterator[None]:
        """
        Commit everything done in the block, or roll all of it back.

        Domain exceptions propagate unchanged. Database errors are logged with
        full detail and surface as StoreFailure with a generic message.
        """
        try:
            yield
            self.db.commit()
        except DomainException as exc:
            self.db.rollback()
            if isinstance(exc, BusinessRuleFailure):
                record_business_rule_rejection(exc.code)
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Constraint violation", extra={"operation": operation, "owner_id": self.owner_id})
            raise self.integrity_failure(exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Database error", extra={"operation": operation, "owner_id": self.owner_id})
            raise StoreFailure("The operation could not be saved, try again later") from exc
