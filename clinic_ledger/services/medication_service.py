"""Medication ledger: stock levels, replenishment and dispensing."""

import structlog

from clinic_ledger.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
)
from clinic_ledger.repositories.medications import MedicationRepository
from clinic_ledger.schemas.medications import (
    Medication,
    MedicationCreate,
    MedicationUpdate,
)
from clinic_ledger.schemas.results import OperationResult

logger = structlog.get_logger(__name__)


class MedicationService:
    """Service for medication inventory operations."""

    def __init__(self, repository: MedicationRepository):
        """Initialize service with the medication repository."""
        self.repository = repository

    def get_medication(self, name: str) -> Medication | None:
        """Get a medication by name, ignoring case."""
        return self.repository.find(name)

    def get_medication_or_raise(self, name: str) -> Medication:
        """
        Get a medication by name.

        Raises:
            NotFoundException: If no such medication exists
        """
        medication = self.repository.find(name)
        if medication is None:
            raise NotFoundException(f"Medication {name!r} not found")
        return medication

    def list_medications(self) -> list[Medication]:
        """List the whole inventory in table order."""
        return self.repository.all()

    def list_low_stock(self) -> list[Medication]:
        """Medications at or below their alert level (replenishment worklist)."""
        return self.repository.filter(lambda m: m.is_low_stock)

    def list_replenish_requests(self) -> list[Medication]:
        """Medications with an outstanding replenishment request."""
        return self.repository.filter(lambda m: m.has_replenish_request)

    def add_medication(self, data: MedicationCreate) -> Medication:
        """
        Add a medication to the inventory.

        Args:
            data: Name, initial stock and alert level

        Returns:
            Created medication

        Raises:
            ConflictException: If the name is already in use
        """
        with self.repository.transaction():
            if self.repository.find(data.name) is not None:
                raise ConflictException(f"Medication {data.name!r} already exists")
            medication = self.repository.put(
                Medication(**data.model_dump(), pending_replenish_amount=0)
            )

        logger.info(
            "medication_added",
            medication=medication.name,
            current_stock=medication.current_stock,
        )
        return medication

    def update_medication(self, name: str, data: MedicationUpdate) -> OperationResult[Medication]:
        """
        Update stock level and alert threshold.

        Args:
            name: Medication name
            data: Fields to change; unset fields are kept

        Returns:
            Result holding the updated medication
        """
        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            changes = data.model_dump(exclude_none=True)
            if not changes:
                return OperationResult.success(medication)
            medication = self.repository.put(
                Medication.model_validate({**medication.model_dump(), **changes})
            )

        logger.info("medication_updated", medication=medication.name, **changes)
        return OperationResult.success(medication)

    def remove_medication(self, name: str) -> OperationResult[Medication]:
        """Remove a medication from the inventory."""
        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            self.repository.delete(medication.key)

        logger.info("medication_removed", medication=medication.name)
        return OperationResult.success(medication)

    def dispense(self, name: str, amount: int) -> OperationResult[Medication]:
        """
        Take stock out of the inventory.

        The stock check and the decrement run under the table lock.

        Args:
            name: Medication name
            amount: Units to dispense

        Returns:
            OK with the updated medication, INSUFFICIENT_STOCK when stock is
            below amount (nothing changes), NOT_FOUND for unknown names

        Raises:
            BadRequestException: If amount is not positive
        """
        if amount <= 0:
            raise BadRequestException("Dispense amount must be positive")

        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            if medication.current_stock < amount:
                logger.info(
                    "dispense_blocked",
                    medication=medication.name,
                    requested=amount,
                    current_stock=medication.current_stock,
                )
                return OperationResult.insufficient_stock(
                    f"Only {medication.current_stock} of {medication.name} in stock",
                    value=medication,
                )
            medication = self.repository.put(
                medication.model_copy(
                    update={"current_stock": medication.current_stock - amount}
                )
            )

        logger.info(
            "medication_dispensed",
            medication=medication.name,
            amount=amount,
            current_stock=medication.current_stock,
            low_stock=medication.is_low_stock,
        )
        return OperationResult.success(medication)

    def submit_replenish_request(self, name: str, amount: int) -> OperationResult[Medication]:
        """
        Record a replenishment request; stock is unchanged until approval.

        A new request replaces any outstanding amount.

        Raises:
            BadRequestException: If amount is not positive
        """
        if amount <= 0:
            raise BadRequestException("Replenish amount must be positive")

        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            medication = self.repository.put(
                medication.model_copy(update={"pending_replenish_amount": amount})
            )

        logger.info("replenish_requested", medication=medication.name, amount=amount)
        return OperationResult.success(medication)

    def approve_replenish_request(self, name: str) -> OperationResult[Medication]:
        """
        Add the requested amount to stock and clear the request.

        Returns:
            OK with the updated medication, NOT_FOUND for unknown names,
            CONFLICT when no request is outstanding
        """
        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            if not medication.has_replenish_request:
                return OperationResult.conflict(
                    f"No replenish request outstanding for {medication.name}",
                    value=medication,
                )
            amount = medication.pending_replenish_amount
            medication = self.repository.put(
                medication.model_copy(
                    update={
                        "current_stock": medication.current_stock + amount,
                        "pending_replenish_amount": 0,
                    }
                )
            )

        logger.info(
            "replenish_approved",
            medication=medication.name,
            amount=amount,
            current_stock=medication.current_stock,
        )
        return OperationResult.success(medication)

    def restock(self, name: str, amount: int) -> OperationResult[Medication]:
        """
        Put units back into stock, bypassing the request/approval flow.

        Raises:
            BadRequestException: If amount is not positive
        """
        if amount <= 0:
            raise BadRequestException("Restock amount must be positive")

        with self.repository.transaction():
            medication = self.repository.find(name)
            if medication is None:
                return OperationResult.not_found(f"Medication {name!r} not found")
            medication = self.repository.put(
                medication.model_copy(
                    update={"current_stock": medication.current_stock + amount}
                )
            )

        logger.info(
            "medication_restocked",
            medication=medication.name,
            amount=amount,
            current_stock=medication.current_stock,
        )
        return OperationResult.success(medication)
