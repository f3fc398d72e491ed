"""Medication inventory schemas."""

from pydantic import BaseModel, Field, field_validator


class MedicationBase(BaseModel):
    """Base medication schema with common fields."""

    name: str = Field(..., min_length=1, max_length=200)
    current_stock: int = Field(..., ge=0)
    low_stock_threshold: int = Field(..., ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip surrounding whitespace from the name."""
        v = v.strip()
        if not v:
            raise ValueError("Medication name cannot be blank")
        return v


class MedicationCreate(MedicationBase):
    """Schema for adding a medication to the inventory."""


class MedicationUpdate(BaseModel):
    """Schema for updating stock levels."""

    current_stock: int | None = Field(None, ge=0)
    low_stock_threshold: int | None = Field(None, ge=0)


class Medication(MedicationBase):
    """One medication row."""

    pending_replenish_amount: int = Field(default=0, ge=0)

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return medication_key(self.name)

    @property
    def is_low_stock(self) -> bool:
        """Stock at or below the alert threshold."""
        return self.current_stock <= self.low_stock_threshold

    @property
    def has_replenish_request(self) -> bool:
        """Check if a replenishment request is outstanding."""
        return self.pending_replenish_amount > 0


def medication_key(name: str) -> str:
    """Normalise a medication name for lookups."""
    return name.strip().casefold()
