"""
Data models for tracked products and their price history.
"""

from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
import math

from price_trend_monitor.analysis.models import PriceObservation
from price_trend_monitor.utils.errors import ValidationError


@dataclass
class Product:
    """A tracked item owned by one user."""
    owner_id: str
    name: str
    description: str = ""
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate data after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate product data.

        Raises:
            ValidationError: If data is invalid
        """
        errors = []

        if not self.owner_id or not str(self.owner_id).strip():
            errors.append("Owner is required")
        if not self.name or not self.name.strip():
            errors.append("Product name is required")

        if errors:
            raise ValidationError(
                "Product validation failed",
                {"errors": errors, "name": self.name}
            )


@dataclass
class PriceEntry:
    """One observed price of a product, as stored in the price history."""
    product_id: int
    price: Decimal
    date: date
    notes: str = ""
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Normalize price and date, then validate."""
        if not isinstance(self.price, Decimal):
            try:
                self.price = Decimal(str(self.price))
            except InvalidOperation:
                raise ValidationError(
                    "Price entry validation failed",
                    {"errors": [f"Price is not a number: {self.price!r}"],
                     "product_id": self.product_id}
                )

        if isinstance(self.date, datetime):
            self.date = self.date.date()
        elif isinstance(self.date, str):
            try:
                self.date = date.fromisoformat(self.date)
            except ValueError:
                raise ValidationError(
                    "Price entry validation failed",
                    {"errors": [f"Malformed date: {self.date!r}"],
                     "product_id": self.product_id}
                )

        if self.notes is None:
            self.notes = ""

        self.validate()

    def validate(self) -> None:
        """
        Validate price entry data.

        Raises:
            ValidationError: If data is invalid
        """
        errors = []

        if not self.price.is_finite():
            errors.append("Price must be a finite number")
        elif not math.isfinite(float(self.price)):
            # Stored as REAL
            errors.append("Price is out of range")
        elif self.price < 0:
            errors.append("Price must not be negative")

        if not isinstance(self.date, date):
            errors.append("Date must be a calendar date")

        if errors:
            raise ValidationError(
                "Price entry validation failed",
                {"errors": errors, "product_id": self.product_id}
            )

    def to_observation(self) -> PriceObservation:
        """Convert to the analyzer's observation type."""
        return PriceObservation(date=self.date, price=float(self.price))
