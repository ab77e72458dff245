"""Domain models for meal entries."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FoodItem:
    """A single food within a meal."""

    name: str
    calories: float


@dataclass(frozen=True)
class MealRecord:
    """Meal entry as stored remotely."""

    id: str
    eaten_at: datetime
    items: tuple[FoodItem, ...] = field(default_factory=tuple)
