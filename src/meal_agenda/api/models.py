"""Request and response models for the agenda API."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from meal_agenda.domain.agenda import AgendaViewModel
from meal_agenda.domain.meals import MealRecord


class FoodItemModel(BaseModel):
    name: str
    calories: float


class MealModel(BaseModel):
    id: str
    eaten_at: datetime
    items: list[FoodItemModel] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: MealRecord) -> "MealModel":
        return cls(
            id=record.id,
            eaten_at=record.eaten_at,
            items=[
                FoodItemModel(name=item.name, calories=item.calories)
                for item in record.items
            ],
        )


class AgendaResponse(BaseModel):
    """Serialized agenda view model."""

    selected_date: date
    meals_by_date: dict[str, list[MealModel]]
    resolved_goal_calories: float
    total_calories: float
    is_loading: bool
    day_goal_id: str | None = None
    last_error: str | None = None

    @classmethod
    def from_view_model(cls, view_model: AgendaViewModel) -> "AgendaResponse":
        return cls(
            selected_date=view_model.selected_date,
            meals_by_date={
                key: [MealModel.from_record(meal) for meal in meals]
                for key, meals in view_model.meals_by_date.items()
            },
            resolved_goal_calories=view_model.resolved_goal_calories,
            total_calories=view_model.total_calories,
            is_loading=view_model.is_loading,
            day_goal_id=view_model.day_goal_id,
            last_error=view_model.last_error,
        )


class AgendaEvent(AgendaResponse):
    """View model pushed over the event stream."""

    totals_changed: bool = False


class SelectDateRequest(BaseModel):
    date: date


class SetGoalRequest(BaseModel):
    goal_calories: str | float


class SetGoalResponse(BaseModel):
    id: str
