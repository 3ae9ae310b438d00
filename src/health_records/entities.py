"""Fitbit Web API payload models.

Only the fields the services read are declared; everything else Fitbit
returns is kept as extra data so stored documents round-trip unchanged.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FitbitModel(BaseModel):
    """Base for Fitbit payloads (camelCase on the wire, extra fields kept)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# -- Activity --


class Activity(FitbitModel):
    """A logged activity within a daily activity summary."""

    activity_id: int | None = None
    activity_parent_id: int | None = None
    activity_parent_name: str | None = None
    calories: int | None = None
    description: str | None = None
    duration: int | None = None
    log_id: int | None = None
    name: str | None = None
    start_date: str | None = None
    start_time: str | None = None
    steps: int | None = None
    distance: float | None = None


class ActivityGoals(FitbitModel):
    active_minutes: int | None = None
    calories_out: int | None = None
    distance: float | None = None
    floors: int | None = None
    steps: int | None = None


class Distance(FitbitModel):
    activity: str | None = None
    distance: float | None = None


class HeartRateZone(FitbitModel):
    calories_out: float | None = None
    max: int | None = None
    min: int | None = None
    minutes: int | None = None
    name: str | None = None


class ActivitySummary(FitbitModel):
    activity_calories: int | None = None
    calories_out: int | None = None
    distances: list[Distance] = Field(default_factory=list)
    fairly_active_minutes: int | None = None
    heart_rate_zones: list[HeartRateZone] = Field(default_factory=list)
    lightly_active_minutes: int | None = None
    resting_heart_rate: int | None = None
    sedentary_minutes: int | None = None
    steps: int | None = None
    very_active_minutes: int | None = None


class ActivityResponse(FitbitModel):
    """Response of ``GET /1/user/-/activities/date/{date}.json``."""

    activities: list[Activity] = Field(default_factory=list)
    goals: ActivityGoals | None = None
    summary: ActivitySummary | None = None


# -- Sleep --


class SleepStages(FitbitModel):
    deep: int | None = None
    light: int | None = None
    rem: int | None = None
    wake: int | None = None


class SleepSummary(FitbitModel):
    stages: SleepStages | None = None
    total_minutes_asleep: int | None = None
    total_sleep_records: int | None = None
    total_time_in_bed: int | None = None


class SleepLog(FitbitModel):
    date_of_sleep: str | None = None
    duration: int | None = None
    efficiency: int | None = None
    end_time: str | None = None
    is_main_sleep: bool | None = None
    log_id: int | None = None
    minutes_asleep: int | None = None
    minutes_awake: int | None = None
    start_time: str | None = None
    time_in_bed: int | None = None
    type: str | None = None


class SleepResponse(FitbitModel):
    """Response of ``GET /1.2/user/-/sleep/date/{date}.json``."""

    sleep: list[SleepLog] = Field(default_factory=list)
    summary: SleepSummary | None = None


# -- Weight --


class Weight(FitbitModel):
    """A single body weight log entry."""

    bmi: float | None = None
    date: str
    fat: float | None = None
    log_id: int | str | None = None
    source: str | None = None
    time: str | None = None
    weight: float | None = None


class WeightResponse(FitbitModel):
    """Response of ``GET /1/user/-/body/log/weight/date/{start}/{end}.json``."""

    weight: list[Weight] = Field(default_factory=list)


# -- Food --


class NutritionalValues(FitbitModel):
    calories: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None
    protein: float | None = None
    sodium: float | None = None


class LoggedFood(FitbitModel):
    amount: float | None = None
    brand: str | None = None
    calories: float | None = None
    food_id: int | None = None
    meal_type_id: int | None = None
    name: str | None = None


class FoodLog(FitbitModel):
    is_favorite: bool | None = None
    log_date: str | None = None
    log_id: int | None = None
    logged_food: LoggedFood | None = None
    nutritional_values: NutritionalValues | None = None


class FoodGoals(FitbitModel):
    calories: int | None = None


class FoodResponse(FitbitModel):
    """Response of ``GET /1/user/-/foods/log/date/{date}.json``."""

    foods: list[FoodLog] = Field(default_factory=list)
    goals: FoodGoals | None = None
    summary: NutritionalValues | None = None
