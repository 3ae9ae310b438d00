"""Stored document models, one per document kind."""

import uuid
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .entities import ActivityResponse, FoodResponse, SleepResponse, Weight
from .types import JSONObject


class DocumentKind(str, Enum):
    """Document discriminator, also the store partition key."""

    ACTIVITY = "Activity"
    SLEEP = "Sleep"
    WEIGHT = "Weight"
    FOOD = "Food"

    @property
    def route(self) -> str:
        """URL segment the kind is served under."""
        return self.value.lower()


class HealthDocument(BaseModel):
    """Fields shared by every stored document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: ClassVar[DocumentKind]
    payload_field: ClassVar[str]

    id: str
    date: str
    document_type: DocumentKind

    def to_store(self) -> JSONObject:
        """Serialize the document the way it is persisted."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ActivityDocument(HealthDocument):
    kind = DocumentKind.ACTIVITY
    payload_field = "activity"

    document_type: DocumentKind = DocumentKind.ACTIVITY
    activity: ActivityResponse | None = None


class SleepDocument(HealthDocument):
    kind = DocumentKind.SLEEP
    payload_field = "sleep"

    document_type: DocumentKind = DocumentKind.SLEEP
    sleep: SleepResponse | None = None


class WeightDocument(HealthDocument):
    kind = DocumentKind.WEIGHT
    payload_field = "weight"

    document_type: DocumentKind = DocumentKind.WEIGHT
    weight: Weight | None = None


class FoodDocument(HealthDocument):
    kind = DocumentKind.FOOD
    payload_field = "food"

    document_type: DocumentKind = DocumentKind.FOOD
    food: FoodResponse | None = None


DOCUMENT_MODELS: dict[DocumentKind, type[HealthDocument]] = {
    model.kind: model
    for model in (ActivityDocument, SleepDocument, WeightDocument, FoodDocument)
}


def new_document(kind: DocumentKind, date: str, payload: Any) -> HealthDocument:
    """Create a document of ``kind`` with a fresh random id.

    Args:
        kind: Document kind.
        date: Day the payload belongs to (YYYY-MM-DD).
        payload: Fitbit payload model or raw dict for the kind.
    """
    model = DOCUMENT_MODELS[kind]
    return model.model_validate(
        {
            "id": str(uuid.uuid4()),
            "date": date,
            "documentType": kind.value,
            model.payload_field: payload,
        }
    )
