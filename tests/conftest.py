"""Pytest configuration and fixtures."""

from pathlib import Path
import sys

import pytest
import pytest_asyncio

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from health_records.documents import ActivityDocument, DocumentKind  # noqa: E402
from health_records.store import InMemoryDocumentStore  # noqa: E402

SEEDED_DATES = ("2024-01-01", "2024-01-15", "2024-01-31")


def make_activity(date: str, doc_id: str | None = None) -> dict:
    """Stored form of an Activity document for ``date``."""
    return ActivityDocument(
        id=doc_id or f"activity-{date}",
        date=date,
        activity={"summary": {"steps": 1000}},
    ).to_store()


@pytest.fixture
def sample_activity_response():
    """Sample Fitbit daily activity response."""
    return {
        "activities": [
            {
                "activityId": 90009,
                "activityParentId": 90009,
                "calories": 312,
                "description": "Running - 5 mph (12 min/mile)",
                "distance": 4.8,
                "duration": 1800000,
                "logId": 1234567890,
                "name": "Run",
                "startTime": "07:00",
                "steps": 5200,
            }
        ],
        "goals": {"activeMinutes": 30, "caloriesOut": 2500, "distance": 8.05, "steps": 10000},
        "summary": {
            "activityCalories": 980,
            "caloriesBMR": 1700,
            "caloriesOut": 2680,
            "restingHeartRate": 58,
            "sedentaryMinutes": 640,
            "steps": 10523,
        },
    }


@pytest.fixture
def sample_weight_response():
    """Sample Fitbit weight log range response."""
    return {
        "weight": [
            {"bmi": 23.1, "date": "2024-01-10", "logId": 1, "time": "07:30:00", "weight": 75.5},
            {"bmi": 23.0, "date": "2024-01-14", "logId": 2, "time": "07:31:00", "weight": 75.2},
        ]
    }


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(batch_size=2)


@pytest_asyncio.fixture
async def seeded_store() -> InMemoryDocumentStore:
    """Store holding three Activity documents, written in date order."""
    store = InMemoryDocumentStore(batch_size=2)
    for date in SEEDED_DATES:
        await store.create(make_activity(date), DocumentKind.ACTIVITY.value)
    return store
