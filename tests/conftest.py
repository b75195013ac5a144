from datetime import datetime

import pytest
from samples import CATEGORY

from lab_results.parsers.models import Order, OrderLine
from lab_results.parsers.oru import ResultsReceiver
from lab_results.services.repository import InMemoryRepository

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


@pytest.fixture
def repo():
    r = InMemoryRepository(categories={CATEGORY: 5})
    r.add_order(
        Order(id=1001, patient_id=42, encounter_id=7),
        [
            OrderLine(1001, "CBC", "Complete blood count", 1),
            OrderLine(1001, "GLU", "Glucose", 2),
            OrderLine(1001, "GLU", "Glucose", 3),
        ],
    )
    return r


@pytest.fixture
def receive(repo):
    def _receive(text):
        return ResultsReceiver(repo, CATEGORY, now=lambda: FIXED_NOW).receive(text)

    return _receive
