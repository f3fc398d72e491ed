import csv
from collections.abc import Callable
from datetime import date, datetime, time
from pathlib import Path

import pytest
from dotenv import load_dotenv

from clinic_ledger.config import Settings
from clinic_ledger.dependencies import Services, build_services
from clinic_ledger.schemas.medical_records import OutcomeCreate
from clinic_ledger.schemas.medications import MedicationCreate

# Load environment variables from .env file
load_dotenv()

# Fixed "now" for every test: Monday 19 Oct 2026, 10:30
NOW = datetime(2026, 10, 19, 10, 30)
TODAY = NOW.date()
TOMORROW = date(2026, 10, 20)


def write_table(path: Path, header: list[str], rows: list[list[str]]) -> None:
    """Write a CSV table the way a spreadsheet export would."""
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(header)
        writer.writerows(rows)


def read_table(path: Path) -> list[list[str]]:
    """Read a CSV table including its header."""
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at an empty temporary data directory."""
    return Settings(DATA_DIR=str(tmp_path), LOG_FORMAT="console")  # type: ignore[call-arg]


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def make_services(test_settings: Settings, clock) -> Callable[[], Services]:
    """Factory building services over the temporary tables."""

    def factory() -> Services:
        return build_services(test_settings, now=clock)

    return factory


@pytest.fixture
def services(make_services) -> Services:
    """Services over fresh, header-only tables."""
    return make_services()


@pytest.fixture
def stocked_services(services: Services) -> Services:
    """Services with a small medication inventory."""
    services.medications.add_medication(
        MedicationCreate(name="Paracetamol", current_stock=100, low_stock_threshold=20)
    )
    services.medications.add_medication(
        MedicationCreate(name="Ibuprofen", current_stock=5, low_stock_threshold=10)
    )
    return services


@pytest.fixture
def sample_outcome() -> OutcomeCreate:
    """Sample appointment outcome for testing."""
    return OutcomeCreate(
        diagnosis="Seasonal flu",
        treatment="Rest and fluids",
        prescription="paracetamol",
        quantity=10,
    )


@pytest.fixture
def confirmed_appointment(stocked_services: Services):
    """A CONFIRMED appointment for patient P1001 with doctor D1001 tomorrow at 09:00."""
    scheduler = stocked_services.appointments
    slot = scheduler.add_slot("D1001", TOMORROW, time(9))
    scheduler.book_slot("P1001", "D1001", TOMORROW, time(9)).raise_for_status()
    return scheduler.approve(slot.id).raise_for_status()
