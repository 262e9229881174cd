# Shared fixtures. Provides a fallback 'qtbot' fixture if pytest-qt is not
# installed so the Qt model tests still get a QApplication; if pytest-qt is
# present its fixture wins.

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:  # If pytest-qt present, do nothing (its fixture will be used)
    import pytestqt  # type: ignore  # noqa: F401
except Exception:  # pragma: no cover
    try:
        from PyQt6.QtWidgets import QApplication
    except Exception:  # pragma: no cover
        QApplication = None  # type: ignore

    @pytest.fixture
    def qtbot():  # type: ignore
        if QApplication is None:
            pytest.skip("PyQt6 not available")
        app = QApplication.instance() or QApplication(sys.argv)  # type: ignore

        class Bot:
            def __init__(self):
                self.app = app
                self.widgets = []

            def addWidget(self, w):  # mimic pytest-qt API subset
                self.widgets.append(w)

        return Bot()


from portal.models import EntitySpec  # noqa: E402
from portal.services.event_bus import EventBus  # noqa: E402
from portal.stores.entity_store import EntityStore  # noqa: E402


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def client_rows():
    return [
        {"id": 1, "name": "Acme Trading", "email": "ops@acme.sa", "city": "Riyadh", "created_at": "2024-01-05T23:00:00Z", "balance": 1200},
        {"id": 2, "name": "beta Logistics", "email": None, "city": "Jeddah", "created_at": "2024-02-11", "balance": 50.5},
        {"id": 3, "name": "Gamma Foods", "email": "hello@gamma.sa", "city": "", "created_at": "not-a-date", "balance": None},
        {"id": 4, "name": "Acme Holdings", "email": "info@acme.sa", "city": "Riyadh", "created_at": None, "balance": 300},
    ]


@pytest.fixture
def store(bus):
    """Fresh store per test, searching every field except the id."""
    return EntityStore(EntitySpec(name="clients"), event_bus=bus)
