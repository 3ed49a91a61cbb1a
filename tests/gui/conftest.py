"""Qt setup shared by the GUI tests; widgets render offscreen."""
import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication  # noqa: E402

GUI_DIR = Path(__file__).resolve().parent


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole session; pytest-qt owns its shutdown."""
    yield QApplication.instance() or QApplication([])


@pytest.fixture
def qtbot(qapp, request):
    from pytestqt.qtbot import QtBot

    yield QtBot(request)
    # flush deleteLater() from the test's widgets and workers
    qapp.processEvents()


def pytest_collection_modifyitems(config, items):
    marker = pytest.mark.gui_offscreen
    for item in items:
        if GUI_DIR in Path(str(item.fspath)).resolve().parents and not item.get_closest_marker("gui_offscreen"):
            item.add_marker(marker)
