import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QSettings  # noqa: E402
from PySide6.QtWidgets import QWidget  # noqa: E402

from wizardshell.components import Component  # noqa: E402
from wizardshell.controller import WizardController  # noqa: E402
from wizardshell.core import InstallerCore  # noqa: E402
from wizardshell.resources import COMPONENT_CONTEXT, CONTROL_CONTEXT, RunMode  # noqa: E402
from wizardshell.scripting import ScriptBridge, ScriptContext  # noqa: E402
from wizardshell.settings import InstallSettings  # noqa: E402


PRODUCT_VALUES = {
    "Publisher": "Acme",
    "Name": "Rocket",
    "Title": "Rocket",
    "Version": "2.1",
    "ProductName": "Rocket Launcher",
    "TargetDir": "/opt",
}


class ExitRecorder:
    """Stands in for QCoreApplication.exit in silent-mode tests."""

    def __init__(self):
        self.codes: list[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


@pytest.fixture
def core():
    return InstallerCore(
        RunMode.INSTALL,
        dict(PRODUCT_VALUES),
        [
            Component("core", "Core files"),
            Component("docs", "Documentation", selected=False),
        ],
    )


@pytest.fixture
def contexts(qapp):
    return {
        CONTROL_CONTEXT: ScriptContext(CONTROL_CONTEXT),
        COMPONENT_CONTEXT: ScriptContext(COMPONENT_CONTEXT, constructor="Component"),
    }


@pytest.fixture
def bridge(contexts):
    return ScriptBridge(contexts)


@pytest.fixture
def qsettings(tmp_path):
    return QSettings(str(tmp_path / "settings.ini"), QSettings.IniFormat)


@pytest.fixture
def settings(qsettings):
    return InstallSettings("Acme", "Rocket", qsettings)


@pytest.fixture
def exit_recorder():
    return ExitRecorder()


@pytest.fixture
def controller(qapp, core, bridge, settings, exit_recorder):
    return WizardController(core, bridge, settings, exit_app=exit_recorder)


@pytest.fixture
def wizard(controller):
    controller.add_default_pages()
    return controller


@pytest.fixture
def make_content(qtbot):
    """Factory for named widgets to host on dynamic pages."""
    created = []

    def factory(name: str, title: str = "") -> QWidget:
        widget = QWidget()
        widget.setObjectName(name)
        if title:
            widget.setWindowTitle(title)
        created.append(widget)
        return widget

    return factory
