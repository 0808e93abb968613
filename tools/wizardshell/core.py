"""Install engine as seen by the wizard.

InstallerCore holds the run mode, the product values and the component
set, and starts the payload worker. It also relays page insertion requests
coming from components and scripts to whoever drives the wizard.
"""

import logging

from PySide6.QtCore import QObject, Signal, Slot
from PySide6.QtWidgets import QWidget

from .components import Component
from .resources import RunMode, Status
from .workers import InstallWorker

logger = logging.getLogger(__name__)


class InstallerCore(QObject):
    """Run mode, values, components and install worker lifecycle."""

    mode_changed = Signal(str)
    status_changed = Signal(str)
    value_changed = Signal(str, str)

    installation_started = Signal()
    installation_finished = Signal()
    uninstallation_started = Signal()
    uninstallation_finished = Signal()
    update_started = Signal()

    # Relayed from the worker
    step_changed = Signal(str, int)
    log_line = Signal(str)

    # Page graph requests (content widget, page id[, position])
    wizard_page_insertion_requested = Signal(QWidget, int)
    wizard_page_removal_requested = Signal(QWidget)
    wizard_widget_insertion_requested = Signal(QWidget, int, int)
    wizard_widget_removal_requested = Signal(QWidget)
    wizard_page_visibility_change_requested = Signal(bool, int)
    page_validator_requested = Signal(str, str)

    def __init__(
        self,
        mode: RunMode = RunMode.INSTALL,
        values: dict | None = None,
        components: list[Component] | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self._mode = mode
        self._values: dict[str, str] = dict(values or {})
        self._components: list[Component] = list(components or [])
        self._to_install: list[Component] = []
        self._status = Status.UNFINISHED
        self.error = ""
        self._worker: InstallWorker | None = None
        self._running_action = ""

    # -- Mode --

    @property
    def mode(self) -> RunMode:
        return self._mode

    def set_mode(self, mode: RunMode) -> None:
        if mode == self._mode:
            return
        logger.info("Run mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        self.mode_changed.emit(mode.value)

    @Slot(result=bool)
    def is_installer(self) -> bool:
        return self._mode == RunMode.INSTALL

    @Slot(result=bool)
    def is_updater(self) -> bool:
        return self._mode == RunMode.UPDATE

    @Slot(result=bool)
    def is_uninstaller(self) -> bool:
        return self._mode == RunMode.UNINSTALL

    @Slot(result=bool)
    def is_maintainer(self) -> bool:
        return self._mode == RunMode.MAINTAIN

    # -- Values --

    @Slot(str, result=str)
    def value(self, key: str) -> str:
        return self._values.get(key, "")

    @Slot(str, str)
    def set_value(self, key: str, value: str) -> None:
        if self._values.get(key) == value:
            return
        self._values[key] = value
        self.value_changed.emit(key, value)

    # -- Status --

    @property
    def status(self) -> Status:
        return self._status

    def set_status(self, status: Status) -> None:
        if status == self._status:
            return
        self._status = status
        self.status_changed.emit(status.value)

    @Slot(result=str)
    def status_name(self) -> str:
        return self._status.value

    @Slot(result=str)
    def error_message(self) -> str:
        return self.error

    @Slot(result=bool)
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.isRunning()

    # -- Components --

    def components(self) -> list[Component]:
        return list(self._components)

    def component(self, name: str) -> Component | None:
        for component in self._components:
            if component.name == name:
                return component
        return None

    def add_component(self, component: Component) -> None:
        self._components.append(component)

    def calculate_components_to_install(self) -> bool:
        self._to_install = [
            c for c in self._components if c.selected or c.forced
        ]
        return bool(self._to_install)

    def components_to_install(self) -> list[Component]:
        return list(self._to_install)

    def components_requiring_license(self) -> list[Component]:
        """Components about to be installed that bring a license.

        Outside a fresh install, components already on disk have had their
        licenses accepted and are left out.
        """
        self.calculate_components_to_install()
        components = self._to_install
        if self.is_maintainer() or self.is_updater():
            components = [c for c in components if not c.installed]
        return [c for c in components if c.licenses]

    def components_to_uninstall(self) -> list[Component]:
        if self.is_uninstaller():
            return [c for c in self._components if c.installed]
        return [c for c in self._components if c.installed and not (c.selected or c.forced)]

    @Slot(str, bool)
    def select_component(self, name: str, selected: bool) -> None:
        component = self.component(name)
        if component is None:
            logger.debug("No component %s to select", name)
            return
        component.selected = selected or component.forced

    # -- Page graph requests --

    def add_wizard_page(self, content: QWidget, page_id: int) -> None:
        self.wizard_page_insertion_requested.emit(content, page_id)

    def remove_wizard_page(self, content: QWidget) -> None:
        self.wizard_page_removal_requested.emit(content)

    def add_wizard_page_item(self, widget: QWidget, page_id: int, position: int = 0) -> None:
        self.wizard_widget_insertion_requested.emit(widget, page_id, position)

    def remove_wizard_page_item(self, widget: QWidget) -> None:
        self.wizard_widget_removal_requested.emit(widget)

    @Slot(int, bool)
    def set_default_page_visible(self, page_id: int, visible: bool) -> None:
        self.wizard_page_visibility_change_requested.emit(visible, page_id)

    @Slot(str, str)
    def set_validator_for_custom_page(self, page_name: str, callback_name: str) -> None:
        self.page_validator_requested.emit(page_name, callback_name)

    # -- Runs --

    @Slot()
    def run_installer(self) -> None:
        self.calculate_components_to_install()
        to_install = [c for c in self._to_install if not c.installed]
        self._start("install", to_install, [])
        self.installation_started.emit()

    @Slot()
    def run_uninstaller(self) -> None:
        self._start("uninstall", [], self.components_to_uninstall())
        self.uninstallation_started.emit()

    @Slot()
    def run_package_updater(self) -> None:
        self.calculate_components_to_install()
        if self.is_updater():
            to_install = list(self._to_install)
        else:
            to_install = [c for c in self._to_install if not c.installed]
        self._start("update", to_install, self.components_to_uninstall())
        self.update_started.emit()

    @Slot()
    def run(self) -> None:
        """Start the run matching the current mode."""
        if self.is_installer():
            self.run_installer()
        elif self.is_uninstaller():
            self.run_uninstaller()
        else:
            self.run_package_updater()

    @Slot()
    def interrupt(self) -> None:
        if self.is_running():
            logger.info("Interrupting %s", self._running_action)
            self._worker.requestInterruption()

    def _start(self, action: str, install: list[Component], remove: list[Component]) -> None:
        if self.is_running():
            logger.warning("%s requested while %s is running", action, self._running_action)
            return
        logger.info(
            "Starting %s: %d to install, %d to remove", action, len(install), len(remove)
        )
        self.error = ""
        self.set_status(Status.RUNNING)
        self._running_action = action
        self._worker = InstallWorker(install, remove)
        self._worker.step_changed.connect(self.step_changed)
        self._worker.log_line.connect(self.log_line)
        self._worker.finished.connect(self._on_worker_finished)
        self._worker.start()

    def _on_worker_finished(self, success: bool, error: str) -> None:
        worker = self._worker
        if worker is not None:
            worker.wait()
            if success:
                for component in worker.install:
                    component.installed = True
                for component in worker.remove:
                    component.installed = False

        action = self._running_action
        if success:
            self.set_status(Status.SUCCESS)
            logger.info("%s finished", action)
        else:
            self.error = error
            canceled = worker is not None and worker.isInterruptionRequested()
            self.set_status(Status.CANCELED if canceled else Status.FAILURE)
            logger.error("%s failed: %s", action, error)

        if action == "uninstall":
            self.uninstallation_finished.emit()
        else:
            self.installation_finished.emit()
