"""Wizard controller: the page graph façade used by the view, the engine and scripts.

The controller exclusively owns the page registry, the navigation state and
the cache of hidden pages. The interactive window and the silent run both
drive the same instance.
"""

import logging
from typing import Callable

from PySide6.QtCore import QCoreApplication, QObject, Qt, QTimer, Signal, Slot
from PySide6.QtWidgets import QWidget

from .core import InstallerCore
from .lifecycle import PageLifecycleDriver, WizardState
from .pages import (
    ComponentSelectionPage,
    DynamicPage,
    ErrorPage,
    FinishedPage,
    InstallerPage,
    IntroductionPage,
    LicenseCheckPage,
    PerformInstallationPage,
    ReadyForInstallationPage,
    TargetDirectoryPage,
)
from .preconditions import Precondition, first_failure
from .registry import PageRegistry
from .resolver import NextPageResolver
from .resources import (
    COMPONENT_CONTEXT,
    CONTROL_CONTEXT,
    DYNAMIC_PAGE_PREFIX,
    NO_NEXT_PAGE,
    NO_PAGE,
    SILENT_STEP_DELAY_MS,
    ExitCode,
    Status,
    WizardButton,
    WizardPage,
)
from .scripting import ScriptBridge
from .settings import InstallSettings

logger = logging.getLogger(__name__)

BOUND_CONTEXTS = (CONTROL_CONTEXT, COMPONENT_CONTEXT)


def _exit_application(code: int) -> None:
    QCoreApplication.exit(code)


class WizardController(QObject):
    """Page insertion, removal, visibility and navigation.

    Exposed to both script contexts as ``gui``; the engine is exposed
    alongside it as ``installer``.
    """

    page_list_changed = Signal()
    current_id_changed = Signal(int)
    validation_failed = Signal(int, str)
    precondition_failed = Signal(str, str)  # (name, message)
    rejected = Signal()
    accepted = Signal()

    def __init__(
        self,
        core: InstallerCore,
        bridge: ScriptBridge,
        settings: InstallSettings,
        preconditions: list[Precondition] | None = None,
        confirm_cancel: Callable[[], bool] | None = None,
        exit_app: Callable[[int], None] | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self.setObjectName("gui")
        self.core = core
        self.bridge = bridge
        self.settings = settings
        self.preconditions = list(preconditions or [])
        self.confirm_cancel = confirm_cancel or (lambda: True)
        self.exit_app = exit_app or _exit_application
        self.exit_code: ExitCode | None = None

        self.registry = PageRegistry()
        self.state = WizardState()
        self._removed_pages: dict[int, InstallerPage] = {}

        self.driver = PageLifecycleDriver(self.registry, bridge, self.state, self)
        self.driver.current_id_changed.connect(self._on_current_id_changed)
        self.resolver = NextPageResolver(self.registry, core)

        core.wizard_page_insertion_requested.connect(self.insert_dynamic_page)
        core.wizard_page_removal_requested.connect(self.remove_dynamic_page)
        core.wizard_widget_insertion_requested.connect(self.insert_widget)
        core.wizard_widget_removal_requested.connect(self.remove_widget)
        core.wizard_page_visibility_change_requested.connect(
            self._on_visibility_change_requested, Qt.QueuedConnection
        )
        core.page_validator_requested.connect(self.set_validator_for_custom_page)
        core.installation_finished.connect(self.show_finished_page, Qt.QueuedConnection)
        core.uninstallation_finished.connect(self.show_finished_page, Qt.QueuedConnection)

        for context in bridge.contexts.values():
            context.set_global("gui", self)
            context.set_global("installer", core)

    def add_default_pages(self) -> None:
        core = self.core
        for page_id, page in (
            (WizardPage.INTRODUCTION, IntroductionPage(core)),
            (WizardPage.TARGET_DIRECTORY, TargetDirectoryPage(core)),
            (WizardPage.COMPONENT_SELECTION, ComponentSelectionPage(core)),
            (WizardPage.LICENSE_CHECK, LicenseCheckPage(core)),
            (WizardPage.READY_FOR_INSTALLATION, ReadyForInstallationPage(core)),
            (WizardPage.PERFORM_INSTALLATION, PerformInstallationPage(core, self.settings)),
            (WizardPage.INSTALLATION_FINISHED, FinishedPage(core)),
            (WizardPage.INSTALLATION_ERROR, ErrorPage(core)),
        ):
            self.set_page(page_id, page)

        # Maintenance runs never choose a target directory.
        if not core.is_installer():
            self.set_page_visible(WizardPage.TARGET_DIRECTORY, False)

    def set_page(self, page_id: int, page: InstallerPage) -> None:
        """Register a standard page at a fixed slot."""
        page.silent = self.state.silent
        self.registry.insert_at(page_id, page)
        self.page_list_changed.emit()

    # -- Lookup --

    def page_by_id(self, page_id: int) -> InstallerPage | None:
        return self.registry.get(page_id)

    @Slot(str, result=QObject)
    def page_by_object_name(self, name: str) -> InstallerPage | None:
        page_id = self.registry.find_by_object_name(name)
        return None if page_id is None else self.registry.get(page_id)

    @Slot(str, result=QObject)
    def page_widget_by_object_name(self, name: str) -> QWidget | None:
        """Find a widget named *name* on any registered page."""
        for page in self.registry.pages():
            if page.objectName() == name:
                return page
            widget = page.findChild(QWidget, name)
            if widget is not None:
                return widget
        return None

    def current_page(self) -> InstallerPage | None:
        return self.driver.current_page()

    @Slot(result=int)
    def current_page_id(self) -> int:
        return self.state.current_id

    def page_ids(self) -> list[int]:
        return self.registry.ordered_ids()

    def _all_pages(self) -> list[InstallerPage]:
        return self.registry.pages() + list(self._removed_pages.values())

    # -- Dynamic pages --

    @Slot(QWidget, int, result=int)
    def insert_dynamic_page(self, content: QWidget, requested_id: int) -> int:
        """Wrap *content* in a page at *requested_id* or the nearest free slot before it.

        The search starts at *requested_id* itself and steps down one id at a
        time, so with 40 taken a request for 40 lands on 39. When no id at or
        below the request is free the content is left out and NO_PAGE is
        returned.
        """
        self.remove_dynamic_page(content)

        page_id = self.registry.find_first_free_slot_at_or_before(requested_id)
        if page_id is None:
            logger.warning(
                "No free slot at or below %#x for %s", requested_id, content.objectName()
            )
            return NO_PAGE
        page = DynamicPage(content, self.core)
        page.silent = self.state.silent
        self.registry.insert_at(page_id, page)
        for context in BOUND_CONTEXTS:
            self.bridge.bind(context, page)

        logger.info("Inserted %s at %#x (requested %#x)", page.objectName(), page_id, requested_id)
        self.page_list_changed.emit()
        return page_id

    @Slot(QWidget)
    def remove_dynamic_page(self, content: QWidget) -> None:
        page_id = self.registry.find_by_content(content)
        if page_id is not None:
            page = self.registry.remove_by_id(page_id)
        else:
            page_id, page = self._find_removed(content)
            if page is not None:
                del self._removed_pages[page_id]

        if page is None:
            logger.debug("No page hosts %s", content.objectName())
        else:
            for context in BOUND_CONTEXTS:
                self.bridge.unbind(context, page)
            page.release()
            page.deleteLater()
            logger.info("Removed %s from %#x", page.objectName(), page_id)
        self.page_list_changed.emit()

    def _find_removed(self, content: QWidget) -> tuple[int, DynamicPage | None]:
        for page_id, page in self._removed_pages.items():
            if getattr(page, "content", None) is content:
                return page_id, page
        return NO_PAGE, None

    # -- Visibility --

    @Slot(int, bool)
    def set_page_visible(self, page_id: int, visible: bool) -> None:
        if visible:
            page = self._removed_pages.get(page_id)
            if page is None:
                logger.debug("No hidden page at %#x", page_id)
            elif page_id in self.registry:
                logger.warning("Cannot show %s, slot %#x is taken", page.objectName(), page_id)
            else:
                del self._removed_pages[page_id]
                self.registry.insert_at(page_id, page)
        else:
            page = self.registry.remove_by_id(page_id)
            if page is not None:
                self._removed_pages[page_id] = page
        self.page_list_changed.emit()

    def is_page_hidden(self, page_id: int) -> bool:
        return page_id in self._removed_pages

    def _on_visibility_change_requested(self, visible: bool, page_id: int) -> None:
        self.set_page_visible(page_id, visible)

    # -- Widgets on pages --

    @Slot(QWidget, int, int)
    def insert_widget(self, widget: QWidget, page_id: int, position: int = 0) -> None:
        page = self.registry.get(page_id) or self._removed_pages.get(page_id)
        if page is None:
            logger.debug("No page at %#x for %s", page_id, widget.objectName())
            return
        self.remove_widget(widget)
        page.insert_custom_widget(widget, position)
        for context in BOUND_CONTEXTS:
            self.bridge.bind(context, widget)
        self.page_list_changed.emit()

    @Slot(QWidget)
    def remove_widget(self, widget: QWidget) -> None:
        for page in self._all_pages():
            if page.remove_custom_widget(widget):
                for context in BOUND_CONTEXTS:
                    self.bridge.unbind(context, widget)
                break
        self.page_list_changed.emit()

    # -- Validators --

    @Slot(str, str)
    def set_validator_for_custom_page(self, page_name: str, callback_name: str) -> None:
        page = self.page_by_object_name(DYNAMIC_PAGE_PREFIX + page_name)
        if page is None:
            logger.debug("No custom page %s for validator %s", page_name, callback_name)
            return
        page.set_validator(lambda: self._run_validator(callback_name, page))

    def _run_validator(self, callback_name: str, page: InstallerPage) -> bool:
        context = self.bridge.context(COMPONENT_CONTEXT)
        if context is None or not context.initialized:
            return True
        result = context.call_method(callback_name, page)
        if result is None:
            return True
        return result.toBool()

    # -- Navigation --

    def start(self) -> bool:
        """Run the preconditions and enter the first page.

        Returns False when a precondition failed; ``precondition_failed`` has
        been emitted and the caller may retry.
        """
        failed = first_failure(self.preconditions)
        if failed is not None:
            self.precondition_failed.emit(failed.name, failed.message)
            return False
        if self.state.current_id == NO_PAGE:
            ids = self.registry.ordered_ids()
            if ids:
                self.driver.go_to(ids[0])
        return True

    @Slot(result=bool)
    def advance(self) -> bool:
        current_id = self.state.current_id
        page = self.registry.get(current_id)
        if page is not None and not page.validate_page():
            logger.info("Validation failed on %s", page.objectName())
            self.validation_failed.emit(current_id, page.error_text())
            return False

        next_id = self.resolver.resolve(current_id)
        if next_id == NO_NEXT_PAGE:
            logger.debug("No page after %#x", current_id)
            return False

        if page is not None and page.commit:
            self.state.committed_id = current_id
        self.driver.go_to(next_id)
        self.page_list_changed.emit()
        return True

    @Slot(result=bool)
    def go_back(self) -> bool:
        current_id = self.state.current_id
        if current_id == NO_PAGE:
            return False
        target = self.resolver.resolve_back(current_id)
        if target == NO_PAGE or target <= self.state.committed_id:
            logger.debug("Cannot go back from %#x", current_id)
            return False
        self.driver.go_to(target)
        self.page_list_changed.emit()
        return True

    def next_id(self) -> int:
        return self.resolver.resolve(self.state.current_id)

    @Slot(int)
    @Slot(int, int)
    def click_button(self, button: int, delay_ms: int = 0) -> None:
        QTimer.singleShot(delay_ms, lambda: self.press(button))

    def press(self, button: int) -> None:
        if button in (WizardButton.NEXT, WizardButton.COMMIT):
            self.advance()
        elif button == WizardButton.BACK:
            self.go_back()
        elif button == WizardButton.FINISH:
            self.accept()
        elif button == WizardButton.CANCEL:
            self.request_cancel()
        else:
            logger.warning("Unknown button %s", button)

    @Slot(bool)
    def set_automated_page_switch_enabled(self, enabled: bool) -> None:
        self.state.auto_switch_page = enabled

    @Slot(bool)
    def set_modified(self, modified: bool) -> None:
        self.state.modified = modified

    @Slot()
    def show_finished_page(self) -> None:
        """Leave the progress page once the engine run is over."""
        if self.state.silent:
            if self.core.status == Status.SUCCESS:
                self._exit(ExitCode.SUCCESS)
            elif self.core.status == Status.CANCELED:
                self._exit(ExitCode.CANCELED)
            else:
                self._exit(ExitCode.INSTALL_FAILED)
            return
        if self.state.auto_switch_page:
            self.advance()

    # -- Cancel / finish --

    @Slot()
    def request_cancel(self) -> None:
        page = self.current_page()
        if page is not None and not page.is_interruptible():
            logger.debug("%s is not interruptible, cancel dropped", page.objectName())
            return
        if self.confirm_cancel():
            self.reject()

    @Slot()
    def reject(self) -> None:
        logger.info("Wizard rejected on %#x", self.state.current_id)
        self.state.modified = False
        self.core.interrupt()
        self.rejected.emit()
        if self.state.silent:
            self._exit(ExitCode.CANCELED)

    @Slot()
    def reject_without_prompt(self) -> None:
        self.reject()

    @Slot()
    def accept(self) -> None:
        logger.info("Wizard accepted on %#x", self.state.current_id)
        self.accepted.emit()

    # -- Silent run --

    @Slot()
    def run_silent(self) -> None:
        """Drive the wizard to the end without rendering.

        The target directory is computed from the remembered path, the
        preconditions are checked and the pages are then advanced on a
        timer until the engine run starts; its completion ends the process.
        """
        self.state.silent = True
        for page in self._all_pages():
            page.silent = True

        target = self.settings.compute_target_dir(
            self.core.value("TargetDir"), self.core.value("Title")
        )
        self.core.set_value("TargetDir", target)
        logger.info("Silent run, target directory %s", target)

        failed = first_failure(self.preconditions)
        if failed is not None:
            logger.error("%s", failed.message)
            self._exit(failed.exit_code)
            return

        if self.state.current_id == NO_PAGE:
            ids = self.registry.ordered_ids()
            if not ids:
                self._exit(ExitCode.SUCCESS)
                return
            self.driver.go_to(ids[0])
        QTimer.singleShot(SILENT_STEP_DELAY_MS, self._silent_step)

    def _silent_step(self) -> None:
        if self.exit_code is not None:
            return
        current_id = self.state.current_id
        if current_id == WizardPage.PERFORM_INSTALLATION or self.core.is_running():
            # The engine's finished signal ends the run.
            return

        if self.next_id() == NO_NEXT_PAGE:
            self._exit(ExitCode.SUCCESS)
            return
        if not self.advance():
            page = self.current_page()
            logger.error(
                "Silent run stopped on %s: %s",
                page.objectName() if page else hex(current_id),
                page.error_text() if page else "",
            )
            self._exit(ExitCode.VALIDATION_FAILED)
            return
        QTimer.singleShot(SILENT_STEP_DELAY_MS, self._silent_step)

    def _exit(self, code: ExitCode) -> None:
        logger.info("Exiting with %s (%d)", code.name, int(code))
        self.exit_code = code
        self.exit_app(int(code))

    def _on_current_id_changed(self, page_id: int) -> None:
        self.current_id_changed.emit(page_id)
