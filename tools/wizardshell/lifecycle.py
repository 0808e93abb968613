"""Sequencing of leaving / entering callbacks on page changes."""

import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal

from .registry import PageRegistry
from .resources import CONTROL_CONTEXT, NO_PAGE, PAGE_CALLBACK_SUFFIX
from .scripting import ScriptBridge

logger = logging.getLogger(__name__)


@dataclass
class WizardState:
    """Navigation state shared by the interactive and the silent path."""

    current_id: int = NO_PAGE
    modified: bool = False
    auto_switch_page: bool = True
    silent: bool = False
    committed_id: int = NO_PAGE


class PageLifecycleDriver(QObject):
    """Owns the current page id and moves it from page to page.

    A transition runs ``leaving()`` on the old page, updates the current id,
    runs ``entering()`` on the new page and finally the control script's
    ``<PageName>Callback``. A transition requested from inside one of those
    callbacks is deferred until the running one is done; several such
    requests collapse into the last one.
    """

    page_left = Signal(int)
    page_entered = Signal(int)
    current_id_changed = Signal(int)

    def __init__(
        self,
        registry: PageRegistry,
        bridge: ScriptBridge,
        state: WizardState | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self.registry = registry
        self.bridge = bridge
        self.state = state if state is not None else WizardState()
        self._transitioning = False
        self._pending: int | None = None

    @property
    def current_id(self) -> int:
        return self.state.current_id

    @property
    def transitioning(self) -> bool:
        return self._transitioning

    def current_page(self):
        return self.registry.get(self.state.current_id)

    def go_to(self, new_id: int) -> None:
        if self._transitioning:
            logger.debug("Transition in progress, deferring %#x", new_id)
            self._pending = new_id
            return

        self._transitioning = True
        try:
            target = new_id
            while target is not None:
                self._pending = None
                self._transition(target)
                target = self._pending
        finally:
            self._transitioning = False
            self._pending = None

    def _transition(self, new_id: int) -> None:
        old_id = self.state.current_id
        old_page = self.registry.get(old_id) if old_id != NO_PAGE else None
        if old_page is not None:
            old_page.leaving()
            self.page_left.emit(old_id)

        self.state.current_id = new_id
        logger.info("Page %#x -> %#x", old_id, new_id)

        page = self.registry.get(new_id)
        if page is None:
            logger.debug("No page registered at %#x", new_id)
            return

        page.entering()
        self.page_entered.emit(new_id)
        self.current_id_changed.emit(new_id)
        self.bridge.invoke_conventional_hook(
            CONTROL_CONTEXT, page.objectName(), PAGE_CALLBACK_SUFFIX
        )
