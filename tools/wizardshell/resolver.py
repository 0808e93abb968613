"""Next / previous page computation from run mode and component state."""

import logging

from .registry import PageRegistry
from .resources import NO_NEXT_PAGE, NO_PAGE, Status, WizardPage

logger = logging.getLogger(__name__)

_FAILED = (Status.FAILURE, Status.CANCELED)


class NextPageResolver:
    """Computes where ``advance()`` and ``go_back()`` lead.

    Neighbours are always asked of the registry at resolution time and the
    run mode is read from the engine on every call, so pages inserted or a
    mode switched after construction are taken into account.
    """

    def __init__(self, registry: PageRegistry, core):
        self.registry = registry
        self.core = core

    def resolve(self, current_id: int) -> int:
        if current_id == WizardPage.INTRODUCTION and self.core.is_uninstaller():
            return WizardPage.READY_FOR_INSTALLATION

        if current_id in (WizardPage.INSTALLATION_FINISHED, WizardPage.INSTALLATION_ERROR):
            return NO_NEXT_PAGE

        if current_id == WizardPage.PERFORM_INSTALLATION and self.core.status in _FAILED:
            return WizardPage.INSTALLATION_ERROR

        next_id = self._successor(current_id)
        if next_id == WizardPage.LICENSE_CHECK and not self.license_page_shown():
            logger.debug("Skipping license page")
            next_id = self._successor(next_id)
        return next_id

    def resolve_back(self, current_id: int) -> int:
        if current_id == WizardPage.READY_FOR_INSTALLATION and self.core.is_uninstaller():
            if WizardPage.INTRODUCTION in self.registry:
                return WizardPage.INTRODUCTION

        previous_id = self._predecessor(current_id)
        if previous_id == WizardPage.LICENSE_CHECK and not self.license_page_shown():
            previous_id = self._predecessor(previous_id)
        return previous_id

    def license_page_shown(self) -> bool:
        if self.core.is_uninstaller():
            return False
        return bool(self.core.components_requiring_license())

    # The error page is only reachable from the progress page.
    def _successor(self, page_id: int) -> int:
        next_id = self.registry.successor(page_id)
        while next_id == WizardPage.INSTALLATION_ERROR:
            next_id = self.registry.successor(next_id)
        return NO_NEXT_PAGE if next_id is None else next_id

    def _predecessor(self, page_id: int) -> int:
        previous_id = self.registry.predecessor(page_id)
        while previous_id == WizardPage.INSTALLATION_ERROR:
            previous_id = self.registry.predecessor(previous_id)
        return NO_PAGE if previous_id is None else previous_id
