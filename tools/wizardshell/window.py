"""Interactive wizard window: header, page list, page stack and buttons."""

import logging
import re
import weakref

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from .controller import WizardController
from .pages import InstallerPage
from .resources import DEFAULT_BUTTON_TEXT, NO_NEXT_PAGE, WizardButton

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_PAGE_SUFFIX = re.compile(r"\s*Page$")


def page_list_label(page: InstallerPage) -> str:
    """Title shown for *page* in the side list."""
    if page.page_list_title():
        return page.page_list_title()
    if page.title():
        return page.title()
    name = _PAGE_SUFFIX.sub("", _CAMEL_BOUNDARY.sub(" ", page.objectName()))
    return name or page.objectName()


class HeaderBar(QWidget):
    """Top bar with the current page title."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(60)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(20, 0, 20, 0)

        self._title = QLabel()
        self._title.setObjectName("headerTitle")
        font = QFont()
        font.setPointSize(14)
        font.setBold(True)
        self._title.setFont(font)
        layout.addWidget(self._title)
        layout.addStretch()

    def title(self) -> str:
        return self._title.text()

    def set_title(self, title: str) -> None:
        self._title.setText(title)


class PageList(QWidget):
    """Side list of the pages; the current one bold, later ones disabled."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedWidth(200)
        self._layout = QVBoxLayout(self)
        self._layout.setContentsMargins(16, 16, 16, 16)
        self._layout.setAlignment(Qt.AlignTop)
        self._labels: list[QLabel] = []

    def labels(self) -> list[QLabel]:
        return list(self._labels)

    def texts(self) -> list[str]:
        return [label.text() for label in self._labels]

    def set_pages(self, entries: list[tuple[int, InstallerPage]], current_id: int) -> None:
        for label in self._labels:
            label.deleteLater()
        self._labels.clear()

        for page_id, page in entries:
            if not page.show_on_page_list():
                continue
            label = QLabel(page_list_label(page))
            font = label.font()
            font.setBold(page_id == current_id)
            label.setFont(font)
            label.setEnabled(page_id <= current_id)
            self._labels.append(label)
            self._layout.addWidget(label)


class FooterBar(QWidget):
    """Bottom bar with Back / Next / Cancel navigation buttons."""

    back_clicked = Signal()
    next_clicked = Signal()
    cancel_clicked = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(60)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(20, 8, 20, 8)
        layout.addStretch()

        self._back_btn = QPushButton(DEFAULT_BUTTON_TEXT[WizardButton.BACK])
        self._back_btn.setObjectName("BackButton")
        self._back_btn.clicked.connect(self.back_clicked.emit)
        layout.addWidget(self._back_btn)

        self._next_btn = QPushButton(DEFAULT_BUTTON_TEXT[WizardButton.NEXT])
        self._next_btn.setObjectName("NextButton")
        self._next_btn.clicked.connect(self.next_clicked.emit)
        layout.addWidget(self._next_btn)

        self._cancel_btn = QPushButton(DEFAULT_BUTTON_TEXT[WizardButton.CANCEL])
        self._cancel_btn.setObjectName("CancelButton")
        self._cancel_btn.clicked.connect(self.cancel_clicked.emit)
        layout.addWidget(self._cancel_btn)

    @property
    def back_button(self) -> QPushButton:
        return self._back_btn

    @property
    def next_button(self) -> QPushButton:
        return self._next_btn

    @property
    def cancel_button(self) -> QPushButton:
        return self._cancel_btn


class InstallerWizard(QWidget):
    """Renders the controller's pages; all navigation goes through it."""

    def __init__(self, controller: WizardController, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.setWindowTitle(controller.core.value("Title") or "Setup")
        self.resize(800, 560)

        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        self._header = HeaderBar()
        root.addWidget(self._header)

        middle = QHBoxLayout()
        self._page_list = PageList()
        middle.addWidget(self._page_list)
        self._stack = QStackedWidget()
        middle.addWidget(self._stack, stretch=1)
        root.addLayout(middle, stretch=1)

        self._footer = FooterBar()
        self._footer.back_clicked.connect(self._go_back)
        self._footer.next_clicked.connect(self._go_next)
        self._footer.cancel_clicked.connect(controller.request_cancel)
        root.addWidget(self._footer)

        controller.confirm_cancel = self.confirm_cancel
        controller.page_list_changed.connect(self.refresh)
        controller.current_id_changed.connect(self.refresh)
        controller.precondition_failed.connect(self._on_precondition_failed)
        controller.rejected.connect(self.close)
        controller.accepted.connect(self.close)

        self._watched: weakref.WeakSet[InstallerPage] = weakref.WeakSet()
        self.refresh()

    @property
    def header(self) -> HeaderBar:
        return self._header

    @property
    def footer(self) -> FooterBar:
        return self._footer

    @property
    def page_list(self) -> PageList:
        return self._page_list

    @property
    def stack(self) -> QStackedWidget:
        return self._stack

    # -- Navigation --

    def _go_next(self) -> None:
        page = self.controller.current_page()
        if page is not None and page.final and self.controller.next_id() == NO_NEXT_PAGE:
            self.controller.accept()
            return
        self.controller.advance()

    def _go_back(self) -> None:
        self.controller.go_back()

    # -- Rendering --

    def refresh(self, *args) -> None:
        pages = [
            (page_id, self.controller.page_by_id(page_id))
            for page_id in self.controller.page_ids()
        ]
        for index in reversed(range(self._stack.count())):
            widget = self._stack.widget(index)
            if all(widget is not page for _, page in pages):
                self._stack.removeWidget(widget)
        for _, page in pages:
            if self._stack.indexOf(page) < 0:
                self._stack.addWidget(page)
            if page not in self._watched:
                self._watched.add(page)
                page.complete_changed.connect(self._update_buttons)
                page.flags_changed.connect(self._update_buttons)
                page.show_on_page_list_changed.connect(self.refresh)

        current_id = self.controller.current_page_id()
        page = self.controller.current_page()
        if page is not None:
            self._stack.setCurrentWidget(page)
            self._header.set_title(page.title() or page_list_label(page))
        self._page_list.set_pages(pages, current_id)
        self._update_buttons()

    def _update_buttons(self) -> None:
        page = self.controller.current_page()
        footer = self._footer
        if page is None:
            footer.next_button.setEnabled(False)
            footer.back_button.setEnabled(False)
            return

        if page.final:
            footer.next_button.setText(DEFAULT_BUTTON_TEXT[WizardButton.FINISH])
        elif page.commit:
            footer.next_button.setText(DEFAULT_BUTTON_TEXT[WizardButton.COMMIT])
        else:
            footer.next_button.setText(DEFAULT_BUTTON_TEXT[WizardButton.NEXT])

        footer.next_button.setEnabled(page.is_complete())
        state = self.controller.state
        back_target = self.controller.resolver.resolve_back(state.current_id)
        footer.back_button.setEnabled(back_target > state.committed_id and not page.final)
        footer.cancel_button.setEnabled(page.is_interruptible() and not page.final)

    # -- Dialogs --

    def confirm_cancel(self) -> bool:
        answer = QMessageBox.question(
            self,
            "Cancel Setup",
            "Do you want to quit the setup?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        return answer == QMessageBox.Yes

    def _on_precondition_failed(self, name: str, message: str) -> None:
        answer = QMessageBox.warning(
            self,
            "Setup cannot continue",
            message,
            QMessageBox.Retry | QMessageBox.Cancel,
            QMessageBox.Retry,
        )
        if answer == QMessageBox.Retry:
            logger.info("Retrying precondition %s", name)
            self.controller.start()
        else:
            self.controller.reject_without_prompt()

    def closeEvent(self, event):
        page = self.controller.current_page()
        if (
            self.controller.state.modified
            and page is not None
            and page.is_interruptible()
            and not page.final
            and not self.confirm_cancel()
        ):
            event.ignore()
            return
        super().closeEvent(event)
