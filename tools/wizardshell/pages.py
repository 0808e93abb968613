"""Wizard pages for the installer shell."""

import bisect
import itertools
import logging
import os
from typing import Callable

from PySide6.QtCore import QEvent, Property, QObject, Qt, QTimer, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QButtonGroup,
    QCheckBox,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QProgressBar,
    QPushButton,
    QRadioButton,
    QVBoxLayout,
    QWidget,
)

from .core import InstallerCore
from .resources import (
    DYNAMIC_PAGE_PREFIX,
    ENGINE_START_DELAY_MS,
    INTRO_TEXT,
    MAINTENANCE_TEXT,
    MIRRORED_PROPERTIES,
    RunMode,
    Status,
)
from .settings import InstallSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helper widgets
# ---------------------------------------------------------------------------


def _page_title(text: str) -> QLabel:
    lbl = QLabel(text)
    lbl.setObjectName("pageTitle")
    font = QFont()
    font.setPointSize(16)
    font.setBold(True)
    lbl.setFont(font)
    return lbl


def _subtitle(text: str) -> QLabel:
    lbl = QLabel(text)
    lbl.setObjectName("subtitle")
    lbl.setWordWrap(True)
    return lbl


def _info_label(text: str) -> QLabel:
    lbl = QLabel(text)
    lbl.setWordWrap(True)
    lbl.setTextInteractionFlags(Qt.TextSelectableByMouse)
    return lbl


# ---------------------------------------------------------------------------
# Base page
# ---------------------------------------------------------------------------


class InstallerPage(QWidget):
    """Common page behaviour.

    ``final``, ``commit`` and ``complete`` are Qt properties so that script
    contexts can read and write them. Sub-widgets inserted by components
    are kept ordered by position; equal positions keep insertion order.
    """

    complete_changed = Signal()
    flags_changed = Signal()
    show_on_page_list_changed = Signal()

    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(parent)
        self.core = core
        self._final = False
        self._commit = False
        self._complete = True
        self._silent = False
        self._show_on_page_list = True
        self._page_list_title = ""
        self._validator: Callable[[], bool] | None = None
        self._validation_message = ""

        self._custom_keys: list[tuple[int, int]] = []
        self._custom_widgets: list[QWidget] = []
        self._insertion_counter = itertools.count()

        layout = QVBoxLayout(self)
        layout.setSpacing(12)

        self._title_label = _page_title("")
        layout.addWidget(self._title_label)
        self._subtitle_label = _subtitle("")
        self._subtitle_label.setVisible(False)
        layout.addWidget(self._subtitle_label)

        self.body = QVBoxLayout()
        layout.addLayout(self.body, stretch=1)

        self._custom_layout = QVBoxLayout()
        layout.addLayout(self._custom_layout)

        self._error_label = QLabel()
        self._error_label.setObjectName("warning")
        self._error_label.setWordWrap(True)
        self._error_label.setVisible(False)
        layout.addWidget(self._error_label)

    # -- Titles --

    def title(self) -> str:
        return self._title_label.text()

    def set_title(self, title: str) -> None:
        self._title_label.setText(title)
        self.setWindowTitle(title)

    def subtitle(self) -> str:
        return self._subtitle_label.text()

    def set_subtitle(self, subtitle: str) -> None:
        self._subtitle_label.setText(subtitle)
        self._subtitle_label.setVisible(bool(subtitle))

    def page_list_title(self) -> str:
        return self._page_list_title

    def set_page_list_title(self, title: str) -> None:
        self._page_list_title = title
        self.show_on_page_list_changed.emit()

    def show_on_page_list(self) -> bool:
        return self._show_on_page_list

    def set_show_on_page_list(self, show: bool) -> None:
        if show != self._show_on_page_list:
            self._show_on_page_list = show
            self.show_on_page_list_changed.emit()

    # -- Mirrored flags --

    def _mirror(self, name: str, value: bool) -> None:
        pass

    def _get_final(self) -> bool:
        return self._final

    def _set_final(self, value: bool) -> None:
        value = bool(value)
        if value != self._final:
            self._final = value
            self._mirror("final", value)
            self.flags_changed.emit()

    def _get_commit(self) -> bool:
        return self._commit

    def _set_commit(self, value: bool) -> None:
        value = bool(value)
        if value != self._commit:
            self._commit = value
            self._mirror("commit", value)
            self.flags_changed.emit()

    def _get_complete(self) -> bool:
        return self._complete

    def _set_complete(self, value: bool) -> None:
        value = bool(value)
        if value != self._complete:
            self._complete = value
            self._mirror("complete", value)
            self.complete_changed.emit()

    final = Property(bool, _get_final, _set_final, notify=flags_changed)
    commit = Property(bool, _get_commit, _set_commit, notify=flags_changed)
    complete = Property(bool, _get_complete, _set_complete, notify=complete_changed)

    def is_complete(self) -> bool:
        return self._complete

    def is_interruptible(self) -> bool:
        return True

    # -- Silent --

    @property
    def silent(self) -> bool:
        return self._silent

    @silent.setter
    def silent(self, silent: bool) -> None:
        self._silent = silent

    # -- Validation --

    def set_validator(self, validator: Callable[[], bool] | None, message: str = "") -> None:
        self._validator = validator
        self._validation_message = message or "The input on this page is not valid."

    def validate_page(self) -> bool:
        if not self.is_complete():
            self.show_error("Please complete this page before continuing.")
            return False
        if self._validator is not None and not self._validator():
            self.show_error(self._validation_message)
            return False
        self.clear_error()
        return True

    def show_error(self, message: str) -> None:
        self._error_label.setText(message)
        self._error_label.setVisible(True)

    def clear_error(self) -> None:
        self._error_label.clear()
        self._error_label.setVisible(False)

    def error_text(self) -> str:
        return self._error_label.text() if self._error_label.isVisibleTo(self) else ""

    # -- Custom widgets --

    def insert_custom_widget(self, widget: QWidget, position: int = 0) -> None:
        self.remove_custom_widget(widget)
        key = (position, next(self._insertion_counter))
        index = bisect.bisect(self._custom_keys, key)
        self._custom_keys.insert(index, key)
        self._custom_widgets.insert(index, widget)
        self._custom_layout.insertWidget(index, widget)
        widget.show()

    def remove_custom_widget(self, widget: QWidget) -> bool:
        for index, existing in enumerate(self._custom_widgets):
            if existing is widget:
                del self._custom_keys[index]
                del self._custom_widgets[index]
                self._custom_layout.removeWidget(widget)
                widget.setParent(None)
                return True
        return False

    def custom_widgets(self) -> list[QWidget]:
        return list(self._custom_widgets)

    # -- Lifecycle --

    def entering(self) -> None:
        pass

    def leaving(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Introduction
# ---------------------------------------------------------------------------


class IntroductionPage(InstallerPage):
    """Welcome text; in maintenance runs also the Update / Remove choice."""

    MODE_CHOICES = (
        (RunMode.MAINTAIN, "Add or remove components", "PackageManagerRadioButton"),
        (RunMode.UPDATE, "Update components", "UpdaterRadioButton"),
        (RunMode.UNINSTALL, "Remove all components", "UninstallerRadioButton"),
    )

    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("IntroductionPage")
        self.set_page_list_title("Introduction")
        self._maintenance = core.mode != RunMode.INSTALL

        self._message = _info_label("")
        self.body.addWidget(self._message)

        self._mode_group = QButtonGroup(self)
        self._mode_buttons: dict[RunMode, QRadioButton] = {}
        for mode, text, name in self.MODE_CHOICES:
            button = QRadioButton(text)
            button.setObjectName(name)
            button.setVisible(self._maintenance)
            button.setChecked(mode == core.mode)
            button.toggled.connect(
                lambda checked, m=mode: self._on_mode_toggled(m, checked)
            )
            self._mode_group.addButton(button)
            self._mode_buttons[mode] = button
            self.body.addWidget(button)
        self.body.addStretch()

    def mode_button(self, mode: RunMode) -> QRadioButton | None:
        return self._mode_buttons.get(mode)

    def _on_mode_toggled(self, mode: RunMode, checked: bool) -> None:
        if checked:
            self.core.set_mode(mode)

    def entering(self) -> None:
        product = self.core.value("ProductName") or self.core.value("Name")
        self.set_title(f"Setup - {product}")
        template = MAINTENANCE_TEXT if self._maintenance else INTRO_TEXT
        self._message.setText(template.format(product=product))


# ---------------------------------------------------------------------------
# Target directory
# ---------------------------------------------------------------------------


class TargetDirectoryPage(InstallerPage):
    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("TargetDirectoryPage")
        self.set_page_list_title("Installation Folder")
        self.set_title("Installation Folder")

        self.body.addWidget(_info_label("Please specify the directory where the product will be installed."))
        self._line_edit = QLineEdit()
        self._line_edit.setObjectName("TargetDirectoryLineEdit")
        self._line_edit.textChanged.connect(self.complete_changed.emit)
        self.body.addWidget(self._line_edit)
        self.body.addStretch()

    def target_dir(self) -> str:
        return self._line_edit.text().strip()

    def set_target_dir(self, path: str) -> None:
        self._line_edit.setText(path)

    def is_complete(self) -> bool:
        return bool(self.target_dir())

    def entering(self) -> None:
        self._line_edit.setText(self.core.value("TargetDir"))

    def leaving(self) -> None:
        if self.target_dir():
            self.core.set_value("TargetDir", os.path.abspath(os.path.expanduser(self.target_dir())))


# ---------------------------------------------------------------------------
# Component selection
# ---------------------------------------------------------------------------


class ComponentSelectionPage(InstallerPage):
    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("ComponentSelectionPage")
        self.set_page_list_title("Select Components")
        self.set_title("Select Components")
        self._checkboxes: dict[str, QCheckBox] = {}

        self._list = QVBoxLayout()
        self.body.addLayout(self._list)
        self.body.addStretch()

    def checkbox(self, name: str) -> QCheckBox | None:
        return self._checkboxes.get(name)

    def entering(self) -> None:
        for cb in self._checkboxes.values():
            cb.deleteLater()
        self._checkboxes.clear()

        for component in self.core.components():
            text = component.title
            if component.installed:
                text += " (installed)"
            cb = QCheckBox(text)
            cb.setObjectName(component.name)
            cb.setChecked(component.selected or component.forced)
            cb.setEnabled(not component.forced)
            cb.toggled.connect(
                lambda checked, name=component.name: self._on_toggled(name, checked)
            )
            self._checkboxes[component.name] = cb
            self._list.addWidget(cb)
        self.complete_changed.emit()

    def _on_toggled(self, name: str, checked: bool) -> None:
        self.core.select_component(name, checked)
        self.complete_changed.emit()

    def is_complete(self) -> bool:
        if not self.core.is_installer():
            return True
        return any(c.selected or c.forced for c in self.core.components())


# ---------------------------------------------------------------------------
# License check
# ---------------------------------------------------------------------------


class LicenseCheckPage(InstallerPage):
    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("LicenseAgreementPage")
        self.set_page_list_title("License Agreement")
        self.set_title("License Agreement")

        self.body.addWidget(_info_label("Please read the following license agreements."))
        self._text = QPlainTextEdit()
        self._text.setReadOnly(True)
        self.body.addWidget(self._text, stretch=1)

        self._accept = QCheckBox("I accept the license agreements.")
        self._accept.setObjectName("AcceptLicenseCheckBox")
        self._accept.toggled.connect(self.complete_changed.emit)
        self.body.addWidget(self._accept)

    def accept_checkbox(self) -> QCheckBox:
        return self._accept

    def license_text(self) -> str:
        return self._text.toPlainText()

    def entering(self) -> None:
        sections = []
        for component in self.core.components_requiring_license():
            for name, text in component.licenses.items():
                if text:
                    sections.append(f"{name}\n\n{text}")
        self._text.setPlainText("\n\n".join(sections))

        if self.silent:
            self._accept.setChecked(True)

    def is_complete(self) -> bool:
        return self._accept.isChecked()


# ---------------------------------------------------------------------------
# Ready for installation
# ---------------------------------------------------------------------------


class ReadyForInstallationPage(InstallerPage):
    """Summary before the run starts; doubles as uninstall confirmation."""

    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("ReadyForInstallationPage")
        self.set_page_list_title("Ready to Install")
        self.commit = True

        self._message = _info_label("")
        self.body.addWidget(self._message)
        self.body.addStretch()

    def message(self) -> str:
        return self._message.text()

    def entering(self) -> None:
        product = self.core.value("ProductName")
        target = self.core.value("TargetDir")
        if self.core.is_uninstaller():
            self.set_title("Ready to Uninstall")
            self._message.setText(
                f"All {product} components will now be removed from {target}."
            )
            return

        self.core.calculate_components_to_install()
        names = ", ".join(c.title for c in self.core.components_to_install())
        if self.core.is_installer():
            self.set_title("Ready to Install")
            self._message.setText(
                f"Setup is now ready to begin installing {product} on your computer.\n\n"
                f"Target: {target}\nComponents: {names}"
            )
        else:
            self.set_title("Ready to Update")
            self._message.setText(
                f"Setup is now ready to begin updating {product}.\n\nComponents: {names}"
            )


# ---------------------------------------------------------------------------
# Perform installation
# ---------------------------------------------------------------------------


class PerformInstallationPage(InstallerPage):
    """Installation progress with log viewer; starts the engine run."""

    def __init__(self, core: InstallerCore, settings: InstallSettings, parent=None):
        super().__init__(core, parent)
        self.setObjectName("PerformInstallationPage")
        self.set_page_list_title("Installing")
        self.settings = settings
        self.complete = False

        self._step_label = QLabel("Preparing...")
        self.body.addWidget(self._step_label)

        self._progress = QProgressBar()
        self._progress.setRange(0, 100)
        self._progress.setValue(0)
        self.body.addWidget(self._progress)

        # Toggle details button
        self._details_btn = QPushButton("Show Details")
        self._details_btn.setFixedWidth(140)
        self._details_btn.clicked.connect(self._toggle_details)
        self.body.addWidget(self._details_btn)

        # Log viewer (hidden by default)
        self._log_view = QPlainTextEdit()
        self._log_view.setReadOnly(True)
        self._log_view.setVisible(False)
        self.body.addWidget(self._log_view, stretch=1)

        core.step_changed.connect(self._on_step_changed)
        core.log_line.connect(self._on_log_line)
        core.installation_finished.connect(self._on_finished)
        core.uninstallation_finished.connect(self._on_finished)

    def is_interruptible(self) -> bool:
        return False

    def progress(self) -> int:
        return self._progress.value()

    def log_text(self) -> str:
        return self._log_view.toPlainText()

    def entering(self) -> None:
        self.complete = False
        if self.core.is_uninstaller():
            self.set_title("Uninstalling")
        elif self.core.is_installer():
            self.set_title("Installing")
            target = self.core.value("TargetDir")
            self.settings.remember(target)
            version = self.core.value("Version")
            if version:
                self.core.set_value("TargetDir", os.path.join(target, version))
        else:
            self.set_title("Updating")
        self.set_page_list_title(self.title())

        QTimer.singleShot(ENGINE_START_DELAY_MS, self.core.run)

    def leaving(self) -> None:
        if not self.core.is_installer():
            self.settings.forget()

    def _on_step_changed(self, desc: str, progress: int) -> None:
        self._step_label.setText(desc)
        self._progress.setValue(progress)

    def _on_log_line(self, line: str) -> None:
        self._log_view.appendPlainText(line)
        # Auto-scroll to bottom
        sb = self._log_view.verticalScrollBar()
        sb.setValue(sb.maximum())

    def _on_finished(self) -> None:
        if self.core.status == Status.SUCCESS:
            self._step_label.setText("Finished.")
        else:
            self._step_label.setText(self.core.error or "Failed.")
        self.complete = True

    def _toggle_details(self) -> None:
        visible = not self._log_view.isVisible()
        self._log_view.setVisible(visible)
        self._details_btn.setText("Hide Details" if visible else "Show Details")


# ---------------------------------------------------------------------------
# Finish / error
# ---------------------------------------------------------------------------


class FinishedPage(InstallerPage):
    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("FinishedPage")
        self.set_page_list_title("Finished")
        self.final = True

        self._message = _info_label("")
        self.body.addWidget(self._message)
        self.body.addStretch()

    def message(self) -> str:
        return self._message.text()

    def entering(self) -> None:
        product = self.core.value("ProductName")
        self.set_title(f"Completing the {product} Wizard")
        if self.core.is_uninstaller():
            self._message.setText(f"{product} has been removed from your computer.")
        else:
            self._message.setText(f"Click Finish to exit the {product} Wizard.")


class ErrorPage(InstallerPage):
    """Shown instead of the finished page when the engine run failed."""

    def __init__(self, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.setObjectName("InstallationErrorPage")
        self.set_page_list_title("Error")
        self.set_title("Installation Failed")
        self.final = True

        self._error_label = _info_label("")
        self.body.addWidget(self._error_label)
        self.body.addStretch()

    def message(self) -> str:
        return self._error_label.text()

    def entering(self) -> None:
        self._error_label.setText(self.core.error or "The operation did not complete.")


# ---------------------------------------------------------------------------
# Dynamic pages
# ---------------------------------------------------------------------------


class DynamicPage(InstallerPage):
    """Hosts a component-provided widget as a wizard page.

    The hosted content's ``final`` / ``commit`` / ``complete`` dynamic
    properties and the page's flags are kept equal in both directions; its
    window title becomes the page title.
    """

    def __init__(self, content: QWidget, core: InstallerCore, parent=None):
        super().__init__(core, parent)
        self.content = content
        self.setObjectName(DYNAMIC_PAGE_PREFIX + content.objectName())
        self.set_title(content.windowTitle() or content.objectName())

        for name in MIRRORED_PROPERTIES:
            value = content.property(name)
            if value is not None:
                setattr(self, name, bool(value))

        self.body.addWidget(content)
        content.show()
        content.installEventFilter(self)

    def _mirror(self, name: str, value: bool) -> None:
        if self.content.property(name) != value:
            self.content.setProperty(name, value)

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if obj is self.content:
            if event.type() == QEvent.DynamicPropertyChange:
                name = event.propertyName().data().decode()
                if name in MIRRORED_PROPERTIES:
                    setattr(self, name, bool(self.content.property(name)))
            elif event.type() == QEvent.WindowTitleChange:
                self.set_title(self.content.windowTitle())
        return super().eventFilter(obj, event)

    def release(self) -> QWidget:
        """Detach the hosted content so it survives this page."""
        self.content.removeEventFilter(self)
        self.body.removeWidget(self.content)
        self.content.setParent(None)
        return self.content
