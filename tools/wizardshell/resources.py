"""Page identifiers, run modes, exit codes, and wizard text constants."""

from enum import Enum, IntEnum


class WizardPage(IntEnum):
    """Standard page slots.

    Ids are spaced so that dynamic pages can be inserted in the free slots
    just before a standard page.
    """

    INTRODUCTION = 0x1000
    TARGET_DIRECTORY = 0x2000
    COMPONENT_SELECTION = 0x3000
    LICENSE_CHECK = 0x4000
    START_MENU_SELECTION = 0x5000
    READY_FOR_INSTALLATION = 0x6000
    PERFORM_INSTALLATION = 0x7000
    INSTALLATION_FINISHED = 0x8000
    INSTALLATION_ERROR = 0x9000
    END = 0xFFFF


NO_PAGE = -1
NO_NEXT_PAGE = -1


class RunMode(Enum):
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"
    MAINTAIN = "maintain"


class Status(Enum):
    UNFINISHED = "unfinished"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELED = "canceled"


class ExitCode(IntEnum):
    SUCCESS = 0
    INSTALL_FAILED = 1
    CANCELED = 2
    VALIDATION_FAILED = 3
    INVALID_SETUP = 4
    GPU_NOT_EXIST = 10
    SYSTEM_NOT_SUPPORTED = 11
    VIRTUALIZATION_MISSING = 12


class WizardButton(IntEnum):
    BACK = 0
    NEXT = 1
    COMMIT = 2
    FINISH = 3
    CANCEL = 4


# Script naming conventions
DYNAMIC_PAGE_PREFIX = "Dynamic"
PAGE_CALLBACK_SUFFIX = "Callback"
FLAGS_COMPANION_SUFFIX = "Flags"
MIRRORED_PROPERTIES = ("final", "commit", "complete")
CONTROL_CONTEXT = "control"
COMPONENT_CONTEXT = "component"
CONTROLLER_CONSTRUCTOR = "Controller"

# Persisted settings
SETTINGS_PATH_KEY = "path"

# Deferred work (milliseconds)
ENGINE_START_DELAY_MS = 30
SILENT_STEP_DELAY_MS = 100

DEFAULT_BUTTON_TEXT = {
    WizardButton.BACK: "Back",
    WizardButton.NEXT: "Next",
    WizardButton.COMMIT: "Install",
    WizardButton.FINISH: "Finish",
    WizardButton.CANCEL: "Cancel",
}

INTRO_TEXT = (
    "Welcome to the {product} Setup Wizard.\n\n"
    "• Choose which components to install\n"
    "• Review the license agreements\n"
    "• The product will be installed and configured automatically"
)

MAINTENANCE_TEXT = "Choose what you want to do with {product}."
