"""QThread workers for long-running operations."""

from PySide6.QtCore import QThread, Signal

from .components import Component, InstallError


class InstallWorker(QThread):
    """Runs the component payload operations for one engine run.

    Components in *remove* are uninstalled first, then *install* is
    processed in order. The worker never touches engine state; the engine
    applies the outcome once ``finished`` arrives on its own thread.
    """

    step_changed = Signal(str, int)  # (description, progress_percent)
    log_line = Signal(str)
    finished = Signal(bool, str)  # (success, error_message)

    def __init__(self, install: list[Component], remove: list[Component] | None = None):
        super().__init__()
        self.install = list(install)
        self.remove = list(remove or [])

    def run(self):
        try:
            self._do_run()
            self.finished.emit(True, "")
        except InstallError as e:
            self.log_line.emit(f"ERROR: {e}")
            self.finished.emit(False, str(e))
        except Exception as e:
            self.log_line.emit(f"UNEXPECTED ERROR: {e}")
            self.finished.emit(False, f"Unexpected error: {e}")

    def _check_interrupted(self) -> None:
        if self.isInterruptionRequested():
            raise InstallError("Operation canceled by user")

    def _do_run(self) -> None:
        total = len(self.remove) + len(self.install)
        done = 0

        for component in self.remove:
            self._check_interrupted()
            self.step_changed.emit(f"Removing {component.title}...", _percent(done, total))
            component.run_uninstall(self.log_line.emit)
            done += 1

        for component in self.install:
            self._check_interrupted()
            self.step_changed.emit(f"Installing {component.title}...", _percent(done, total))
            component.run_install(self.log_line.emit)
            done += 1

        self.step_changed.emit("Done.", 100)


def _percent(done: int, total: int) -> int:
    if not total:
        return 0
    return int(done * 100 / total)
