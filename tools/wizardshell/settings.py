"""Persisted per-publisher / per-product install path."""

import logging
import os
from pathlib import PurePath

from PySide6.QtCore import QSettings

from .resources import SETTINGS_PATH_KEY

logger = logging.getLogger(__name__)


class InstallSettings:
    """Remembers where the product was last installed.

    The remembered value is the directory *above* ``<publisher>/<title>``;
    both segments are appended again when a target directory is computed.
    """

    def __init__(self, publisher: str, product: str, settings: QSettings | None = None):
        self.publisher = publisher
        self.product = product
        self._settings = settings if settings is not None else QSettings(publisher, product)

    def last_path(self) -> str:
        value = self._settings.value(SETTINGS_PATH_KEY, "")
        return str(value) if value else ""

    def remember(self, target_dir: str) -> None:
        """Store the base directory of *target_dir* (without publisher/title)."""
        base = str(PurePath(target_dir).parent.parent)
        self._settings.setValue(SETTINGS_PATH_KEY, base)
        self._settings.sync()
        logger.debug("Remembered install path %s", base)

    def forget(self) -> None:
        self._settings.remove(SETTINGS_PATH_KEY)
        self._settings.sync()
        logger.debug("Forgot install path")

    def compute_target_dir(self, default_dir: str, title: str) -> str:
        target = self.last_path() or default_dir
        base_path = os.sep + self.publisher + os.sep + title
        if base_path not in target:
            target = target.rstrip(os.sep) + base_path
        return os.path.abspath(target)
