"""Installer wizard shell — application entry point."""

import argparse
import logging
import os
import sys

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from .config import ConfigError, load_config
from .controller import WizardController
from .core import InstallerCore
from .preconditions import resolve_preconditions
from .resources import COMPONENT_CONTEXT, CONTROL_CONTEXT, ExitCode, RunMode
from .scripting import ScriptBridge, ScriptContext, ScriptError
from .settings import InstallSettings
from .window import InstallerWizard

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wizardshell", description="Installer wizard")
    parser.add_argument("--silent", action="store_true", help="run without showing the wizard")
    parser.add_argument("--config", help="product configuration (JSON)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in RunMode],
        default=RunMode.INSTALL.value,
        help="run mode (default: install)",
    )
    parser.add_argument("--script", help="control script driving the wizard")
    parser.add_argument(
        "--component-script",
        action="append",
        default=[],
        metavar="PATH",
        help="component script (repeatable)",
    )
    parser.add_argument(
        "--require",
        action="append",
        default=[],
        metavar="CHECK",
        help="precondition to check before starting: gpu, system, virtualization",
    )
    parser.add_argument("--log-level", default="INFO", help="logging level (default: INFO)")
    parser.add_argument("--log-file", help="also write the log to this file")
    return parser


def setup_logging(level: str, log_file: str | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def build_controller(args: argparse.Namespace) -> WizardController:
    config = load_config(args.config)
    core = InstallerCore(RunMode(args.mode), config.values(), config.components)

    control = ScriptContext(CONTROL_CONTEXT)
    component = ScriptContext(COMPONENT_CONTEXT, constructor="Component")
    bridge = ScriptBridge({CONTROL_CONTEXT: control, COMPONENT_CONTEXT: component})

    controller = WizardController(
        core,
        bridge,
        InstallSettings(config.publisher, config.name),
        preconditions=resolve_preconditions(config.require + args.require),
    )
    controller.add_default_pages()

    # Scripts see the finished page graph.
    for path in args.component_script:
        component.load_file(path)
    if args.script:
        control.load_file(args.script)
    return controller


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    if args.silent:
        # Pages are widgets even when nothing is shown
        os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("Setup")

    try:
        controller = build_controller(args)
    except (ConfigError, ScriptError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(ExitCode.INVALID_SETUP)

    if args.silent:
        QTimer.singleShot(0, controller.run_silent)
    else:
        wizard = InstallerWizard(controller)
        wizard.show()
        QTimer.singleShot(0, controller.start)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
