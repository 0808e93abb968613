"""Script contexts and the bridge that binds live pages into them.

Two contexts exist for the lifetime of a wizard: ``control`` (loaded from
``--script``, drives automated runs through ``<PageName>Callback`` hooks)
and ``component`` (component-authored customization, page validators).
Both are backed by a ``QJSEngine``; the engine itself is treated as an
opaque evaluator.
"""

import logging
import weakref
from enum import IntEnum
from pathlib import Path

from PySide6.QtCore import QObject
from PySide6.QtQml import QJSEngine, QJSValue

from .registry import WizardError
from .resources import (
    CONTROLLER_CONSTRUCTOR,
    FLAGS_COMPANION_SUFFIX,
    MIRRORED_PROPERTIES,
    PAGE_CALLBACK_SUFFIX,
    WizardButton,
    WizardPage,
)

logger = logging.getLogger(__name__)


class ScriptError(WizardError):
    """A script could not be read or evaluated."""


# Builds an object whose accessors forward to the bound page. Only the
# mirrored flags are reachable through it.
_FLAGS_FACTORY = """
(function (page, names) {
    var flags = {};
    names.forEach(function (name) {
        Object.defineProperty(flags, name, {
            get: function () { return page[name]; },
            set: function (value) { page[name] = !!value; },
            enumerable: true
        });
    });
    return flags;
})
"""


def _error_text(value: QJSValue) -> str:
    text = value.toString()
    line = value.property("lineNumber")
    if line.isNumber():
        text = f"{text} (line {line.toInt()})"
    return text


class ScriptContext:
    """One named script environment.

    The context counts as initialized once a script defining the expected
    constructor has been loaded; hooks are skipped before that.
    """

    def __init__(self, name: str, constructor: str = CONTROLLER_CONSTRUCTOR):
        self.name = name
        self.constructor = constructor
        self.engine = QJSEngine()
        self.engine.installExtensions(QJSEngine.Extension.ConsoleExtension)
        self._instances: list[QJSValue] = []
        self._flags_factory = self.engine.evaluate(_FLAGS_FACTORY)

        self._install_enum("WizardPage", WizardPage)
        self._install_enum("buttons", WizardButton)

    def __repr__(self):
        return f"<ScriptContext {self.name!r} scripts={len(self._instances)}>"

    @property
    def initialized(self) -> bool:
        return bool(self._instances)

    def _install_enum(self, name: str, enum: type[IntEnum]) -> None:
        holder = self.engine.newObject()
        for member in enum:
            holder.setProperty(member.name, QJSValue(int(member)))
        self.engine.globalObject().setProperty(name, holder)

    # -- Globals --

    def set_global(self, name: str, obj: QObject) -> None:
        QJSEngine.setObjectOwnership(obj, QJSEngine.ObjectOwnership.CppOwnership)
        self.engine.globalObject().setProperty(name, self.engine.newQObject(obj))

    def set_flags_companion(self, name: str, page: QObject) -> None:
        QJSEngine.setObjectOwnership(page, QJSEngine.ObjectOwnership.CppOwnership)
        names = self.engine.newArray(len(MIRRORED_PROPERTIES))
        for index, prop in enumerate(MIRRORED_PROPERTIES):
            names.setProperty(index, QJSValue(prop))
        companion = self._flags_factory.call([self.engine.newQObject(page), names])
        self.engine.globalObject().setProperty(name, companion)

    def remove_global(self, name: str) -> None:
        self.engine.globalObject().deleteProperty(name)

    def has_global(self, name: str) -> bool:
        return self.engine.globalObject().hasOwnProperty(name)

    def evaluate(self, source: str, path: str = "") -> QJSValue:
        return self.engine.evaluate(source, path)

    # -- Loading --

    def load(self, source: str, path: str = "<script>") -> None:
        """Evaluate *source* and instantiate its constructor.

        Raises ScriptError when evaluation fails or the constructor is
        missing.
        """
        # A script without its own constructor must not pick up the previous one.
        self.engine.globalObject().setProperty(self.constructor, QJSValue())
        result = self.engine.evaluate(source, path)
        if result.isError():
            raise ScriptError(f"{path}: {_error_text(result)}")

        constructor = self.engine.globalObject().property(self.constructor)
        if not constructor.isCallable():
            raise ScriptError(f"{path}: script does not define {self.constructor}()")

        instance = constructor.callAsConstructor()
        if instance.isError():
            raise ScriptError(f"{path}: {self.constructor}() failed: {_error_text(instance)}")

        self._instances.append(instance)
        logger.debug("Loaded %s script %s", self.name, path)

    def load_file(self, path: str) -> None:
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ScriptError(f"Cannot read script {path}: {e}") from e
        self.load(source, str(path))

    # -- Invocation --

    def call_method(self, method_name: str, *args) -> QJSValue | None:
        """Call *method_name* on the first loaded script object providing it.

        Returns None when the context is not initialized, the method does
        not exist or the call threw; failures are logged, never raised.
        """
        if not self._instances:
            return None

        for instance in self._instances:
            method = instance.property(method_name)
            if not method.isCallable():
                continue
            try:
                result = method.callWithInstance(
                    instance, [self._to_js(arg) for arg in args]
                )
            except Exception:
                logger.exception("%s script method %s raised", self.name, method_name)
                return None
            if result.isError():
                logger.error(
                    "%s script method %s failed: %s",
                    self.name, method_name, _error_text(result),
                )
                return None
            return result

        logger.debug("%s script method %s does not exist", self.name, method_name)
        return None

    def _to_js(self, value) -> QJSValue:
        if isinstance(value, QJSValue):
            return value
        if isinstance(value, QObject):
            QJSEngine.setObjectOwnership(value, QJSEngine.ObjectOwnership.CppOwnership)
            return self.engine.newQObject(value)
        if value is None:
            return QJSValue(QJSValue.SpecialValue.NullValue)
        return QJSValue(value)


class ScriptBridge:
    """Binds live objects into the named script contexts.

    A dynamic page (anything with a ``content`` attribute) is bound as
    ``Dynamic<Label>``, its content as ``<Label>`` and a ``<Label>Flags``
    companion carrying the mirrored flag accessors. Any other object is
    bound under its own object name.
    """

    def __init__(self, contexts: dict[str, ScriptContext] | None = None):
        self.contexts: dict[str, ScriptContext] = dict(contexts or {})
        # Keyed on the bound object itself; entries go away with it.
        self._bindings: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def context(self, name: str) -> ScriptContext | None:
        return self.contexts.get(name)

    def is_bound(self, context_name: str, obj) -> bool:
        return context_name in self._bindings.get(obj, {})

    def bound_contexts(self, obj) -> list[str]:
        return list(self._bindings.get(obj, {}))

    def bind(self, context_name: str, obj) -> None:
        context = self.contexts.get(context_name)
        if context is None:
            logger.debug("No %s context, not binding %s", context_name, obj.objectName())
            return
        # Rebinding replaces the previous globals.
        self.unbind(context_name, obj)

        names = []
        content = getattr(obj, "content", None)
        if content is not None:
            label = content.objectName()
            context.set_global(obj.objectName(), obj)
            context.set_global(label, content)
            context.set_flags_companion(label + FLAGS_COMPANION_SUFFIX, obj)
            names = [obj.objectName(), label, label + FLAGS_COMPANION_SUFFIX]
        elif obj.objectName():
            context.set_global(obj.objectName(), obj)
            names = [obj.objectName()]
        else:
            logger.warning("Cannot bind unnamed %s into %s context", type(obj).__name__, context_name)
            return

        self._bindings.setdefault(obj, {})[context_name] = names
        logger.debug("Bound %s into %s context", ", ".join(names), context_name)

    def unbind(self, context_name: str, obj) -> None:
        bound = self._bindings.get(obj, {})
        names = bound.pop(context_name, None)
        if not bound:
            self._bindings.pop(obj, None)
        if not names:
            return
        context = self.contexts.get(context_name)
        if context is None:
            return
        for name in names:
            context.remove_global(name)
        logger.debug("Unbound %s from %s context", ", ".join(names), context_name)

    def invoke_conventional_hook(
        self, context_name: str, label: str, suffix: str = PAGE_CALLBACK_SUFFIX
    ) -> None:
        """Call ``<label><suffix>`` in *context_name* if the script has it."""
        context = self.contexts.get(context_name)
        if context is None or not context.initialized:
            logger.debug("%s context not initialized, skipping %s%s", context_name, label, suffix)
            return
        context.call_method(label + suffix)
