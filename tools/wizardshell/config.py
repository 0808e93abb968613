"""Product configuration (publisher, product values, components)."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .components import Component
from .registry import WizardError

logger = logging.getLogger(__name__)


class ConfigError(WizardError):
    """Product configuration could not be read."""


@dataclass
class ProductConfig:
    publisher: str = "Example"
    name: str = "Product"
    title: str = "Product"
    version: str = "1.0.0"
    product_name: str = "Product"
    target_dir: str = "~/Applications"
    components: list[Component] = field(default_factory=list)
    require: list[str] = field(default_factory=list)

    def values(self) -> dict[str, str]:
        """Engine values keyed the way scripts address them."""
        return {
            "Publisher": self.publisher,
            "Name": self.name,
            "Title": self.title,
            "Version": self.version,
            "ProductName": self.product_name,
            "TargetDir": str(Path(self.target_dir).expanduser()),
        }


def _component_from_dict(data: dict) -> Component:
    if "name" not in data:
        raise ConfigError(f"Component without name: {data!r}")
    licenses = data.get("licenses", {})
    if not isinstance(licenses, dict):
        raise ConfigError(f"Component {data['name']}: licenses must be an object")
    return Component(
        name=data["name"],
        display_name=data.get("display_name", ""),
        version=data.get("version", ""),
        licenses={str(k): str(v) for k, v in licenses.items()},
        selected=bool(data.get("selected", True)),
        installed=bool(data.get("installed", False)),
        forced=bool(data.get("forced", False)),
        install_commands=[list(cmd) for cmd in data.get("install_commands", [])],
        uninstall_commands=[list(cmd) for cmd in data.get("uninstall_commands", [])],
    )


def load_config(path: str | Path | None = None) -> ProductConfig:
    """Load a ProductConfig from a JSON file, or defaults when *path* is None."""
    if path is None:
        return ProductConfig()

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be an object")

    defaults = ProductConfig()
    name = data.get("name", defaults.name)
    config = ProductConfig(
        publisher=data.get("publisher", defaults.publisher),
        name=name,
        title=data.get("title", name),
        version=str(data.get("version", defaults.version)),
        product_name=data.get("product_name", name),
        target_dir=data.get("target_dir", defaults.target_dir),
        components=[_component_from_dict(c) for c in data.get("components", [])],
        require=list(data.get("require", [])),
    )
    logger.debug(
        "Loaded %s %s with %d components", config.name, config.version, len(config.components)
    )
    return config
