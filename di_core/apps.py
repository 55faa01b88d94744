import importlib
import pkgutil
from collections.abc import Iterable, Iterator
from types import ModuleType

from django.apps import AppConfig
from django.conf import settings


SKIPPED_SUBPACKAGES = ("tests", "migrations")


def iter_wired_modules(packages: Iterable[str]) -> Iterator[ModuleType]:
    """Yield the modules of `packages` that may use injection, skipping tests and migrations."""
    for package_name in packages:
        package = importlib.import_module(package_name)
        yield package
        for module_info in pkgutil.walk_packages(package.__path__, prefix=f"{package_name}."):
            if any(part in SKIPPED_SUBPACKAGES for part in module_info.name.split(".")):
                continue
            yield importlib.import_module(module_info.name)


class DICoreConfig(AppConfig):
    name = "di_core"

    def ready(self) -> None:
        from di_core import containers

        container = containers.AppContainer()
        container.config.from_dict(settings.__dict__["_wrapped"].__dict__)

        container.wire(
            modules=list(iter_wired_modules(getattr(settings, "INTERNAL_INSTALLED_APPS", []))),
        )

        containers.container = container
