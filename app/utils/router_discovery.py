import importlib
import pkgutil

from fastapi import APIRouter, FastAPI
from loguru import logger


def discover_routers(package_name: str = "app.api") -> list[tuple[str, APIRouter]]:
    """Collect the module-level `router` of every module under `package_name`.

    Subpackages are scanned recursively; modules starting with an underscore are skipped.

    Returns:
        (module name, router) pairs sorted by module name, so registration order is stable.
    """
    package = importlib.import_module(package_name)
    package_path = getattr(package, "__path__", None)
    if not package_path:
        logger.warning(f"Cannot scan {package_name} for routers as it's not a package")
        return []

    routers: list[tuple[str, APIRouter]] = []
    for module_info in pkgutil.iter_modules(package_path):
        if module_info.name.startswith("_"):
            continue

        full_name = f"{package_name}.{module_info.name}"
        if module_info.ispkg:
            routers.extend(discover_routers(full_name))
            continue

        module = importlib.import_module(full_name)
        router = getattr(module, "router", None)
        if isinstance(router, APIRouter):
            routers.append((full_name, router))
            logger.debug(f"Discovered router in {full_name}")

    return sorted(routers, key=lambda item: item[0])


def register_routers(app: FastAPI, prefix: str = "/api") -> None:
    for module_name, router in discover_routers():
        app.include_router(router, prefix=prefix)
        logger.info(f"Registered {module_name} under {prefix}{router.prefix}")
