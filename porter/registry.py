"""Platform id -> package class registries."""

from typing import Dict, List, Optional, Type

from .connection import Connection
from .exceptions import UnknownPackage
from .postscripts import Postscript, VanillaPostscript
from .sources import CodoForum, Source, WebWiz
from .storage.base import BaseStorage
from .support import FEATURES, feature_status, split_feature_name
from .targets import Flarum, Target, Vanilla

SOURCES: Dict[str, Type[Source]] = {
    "codoforum": CodoForum,
    "webwiz": WebWiz,
}

TARGETS: Dict[str, Type[Target]] = {
    "vanilla": Vanilla,
    "flarum": Flarum,
}

POSTSCRIPTS: Dict[str, Type[Postscript]] = {
    "vanilla": VanillaPostscript,
}


def register_source(name: str, cls: Type[Source]) -> None:
    SOURCES[name.lower()] = cls


def register_target(name: str, cls: Type[Target]) -> None:
    TARGETS[name.lower()] = cls


def register_postscript(name: str, cls: Type[Postscript]) -> None:
    POSTSCRIPTS[name.lower()] = cls


def source_factory(name: str) -> Source:
    """Instantiate a registered source package."""
    cls = SOURCES.get(name.lower())
    if cls is None:
        raise UnknownPackage("source", name)
    return cls()


def target_factory(name: str) -> Target:
    """Instantiate a registered target package."""
    cls = TARGETS.get(name.lower())
    if cls is None:
        raise UnknownPackage("target", name)
    return cls()


def postscript_factory(
    name: str,
    storage: BaseStorage,
    connection: Connection
) -> Optional[Postscript]:
    """Finalization step for a target, or None when it declares none."""
    cls = POSTSCRIPTS.get(name.lower())
    if cls is None:
        return None
    return cls(storage, connection)


def get_registry(kind: str) -> Dict[str, type]:
    if kind in ("source", "sources"):
        return SOURCES
    if kind in ("target", "targets"):
        return TARGETS
    raise UnknownPackage("package kind", kind)


def list_packages(kind: str) -> List[Dict[str, str]]:
    """Registered packages of one kind, sorted by id."""
    registry = get_registry(kind)
    return [
        {"id": name, "name": cls.SUPPORTED.get("name", name)}
        for name, cls in sorted(registry.items())
    ]


def feature_list(kind: str, name: str) -> List[Dict[str, str]]:
    """
    Feature support table for one package.

    Args:
        kind: 'source' or 'target'
        name: Platform id

    Returns:
        List of {"feature", "support"} rows in vocabulary order
    """
    registry = get_registry(kind)
    cls = registry.get(name.lower())
    if cls is None:
        raise UnknownPackage(kind, name)

    return [
        {"feature": split_feature_name(feature), "support": feature_status(cls.SUPPORTED, feature)}
        for feature in FEATURES
    ]
