"""Splitting of versioned package names into package and sub-package."""

from __future__ import annotations

import re
from dataclasses import dataclass

_VERSION = re.compile(r"v[0-9]+")


class PackageNameError(ValueError):
    """A package name does not follow the versioned naming rules."""


@dataclass(frozen=True)
class PackageID:
    """A versioned package name and its optional sub-package."""

    package_name: str
    sub_package: str | None = None


def split_package_parts(package_name: str) -> PackageID:
    """Split ``foo.v1.service`` into ``foo.v1`` and ``service``.

    Exactly one dotted part must be a version (``v`` followed by digits) and
    at most one part may follow it.
    """
    parts = package_name.split(".")
    version_indexes = [idx for idx, part in enumerate(parts) if _VERSION.fullmatch(part)]
    if len(version_indexes) > 1:
        raise PackageNameError(
            f"package {package_name!r}: multiple path parts matched version regex"
        )
    if not version_indexes:
        raise PackageNameError(f"package {package_name!r}: no version part found")

    version_idx = version_indexes[0]
    prefix, suffix = parts[: version_idx + 1], parts[version_idx + 1 :]
    if not suffix:
        return PackageID(package_name=package_name)
    if len(suffix) == 1:
        return PackageID(package_name=".".join(prefix), sub_package=suffix[0])
    raise PackageNameError(f"package {package_name!r}: multiple sub version path parts")