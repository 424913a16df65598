"""Resolution of package prose documents."""

from __future__ import annotations

from collections.abc import Iterable

from .model import API, ProseFile, SourceImage


class ProseError(LookupError):
    """A prose document could not be resolved."""


class MapResolver(dict):
    """Prose documents keyed by path."""

    def resolve_prose(self, filename: str) -> str:
        """The content of the named document."""
        try:
            return self[filename]
        except KeyError:
            raise ProseError(f"prose file {filename!r} not found") from None


def image_resolver(prose_files: Iterable[ProseFile]) -> MapResolver:
    """A resolver over the prose files of an image."""
    resolver = MapResolver()
    for prose_file in prose_files:
        content = prose_file.content
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        resolver[prose_file.path] = content
    return resolver


def remove_markdown_header(data: str) -> str:
    """Drop a leading markdown title (``# `` or underlined) and blank lines."""
    # Only the first few lines matter: the title and some empty lines.
    lines = data.split("\n", 4)

    if len(lines) > 1:
        if lines[0].startswith("# "):
            lines = lines[1:]
        elif lines[1].startswith("=="):
            lines = lines[2:]

    while len(lines) > 1 and not lines[0].strip():
        lines = lines[1:]

    return "\n".join(lines)


def resolve_prose(source: SourceImage, api: API) -> None:
    """Set the prose of each API package from the image's package configs."""
    resolver = image_resolver(source.prose)
    configs = {cfg.name: cfg for cfg in source.packages}

    for pkg in api.packages:
        config = configs.get(pkg.name)
        if config is None:
            continue
        prose = ""
        if config.prose:
            try:
                resolved = resolver.resolve_prose(config.prose)
            except ProseError as err:
                raise ProseError(f"prose resolver: package {pkg.name}: {err}") from err
            prose = remove_markdown_header(resolved)
        pkg.prose = prose