"""Kida environment setup and view rendering.

The dispatcher renders through the ``ViewRenderer`` protocol: give it a
resolved view file and a context mapping, get a string back. The default
implementation is backed by a kida ``Environment`` created once during
``App._freeze()``.
"""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from kida import Environment, FileSystemLoader
from kida.template import Markup

from perch.config import AppConfig


class ViewRenderer(Protocol):
    """Anything that can turn a view file plus a context into text."""

    def render(self, path: Path, context: Mapping[str, Any]) -> str: ...


def create_environment(
    config: AppConfig,
    filters: dict[str, Callable[..., Any]],
    globals_: dict[str, Any],
) -> Environment:
    """Create a kida Environment rooted at ``config.views_dir``.

    Views can ``{% extends %}`` and ``{% include %}`` one another by
    their path relative to the views directory.
    """
    env = Environment(
        loader=FileSystemLoader(str(config.views_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )
    if filters:
        env.update_filters(filters)
    for name, value in globals_.items():
        env.add_global(name, value)
    return env


class KidaRenderer:
    """Render view files with kida.

    Files under the views directory load through the environment (and so
    share its compiled-template cache). Files elsewhere, reachable when a
    view is named by an explicit path, are compiled from source.
    """

    __slots__ = ("_env", "_root")

    def __init__(self, env: Environment, views_dir: str | Path) -> None:
        self._env = env
        self._root = Path(views_dir).resolve()

    @property
    def env(self) -> Environment:
        return self._env

    def render(self, path: Path, context: Mapping[str, Any]) -> str:
        try:
            name = Path(path).resolve().relative_to(self._root).as_posix()
        except ValueError:
            template = self._env.from_string(Path(path).read_text(encoding="utf-8"))
        else:
            template = self._env.get_template(name)
        return template.render(dict(context))


def mark_safe(content: Any) -> Any:
    """Wrap rendered view output so a layout can emit it unescaped."""
    if isinstance(content, str):
        return Markup(content)
    return content
