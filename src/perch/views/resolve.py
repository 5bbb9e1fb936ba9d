"""View file resolution.

Pure path search, independent of how a view is rendered. A view name is
tried, in order, as:

1. a literal path to an existing file,
2. ``<views>/<controller>/<name>``,
3. ``<views>/<shared>/<name>``.

When nothing matches and the name lacks the view suffix, the whole search
runs once more with the suffix appended. There is no further guessing.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

IsFile = Callable[[Path], bool]


def _is_file(path: Path) -> bool:
    return os.path.isfile(path)


def resolve_view_file(
    name: str | Path | None,
    *,
    controller_dir: Path,
    shared_dir: Path,
    suffix: str = ".html",
    is_file: IsFile = _is_file,
) -> Path | None:
    """Return the path *name* resolves to, or None when no candidate exists.

    *is_file* is the existence check; tests pass a recorder to observe the
    probe order.
    """
    if not name:
        return None
    name = str(name)
    for candidate in (Path(name), controller_dir / name, shared_dir / name):
        if is_file(candidate):
            return candidate
    if suffix and not name.endswith(suffix):
        return resolve_view_file(
            name + suffix,
            controller_dir=controller_dir,
            shared_dir=shared_dir,
            suffix="",
            is_file=is_file,
        )
    return None


@dataclass(frozen=True, slots=True)
class ViewLocator:
    """Resolves view names against one views directory.

    Usage::

        locator = ViewLocator(Path("views"))
        locator.conventional_path("Home", "index")  # views/home/index.html
        locator.find("about", "Home")               # views/home/about.html or None
    """

    views_dir: Path
    shared_dir_name: str = "shared"
    suffix: str = ".html"

    @property
    def shared_dir(self) -> Path:
        return self.views_dir / self.shared_dir_name

    def controller_dir(self, controller: str) -> Path:
        return self.views_dir / controller.lower()

    def conventional_path(self, controller: str, action: str) -> Path:
        """``<views>/<lowercased controller>/<action><suffix>``."""
        return self.controller_dir(controller) / f"{action}{self.suffix}"

    def find(self, name: str | Path | None, controller: str, *, is_file: IsFile = _is_file) -> Path | None:
        return resolve_view_file(
            name,
            controller_dir=self.controller_dir(controller),
            shared_dir=self.shared_dir,
            suffix=self.suffix,
            is_file=is_file,
        )
