"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, views_dir="app/views")
    """

    debug: bool = False

    # Dispatch convention
    default_controller: str = "Home"
    default_action: str = "index"

    # Views
    views_dir: str | Path = "views"
    shared_dir: str = "shared"  # Subdirectory of views_dir for layouts and partials
    view_suffix: str = ".html"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Bind query parameters as the model for non-POST requests
    bind_query_model: bool = False

    # Status set on the response when an action raises; None keeps 200
    action_error_status: int | None = 500

    # Request
    document_root: str | Path | None = None
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Logging
    log_level: str = "info"
