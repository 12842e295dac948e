"""Logging and Logfire setup for the viewer.

Logfire is optional at runtime: it is only configured when requested with
``--logfire``. When enabled it instruments httpx so every upload chunk and
neighbor fetch shows up as a span.
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass

from ifc_graph_viewer.config import load_env

_LOG_FORMAT = "%(levelname)s: %(message)s"


@dataclass
class LogfireStatus:
    """Result returned by setup_logfire().

    Attributes:
        enabled: True when Logfire was configured and httpx instrumented.
        cloud_sync: True when a LOGFIRE_TOKEN write-token was present.
        url: Dashboard base URL when cloud_sync is True, else "".
    """

    enabled: bool = False
    cloud_sync: bool = False
    url: str = ""


def setup_logging(verbose: bool = False, *, tui: bool = False) -> None:
    """Configure root logging for the CLI.

    In TUI mode only warnings and above are kept, since anything written to
    stderr corrupts the Textual display.
    """
    if tui:
        level = logging.ERROR
    else:
        level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    # httpx logs every request at INFO; one line per 5 MiB chunk is noise.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_logfire(enabled: bool = False, console: bool = True) -> LogfireStatus:
    """Configure Logfire instrumentation for HTTP ingestion.

    Args:
        enabled: If False this is a no-op.
        console: If False, suppress Logfire console output (TUI mode).

    Returns:
        LogfireStatus with enabled/cloud_sync/url populated.
    """
    if not enabled:
        return LogfireStatus()

    load_env()

    import logfire

    token = os.getenv("LOGFIRE_TOKEN")
    if not token and console:
        warnings.warn(
            "LOGFIRE_TOKEN not set. Tracing will work locally without cloud sync.",
            stacklevel=2,
        )

    configure_kwargs: dict[str, object] = {
        "send_to_logfire": "if-token-present",
        "service_name": "ifc-graph-viewer",
    }
    if not console:
        configure_kwargs["console"] = False

    try:
        logfire.configure(**configure_kwargs)  # type: ignore[arg-type]
        logfire.instrument_httpx()
    except Exception as exc:
        if console:
            warnings.warn(f"Failed to configure Logfire: {exc}", stacklevel=2)
        return LogfireStatus()

    if token:
        return LogfireStatus(
            enabled=True, cloud_sync=True, url="https://logfire.pydantic.dev"
        )
    return LogfireStatus(enabled=True)
