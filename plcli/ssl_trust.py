"""System certificate store integration.

Makes TLS verification use the operating system trust store via the
`truststore` library, so corporate roots work without touching the bundled
certifi CA file.

Environment Variables:
    PLCLI_DISABLE_OS_TRUST=1  -> Skip injection entirely (use certifi)
"""

from __future__ import annotations

import logging
import os

import truststore

logger = logging.getLogger(__name__)

OS_TRUST_INJECTED: bool = False
OS_TRUST_REASON: str = "not-attempted"

__all__ = ["inject_os_trust", "OS_TRUST_INJECTED", "OS_TRUST_REASON"]


def inject_os_trust() -> None:
    """Inject the system certificate store into the ``ssl`` module.

    Failures are logged at debug level and leave certifi in place.
    """
    global OS_TRUST_INJECTED, OS_TRUST_REASON
    if os.environ.get("PLCLI_DISABLE_OS_TRUST") == "1":
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = "disabled-env"
        return
    try:
        truststore.inject_into_ssl()
    except Exception as exc:  # pragma: no cover - platform dependent
        logger.debug("System trust store injection skipped: %s: %s", exc.__class__.__name__, exc)
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = f"error:{exc.__class__.__name__}"
        return
    OS_TRUST_INJECTED = True
    OS_TRUST_REASON = "injected:ssl"
