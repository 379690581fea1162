"""Laminar tracing setup.

Model round trips always open ``LLM`` spans through ``Laminar``; they are only
exported once the SDK has been initialized with a project key.
"""

from lmnr import Instruments, Laminar

from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.settings import settings

logger = get_pipeline_logger(__name__)

_initialized = False


def initialize_observability(project_api_key: str | None = None) -> bool:
    """Initialize the Laminar SDK for span export.

    @public

    Automatic OpenAI instrumentation is disabled because the Model Client
    opens its own spans. Safe to call more than once.

    Args:
        project_api_key: Laminar key; defaults to ``LMNR_PROJECT_API_KEY``.

    Returns:
        True when tracing is active after the call.
    """
    global _initialized  # noqa: PLW0603

    if _initialized:
        return True

    key = project_api_key or settings.lmnr_project_api_key
    if not key:
        logger.debug("LMNR_PROJECT_API_KEY not set, tracing disabled")
        return False

    try:
        Laminar.initialize(
            project_api_key=key,
            disabled_instruments=[Instruments.OPENAI] if Instruments.OPENAI else [],
            export_timeout_seconds=15,
        )
    except Exception as e:
        logger.warning(f"Laminar initialization failed: {e}")
        return False

    _initialized = True
    logger.info("Laminar initialized")
    return True


__all__ = ["initialize_observability"]
