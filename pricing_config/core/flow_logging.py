import logging

from pricing_config.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "resolution":
        return settings.FLOW_LOGS_RESOLUTION_ENABLED
    if category == "pricing":
        return settings.FLOW_LOGS_PRICING_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
