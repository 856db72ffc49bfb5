"""Platform-specific listing collectors."""

import httpx

from corptrends.collectors.base import PlatformCollector
from corptrends.collectors.platform.hatena import HatenaBookmarkCollector
from corptrends.collectors.platform.qiita import QiitaCollector
from corptrends.collectors.platform.zenn import ZennCollector
from corptrends.settings.app import AppSettings
from corptrends.store.models import PlatformTag


COLLECTOR_CLASSES: dict[PlatformTag, type[PlatformCollector]] = {
    PlatformTag.QIITA: QiitaCollector,
    PlatformTag.ZENN: ZennCollector,
    PlatformTag.HATENA: HatenaBookmarkCollector,
}


def build_collector(
    platform: PlatformTag,
    settings: AppSettings,
    run_id: str = "",
    transport: httpx.BaseTransport | None = None,
) -> PlatformCollector:
    """Create the collector for a platform from settings.

    Args:
        platform: Platform tag.
        settings: Application settings.
        run_id: Run identifier for logging.
        transport: Optional httpx transport for the engine.

    Returns:
        Configured collector.
    """
    return COLLECTOR_CLASSES[platform].from_settings(
        settings, run_id=run_id, transport=transport
    )


__all__ = [
    "COLLECTOR_CLASSES",
    "HatenaBookmarkCollector",
    "QiitaCollector",
    "ZennCollector",
    "build_collector",
]
