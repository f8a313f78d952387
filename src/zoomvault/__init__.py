"""
zoomvault - Collect Zoom share links from chat, download and serve the recordings
"""

try:
    from importlib.metadata import version

    __version__ = version("zoomvault")
except Exception:
    # Fallback for editable/uninstalled checkouts
    __version__ = "0.dev0"
__author__ = "zoomvault"
__description__ = "Telegram bot and web API that archive Zoom cloud recordings from share links"

from .access import AccessGate
from .catalogue import CatalogueQuery
from .config import Config, ConfigError
from .delivery import DeliveryService
from .downloader import DownloadOrchestrator
from .exceptions import DownloadFailedError, StoreError, ZoomVaultError
from .logger import setup_logging
from .models import LinkDescriptor, Principal, Recording, RecordingStatus
from .parser import LinkParser, parse_share_message
from .store import RecordStore

__all__ = [
    "AccessGate",
    "CatalogueQuery",
    "Config",
    "ConfigError",
    "DeliveryService",
    "DownloadOrchestrator",
    "DownloadFailedError",
    "LinkDescriptor",
    "LinkParser",
    "Principal",
    "Recording",
    "RecordingStatus",
    "RecordStore",
    "StoreError",
    "ZoomVaultError",
    "parse_share_message",
    "setup_logging",
    "__version__",
]
