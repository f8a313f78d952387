"""
Custom exception classes with error codes
"""


class ZoomVaultError(Exception):
    """Base exception for zoomvault errors"""

    def __init__(self, message: str, code: str, details: str = ""):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON output"""
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigError(ZoomVaultError):
    """Missing or invalid configuration"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "INVALID_CONFIG", details)


class StoreError(ZoomVaultError):
    """Record store insert/update/select failed"""

    def __init__(self, message: str, details: str = "", code: str = "STORE_FAILURE"):
        super().__init__(message, code, details)


class InvalidTransitionError(StoreError):
    """Status update would move a recording backwards or out of a terminal state"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, details, code="INVALID_TRANSITION")


class RecordingNotFoundError(ZoomVaultError):
    """No recording with the requested id"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "RECORDING_NOT_FOUND", details)


class DownloadFailedError(ZoomVaultError):
    """External downloader failed"""

    def __init__(self, message: str, details: str = "", code: str = "DOWNLOAD_FAILED"):
        super().__init__(message, code, details)


class DownloaderNotFoundError(DownloadFailedError):
    """Downloader executable not found"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, details, code="DOWNLOADER_NOT_FOUND")


class ArtifactNotFoundError(DownloadFailedError):
    """Downloader exited cleanly but left no matching file"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, details, code="ARTIFACT_NOT_FOUND")


class DeliveryError(ZoomVaultError):
    """Sending a recording back to a chat failed"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "DELIVERY_FAILED", details)


class TransportError(ZoomVaultError):
    """Chat transport request failed"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "TRANSPORT_ERROR", details)
