"""Exception classes for the deployment command."""


class DeployError(Exception):
    """
    Base exception class for all deployment errors.
    """
    pass


class ConfigError(DeployError):
    """
    Raised when configuration is missing, unreadable or incomplete.
    """
    pass


class AssetDirectoryError(DeployError):
    """
    Raised when the asset directory does not exist or is not a directory.
    """
    pass


class UnknownFingerprintError(DeployError):
    """
    Raised when the platform asks for a fingerprint that is not in the
    local manifest.
    """

    def __init__(self, fingerprint: str):
        super().__init__(f"unknown fingerprint: {fingerprint}")
        self.fingerprint = fingerprint


class SessionError(DeployError):
    """
    Raised when the upload session cannot be opened.
    """
    pass


class UploadError(DeployError):
    """
    Raised when a bucket upload is rejected or returns an unusable body.
    """
    pass


class PublishError(DeployError):
    """
    Raised when the script upload does not return HTTP 200.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
