"""Configuration errors raised while wiring adapters at startup."""

from certanchor.domain.exceptions import CertAnchorError


class ConfigurationError(CertAnchorError):
    """Raised when a selected backend is missing required settings.

    Attributes:
        setting: Name of the missing or invalid environment variable.
    """

    def __init__(self, setting: str, message: str) -> None:
        self.setting = setting
        super().__init__(f"{setting}: {message}")
