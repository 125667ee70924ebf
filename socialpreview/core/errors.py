"""Custom exceptions used across social-preview."""


class SocialPreviewError(Exception):
    """Base error for the application."""

    hint = ""


class ConfigError(SocialPreviewError):
    """Configuration related error."""

    hint = "Check the selector file and environment overrides."


class InvalidInput(ConfigError):
    """Malformed repository identifier or out-of-range capture options."""

    hint = "Check the command options (see --help)."


class SessionMissing(SocialPreviewError):
    """No stored session found where one is required."""

    hint = "Run `social-preview init-auth` to log in and save a session first."


class BrowserError(SocialPreviewError):
    """Raised when browser automation fails."""

    hint = "Re-run with --headed to watch the browser; failure screenshots are under the work logs."


class NotAuthenticated(BrowserError):
    """The settings page redirected to the login page."""

    hint = "Re-run init-auth to refresh the stored session and try again."


class ContentNotFound(BrowserError):
    """The content region never became visible."""

    hint = "Check that the repository is visible to this session and has a README on the chosen branch."


class SectionNotFound(BrowserError):
    """The social preview section never appeared on the settings page."""

    hint = "Check that the logged-in account has admin access to the repository."


class UploadControlsNotFound(BrowserError):
    """Neither upload affordance appeared after opening the section."""

    hint = "The settings page layout may have changed; review the selector file."


class UploadError(BrowserError):
    """Raised when upload fails."""


class UploadUnconfirmed(UploadError):
    """The image identifier stayed empty after submission."""

    hint = "Open the repository settings and check the social preview manually."
