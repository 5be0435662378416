"""Custom exceptions for the trampoline.

Every fatal condition of a trampoline run is raised as a subclass of
:class:`TrampolineError`; the CLI turns them into a red diagnostic and a
non-zero exit code.
"""


class TrampolineError(Exception):
    """Base exception for all trampoline errors.

    Parameters
    ----------
    message : str
        Error message describing what went wrong.
    details : dict, optional
        Additional structured information about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        """Format error message with optional details.

        Returns
        -------
        str
            Formatted error message.
        """
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(TrampolineError):
    """Configuration loading or validation error.

    Raised when:
    - A required environment variable is missing or empty
    - An override file is malformed
    - The project root cannot be located
    """

    pass


class ImageError(TrampolineError):
    """The Docker image could not be obtained.

    Raised when:
    - Docker is not installed or not in PATH
    - Pulling fails and no image source is configured
    - Building the image from its Dockerfile fails
    """

    pass


class CloudAuthError(TrampolineError):
    """Error activating Google Cloud credentials.

    Parameters
    ----------
    message : str
        Error message describing the failure.
    command : str, optional
        The gcloud command that failed.
    returncode : int, optional
        Exit code of the failed command.

    Attributes
    ----------
    command : str or None
        The gcloud command that failed.
    returncode : int or None
        Exit code if the command ran at all.
    """

    def __init__(self, message: str, command: str = None, returncode: int = None):
        details = {}
        if command:
            details["command"] = command
        if returncode is not None:
            details["returncode"] = returncode

        super().__init__(message, details)
        self.command = command
        self.returncode = returncode
