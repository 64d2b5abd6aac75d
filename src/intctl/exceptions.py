"""Custom exceptions for intctl."""


class IntctlError(Exception):
    """Base exception for all intctl errors."""

    pass


class ConfigError(IntctlError):
    """Raised when the configuration file cannot be loaded."""

    pass


class FormDefinitionError(IntctlError):
    """Raised when a form's fields are declared inconsistently."""

    pass


class InvalidValueError(IntctlError):
    """Raised when a supplied or prompted value fails validation."""

    def __init__(self, option_name: str, message: str):
        super().__init__(f"Invalid value for --{option_name}: {message}")
        self.option_name = option_name
        self.message = message


class MissingValueError(IntctlError):
    """Raised when a required field has no value in non-interactive mode."""

    def __init__(self, option_name: str):
        super().__init__(f"The option --{option_name} is required.")
        self.option_name = option_name


class UnhandledConditionError(RuntimeError):
    """Raised when a conditional field conflict cannot be explained to the user.

    Not an IntctlError: commands let it propagate.
    """

    pass
