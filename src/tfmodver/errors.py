"""Exception hierarchy shared by the version engine, cache, registry and updater."""

from __future__ import annotations


class TfModVerError(Exception):
    """Base class for all errors raised by tfmodver."""


# Version engine

class InvalidVersionError(TfModVerError, ValueError):
    """Raised when a string is not a valid semantic version."""

    def __init__(self, version: str, reason: str = ""):
        self.version = version
        msg = f"invalid version {version!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class InvalidConstraintError(TfModVerError, ValueError):
    """Raised when a constraint expression cannot be parsed."""


class UnknownStrategyError(TfModVerError, ValueError):
    """Raised for a version selection strategy that is not supported."""


class NoMatchingVersionError(TfModVerError, ValueError):
    """Raised when no available version satisfies the constraints."""


class NoMatchingMajorError(TfModVerError, ValueError):
    """Raised when no available version shares the current major version."""

    def __init__(self, major: int):
        self.major = major
        super().__init__(f"no version found matching major version {major}")


# Cache

class InvalidKeyError(TfModVerError, ValueError):
    """Raised when a cache key is empty."""


class CacheWriteError(TfModVerError):
    """Raised when a cache entry could not be persisted."""


# Source classification

class EmptySourceError(TfModVerError, ValueError):
    """Raised for an empty module source string."""


class InvalidSourceFormatError(TfModVerError, ValueError):
    """Raised when a module source string has an unrecognized shape."""


# Registry

class RegistryError(TfModVerError):
    """Raised when the registry cannot be reached or answers unexpectedly."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RegistryTimeoutError(RegistryError):
    """Raised when a registry call exceeds its timeout."""


class CancelledError(TfModVerError):
    """Raised when a fetch is abandoned because its batch was cancelled."""


# Updater

class UpdateReadError(TfModVerError):
    """Raised when a configuration file cannot be read."""


class WriteFailureError(TfModVerError):
    """Raised when an updated file could not be written durably."""

    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to write {path}: {cause}")


class DiffToolError(TfModVerError):
    """Raised when the external diff formatting command fails."""


# Configuration / filters

class ConfigError(TfModVerError):
    """Raised for an unreadable or invalid configuration file."""


class InvalidPatternError(TfModVerError, ValueError):
    """Raised for an invalid module filter pattern."""


# Command line

class UsageError(TfModVerError):
    """Raised for invalid command-line input."""
