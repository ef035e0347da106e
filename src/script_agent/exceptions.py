# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

class AgentError(Exception):
    """Base exception for the Script Agent."""

    pass


class AgentNotInitialized(AgentError):
    """Raised when an operation is invoked before ``initialize`` completed."""

    pass


class AgentInitializationError(AgentError):
    """Raised when a required collaborator failed to come up during ``initialize``."""

    pass


class BackendUnavailable(AgentError):
    """Raised when no backend client could be resolved from the current configuration."""

    pass


class BackendCallFailure(AgentError):
    """Raised when the resolved backend client failed during a call or returned an unusable reply."""

    pass


class ValidationFailure(AgentError):
    """Raised when a generated script failed validation and was not successfully repaired."""

    pass


class SyncError(AgentError):
    """Base exception for GitHub synchronisation errors."""

    pass


class NetworkError(SyncError):
    """Exception raised for network-related sync errors (timeouts, connection refused)."""

    pass


class AuthError(SyncError):
    """Exception raised for authentication or permission errors."""

    pass
