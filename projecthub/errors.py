from __future__ import annotations


class ProjectHubError(Exception):
    """Base class for domain errors raised by the service layer."""


class NotFoundError(ProjectHubError):
    """The requested record does not exist."""


class AccessDeniedError(ProjectHubError):
    """The caller may not read or change the record."""


class ConflictError(ProjectHubError):
    """The change clashes with existing data (duplicate, already a member...)."""


class ValidationFailedError(ProjectHubError):
    """Input passed schema validation but breaks a business rule."""
