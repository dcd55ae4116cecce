"""
Custom exceptions for the petcare-core package.

This module defines the exception hierarchy and custom exceptions
used throughout the PetCare backend.
"""

from .core_exceptions import (
    AuthenticationException,
    AuthorizationException,
    BusinessRuleException,
    ConfigurationException,
    ConnectionException,
    DatabaseConfigException,
    DatabaseException,
    DuplicateResourceException,
    EnvironmentException,
    MigrationException,
    NotFoundException,
    NotificationDeliveryException,
    PetCareException,
    TransactionException,
    ValidationException,
    create_error_response,
    format_validation_errors,
)

__all__ = [
    # Exception classes
    "PetCareException",
    "DatabaseException",
    "ConnectionException",
    "TransactionException",
    "MigrationException",
    "NotFoundException",
    "DuplicateResourceException",
    "AuthenticationException",
    "AuthorizationException",
    "NotificationDeliveryException",
    "ValidationException",
    "BusinessRuleException",
    "ConfigurationException",
    "DatabaseConfigException",
    "EnvironmentException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
]
