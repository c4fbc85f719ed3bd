"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Stores
    StoreNotFoundError,

    # Import jobs
    ImportJobNotFoundError,
    InvalidStatusTransitionError,
    JobStatusUpdateError,

    # File intake
    FileParseError,
    MissingColumnsError,
    RowLimitExceededError,
    RowRejectedError,

    # Shopify
    ShopifyGraphQLError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Stores
    "StoreNotFoundError",

    # Import jobs
    "ImportJobNotFoundError",
    "InvalidStatusTransitionError",
    "JobStatusUpdateError",

    # File intake
    "FileParseError",
    "MissingColumnsError",
    "RowLimitExceededError",
    "RowRejectedError",

    # Shopify
    "ShopifyGraphQLError",
]
