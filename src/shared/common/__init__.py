# Shared Common Library for the Assessment Platform
# Authentication, permissions, error handling and service clients used by
# the exam attempt service.

__version__ = "1.0.0"

from .exceptions import (
    BaseAPIException,
    InvalidStateError,
    AttemptLimitExceededError,
    NotFoundError,
    StoreUnavailableError,
)

__all__ = [
    'BaseAPIException',
    'InvalidStateError',
    'AttemptLimitExceededError',
    'NotFoundError',
    'StoreUnavailableError',
]
