"""
Task orchestrator exceptions.
"""

from __future__ import annotations


class JobError(Exception):
    """Base exception for job processing failures."""


class NonRetryableJobError(JobError):
    """Raised by a handler when retrying cannot help; the job is dead-lettered."""


class PayloadDecodeError(NonRetryableJobError):
    """Raised when a job payload is not valid JSON or fails validation."""


class UnknownJobTypeError(NonRetryableJobError):
    """Raised when no handler is registered for a job type."""
