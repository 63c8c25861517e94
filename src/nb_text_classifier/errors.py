"""Exception types raised by the text classifier.

Every failure is raised synchronously with a descriptive message. Callers
should branch on the exception type rather than the message text.
"""

from __future__ import annotations


class ClassifierError(Exception):
    """Base class for all classifier errors."""


class InvalidArgumentError(ClassifierError, ValueError):
    """A malformed config, prep task list, model document, or label."""


class InvalidStateError(ClassifierError, RuntimeError):
    """An operation was attempted in the wrong lifecycle phase."""


class InsufficientDataError(ClassifierError):
    """Too few labels or too small a vocabulary to consolidate."""
