# -*- coding: utf-8 -*-


class DeferredError(Exception):
    """Base class for errors raised by the promise module."""
    pass


class PendingError(DeferredError):
    """The outcome of a Deferred has been requested before its settlement."""
    pass


class RejectedError(DeferredError):
    """A Deferred has been rejected with a value who is not an exception.

    Python can only raise exceptions. When ``Deferred.result()`` must raise a
    reason of another type, the reason is wrapped in this error.

    Attributes:
        reason: the original rejection reason.
    """

    def __init__(self, reason):
        self.reason = reason
        DeferredError.__init__(self, 'Deferred rejected with: %r' % (reason,))
