# -*- coding: utf-8 -*-

"""Deferred values following the Promise/A+ resolution semantics."""

from .__version__ import __version__  # noqa
from .promise import (AsyncioScheduler, Deferred, DeferredError,  # noqa
                      PendingError, RejectedError, Scheduler, get_scheduler,
                      is_thenable, set_scheduler, wrap_deferred)
