# -*- coding: utf-8 -*-

from .decorators import wrap_deferred
from .deferred import Deferred
from .errors import DeferredError, PendingError, RejectedError
from .scheduler import (AsyncioScheduler, Scheduler, get_scheduler,
                        set_scheduler)
from .util import is_callable, is_thenable

__all__ = ['is_callable', 'is_thenable', 'AsyncioScheduler', 'Deferred',
           'DeferredError', 'PendingError', 'RejectedError', 'Scheduler',
           'get_scheduler', 'set_scheduler', 'wrap_deferred']
