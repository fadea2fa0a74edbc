# -*- coding: utf-8 -*-

import pytest

from deferral.promise import Scheduler, set_scheduler


@pytest.fixture(autouse=True)
def scheduler(request):
    """Install a new Scheduler as the default one.

    Each test gets an empty queue. The default scheduler is reset at the end
    of the test.

    Returns:
        Scheduler: the scheduler used by all Deferred created in the test.
    """
    s = Scheduler()
    set_scheduler(s)
    request.addfinalizer(lambda: set_scheduler(None))
    return s
