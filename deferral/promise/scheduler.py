# -*- coding: utf-8 -*-

"""Cooperative task queues executing the Deferred continuations.

A Deferred never calls its handlers from the stack frame who registered
them, nor from the one who settled it. Instead, it asks a scheduler to call
them "soon", that is, on a later turn of the scheduler loop.

Two schedulers are available:

- ``Scheduler``: an explicit FIFO queue. Nothing runs until the owner of
  the scheduler calls ``run()`` (or one of its variants).
- ``AsyncioScheduler``: delegates to an asyncio event loop. Continuations
  run as soon as the loop gets the control back.

Example:

    >>> scheduler = Scheduler()
    >>> d = Deferred(lambda ok, error: ok(3), scheduler=scheduler)
    >>> d2 = d.then(lambda x: x * 2)
    >>> scheduler.run_until_settled(d2)
    6
"""

import asyncio
from collections import deque
import logging

from ..common import config

_logger = logging.getLogger(__name__)

_default_scheduler = None


class Scheduler(object):
    """Single-threaded FIFO queue of tasks.

    A task is a callable and its arguments. Tasks are executed in the order
    they have been queued. A "turn" is the execution of all tasks present in
    the queue at the moment the turn starts; tasks queued during a turn are
    executed in the next turn.

    Note:
        The scheduler is not thread-safe. All calls must come from the thread
        who runs the loop.
    """

    def __init__(self):
        self._tasks = deque()
        self.turn = 0

    def call_soon(self, callback, *args):
        """Queue a task. It will never be executed before this method returns.

        Args:
            callback (callable): function to execute.
            *args: arguments passed to the callback.
        """
        self._tasks.append((callback, args))

    def pending_tasks(self):
        """Returns the number of tasks waiting for execution."""
        return len(self._tasks)

    def __len__(self):
        return self.pending_tasks()

    def run_once(self):
        """Execute one turn.

        Returns:
            int: number of tasks executed.
        """
        nb_tasks = len(self._tasks)
        self.turn += 1
        for _ in range(nb_tasks):
            callback, args = self._tasks.popleft()
            self._exec_task(callback, args)
        return nb_tasks

    def run(self, max_tasks=None):
        """Execute turns until there is no task left.

        Args:
            max_tasks (int, optional): if set, stop after this number of tasks,
                even if the queue is not empty.
        Returns:
            int: number of tasks executed.
        """
        count = 0
        if max_tasks is None:
            while self._tasks:
                count += self.run_once()
            return count

        # A bounded run counts as one turn, even if incomplete.
        if self._tasks and max_tasks > 0:
            self.turn += 1
        while self._tasks and count < max_tasks:
            callback, args = self._tasks.popleft()
            self._exec_task(callback, args)
            count += 1
        return count

    def run_until_settled(self, deferred):
        """Execute turns until the Deferred is settled, then get its result.

        Args:
            deferred (Deferred): the Deferred to wait.
        Returns:
            *: the value of the fulfilled Deferred.
        Raises:
            PendingError: if the queue becomes empty while the Deferred is
                still pending.
            *: if the Deferred is rejected, the rejection reason is raised.
        """
        while deferred.is_pending() and self._tasks:
            self.run_once()
        return deferred.result()

    @staticmethod
    def _exec_task(callback, args):
        try:
            callback(*args)
        except Exception:
            _logger.exception('Scheduled task %s has raised an exception!',
                              getattr(callback, '__name__', callback))

    def __repr__(self):
        return '%s(turn=%s, pending=%s)' % (self.__class__.__name__, self.turn,
                                            len(self._tasks))


class AsyncioScheduler(object):
    """Scheduler running the tasks on an asyncio event loop.

    Each task is given to ``loop.call_soon()``; asyncio guarantees they
    run in FIFO order, after the current callback has returned.

    The loop is bound at creation. Without explicit loop, it's the running
    loop if there is one; otherwise a new loop is created, available as
    ``scheduler.loop``. Tasks queued outside a running loop wait until
    this loop runs.
    """

    def __init__(self, loop=None):
        """
        Args:
            loop (AbstractEventLoop, optional): loop used to run the tasks.
        """
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                _logger.debug('No running loop; create a new event loop.')
                loop = asyncio.new_event_loop()
        self._loop = loop

    @property
    def loop(self):
        return self._loop

    def call_soon(self, callback, *args):
        """Queue a task on the loop.

        Raises:
            RuntimeError: if the loop is closed.
        """
        self._loop.call_soon(callback, *args)

    def run_until_settled(self, deferred):
        """Run the loop until the Deferred is settled, then get its result.

        The loop must not be already running.

        Args:
            deferred (Deferred): the Deferred to wait.
        Returns:
            *: the value of the fulfilled Deferred.
        Raises:
            *: if the Deferred is rejected, the rejection reason is raised.
        """
        future = self._loop.create_future()

        def on_settled(_):
            if not future.done():
                future.set_result(None)

        deferred.then(on_settled, on_settled)
        self._loop.run_until_complete(future)
        return deferred.result()

    def __repr__(self):
        return '%s(loop=%r)' % (self.__class__.__name__, self._loop)


_schedulers = {
    'queue': Scheduler,
    'asyncio': AsyncioScheduler
}


def get_scheduler():
    """Returns the process-wide scheduler used by default by Deferred.

    It's created at the first call, using the ``default_scheduler`` config
    entry. An unknown entry fallback to a ``Scheduler``.
    """
    global _default_scheduler

    if _default_scheduler is None:
        name = config.get('default_scheduler')
        if name not in _schedulers:
            _logger.warning('Unknown scheduler "%s"; use "queue" instead.',
                            name)
            name = 'queue'
        _logger.debug('Create default scheduler "%s"', name)
        _default_scheduler = _schedulers[name]()
    return _default_scheduler


def set_scheduler(scheduler):
    """Replace the process-wide scheduler.

    Deferred already created keep their scheduler.

    Args:
        scheduler: any object having a ``call_soon(callback, *args)`` method.
            If None, the next call to ``get_scheduler()`` will create a new
            one.
    """
    global _default_scheduler
    _default_scheduler = scheduler
