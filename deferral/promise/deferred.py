# -*- coding: utf-8 -*-

import logging

from .errors import PendingError, RejectedError
from .scheduler import get_scheduler
from .util import is_callable, is_thenable

_logger = logging.getLogger(__name__)


class Deferred(object):
    """It represents an operation expected to be completed in the future.

    A Deferred is used for asynchronous computation. It contains a value not
    yet known when the Deferred is created. It allows to set callbacks who
    will be called as soon as the result is known.

    It follows the Promise/A+ resolution rules:

    - it's settled (fulfilled or rejected) only once;
    - callbacks registered by ``then()`` are never called synchronously, but
      on a later turn of the scheduler, in the order they were registered;
    - a Deferred resolved with a "thenable" (any object with a callable
      ``then`` attribute) adopts the state of this thenable.

    Calls are not thread-safe: a Deferred must be used from the thread
    running its scheduler.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, scheduler=None, _name=None, _previous=None):
        """Constructor of the Deferred.

        Generate the two callbacks for the executor, then call the `executor`.
        It means the executor will be fully executed before the constructor
        returns.
        If the executor raises an exception, it's caught and the Deferred is
        rejected with this exception.

        Args:
            executor (callable): Takes 2 callable arguments:
                The first one, `on_fulfilled()` should be called when the
                Deferred is fulfilled (ie the tasks is done) and must accept
                the result's value as its only argument. If this value is a
                thenable, the Deferred will follow it instead.
                The second, `on_rejected()`, should be called when an error
                occurs. Its argument is the rejection reason, usually an
                instance of `Exception`.
            scheduler (optional): scheduler used to run the callbacks. By
                default, the one returned by ``get_scheduler()``.
            _name (str): if set, name used when converted to text.
            _previous (Deferred): if set, Deferred who this one is chained to.
                Only used when converted to text.
        """

        self._state = self.PENDING
        self._outcome = None
        self._handlers = []
        if scheduler is None:
            scheduler = get_scheduler()
        self._scheduler = scheduler
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous

        # Set by the first call of either callback, even if the Deferred
        # stays pending while it follows a thenable.
        resolved = [False]

        def resolve_with(value):
            if value is self:
                return self._settle(self.REJECTED, TypeError(
                    'A Deferred cannot be resolved with itself.'))

            if is_thenable(value):
                self._adopt(value, resolve_with)
                return

            self._settle(self.FULFILLED, value)

        def on_fulfilled(value):
            if resolved[0]:
                _logger.debug('Try to fulfill %r already resolved. New value '
                              'will be ignored: %r', self, value)
                return
            resolved[0] = True
            resolve_with(value)

        def on_rejected(reason):
            if resolved[0]:
                _logger.debug('Try to reject %r already resolved. New reason '
                              'will be ignored: %r', self, reason)
                return
            resolved[0] = True
            self._settle(self.REJECTED, reason)

        try:
            executor(on_fulfilled, on_rejected)
        except Exception as error:
            on_rejected(error)

    @property
    def state(self):
        """str: one of PENDING, FULFILLED or REJECTED."""
        return self._state

    def is_pending(self):
        return self._state == self.PENDING

    def is_fulfilled(self):
        return self._state == self.FULFILLED

    def is_rejected(self):
        return self._state == self.REJECTED

    def result(self):
        """Returns the value of the fulfilled Deferred.

        This method never waits. It's up to the caller to run the scheduler
        until the Deferred is settled.

        Returns:
            *: value encapsulated, defined by the operation.
        Raises:
            PendingError: if the Deferred is not settled yet.
            RejectedError: if the Deferred is rejected with a reason who is
                not an exception.
            *: If the Deferred is rejected, the rejection cause is raised.
        """
        if self._state == self.PENDING:
            raise PendingError('%r is not settled yet.' % self)
        elif self._state == self.REJECTED:
            if isinstance(self._outcome, BaseException):
                raise self._outcome
            raise RejectedError(self._outcome)
        return self._outcome

    def exception(self):
        """Returns the rejection reason of the Deferred.

        Returns:
            *: the reason of the rejection, usually an Exception.
            None: if the Deferred is fulfilled.
        Raises:
            PendingError: if the Deferred is not settled yet.
        """
        if self._state == self.PENDING:
            raise PendingError('%r is not settled yet.' % self)
        elif self._state == self.REJECTED:
            return self._outcome
        return None

    def then(self, on_fulfilled=None, on_rejected=None):
        """Create a new Deferred from callbacks called once this is settled.

        If the Deferred is fulfilled, the `on_fulfilled` callback will be
        called. Otherwise (the Deferred has been rejected), the `on_rejected`
        callback is called.
        In any case, the callback will define the state of the returned
        Deferred. If the callback raises an exception, the new Deferred is
        rejected. The callback can returns:
        - A value: the new Deferred will be fulfilled with this value. It's
            also true for `on_rejected`: an error handled by a callback who
            returns normally doesn't propagate.
        - Another Deferred, or any object with a `then` method: when fulfilled
            or rejected, will transfer its status (state and result/error) to
            the Deferred returned by this method.

        If a callback is not defined (or is not callable), the state of the
        self Deferred is transferred at the new Deferred (the state and the
        value/error).

        The callbacks are never called before this method returns, even if the
        Deferred is already settled.

        Args:
            on_fulfilled (callable, optional):  This callback will receive the
                result of the original Deferred as argument.
            on_rejected (callable, optional): This callback will receive the
                rejection reason of the original Deferred as argument.
        Returns:
            Deferred<*>: new Deferred depending of self.
        """
        if not is_callable(on_fulfilled):
            on_fulfilled = None
        if not is_callable(on_rejected):
            on_rejected = None

        def chained_executor(fulfill, reject):

            def callback(value):
                if on_fulfilled is None:
                    return fulfill(value)
                try:
                    new_value = on_fulfilled(value)
                except Exception as error:
                    return reject(error)
                fulfill(new_value)

            def errback(reason):
                if on_rejected is None:
                    return reject(reason)
                try:
                    new_value = on_rejected(reason)
                except Exception as error:
                    return reject(error)
                fulfill(new_value)

            self._handlers.append((callback, errback))
            self._dispatch()

        if not on_rejected:
            name = '%s' % getattr(on_fulfilled, '__name__', '???')
        elif not on_fulfilled:
            name = '<None, %s>' % getattr(on_rejected, '__name__', '???')
        else:
            name = '<%s, %s>' % (getattr(on_fulfilled, '__name__', '???'),
                                 getattr(on_rejected, '__name__', '???'))
        return Deferred(chained_executor, scheduler=self._scheduler,
                        _name=name, _previous=self)

    def catch(self, on_rejected=None):
        """Create a new Deferred with a callback called when an error occurs.

        Alias of `self.then(None, on_rejected)`

        Args:
            on_rejected (callable): Will be called with the rejection reason
                if `self` is rejected.
        returns:
            Deferred<*>: new Deferred chained to `self`. If `self` is
                fulfilled, the value will be the same as `self`. Otherwise,
                the value returned by the `on_rejected()` callback.
        """
        return self.then(None, on_rejected)

    def finally_(self, on_finally):
        """Create a new Deferred calling `on_finally` when `self` is settled.

        `on_finally` takes no argument and is called in both cases. Its
        returned value is ignored: the new Deferred is settled exactly like
        `self`, with the same value or the same rejection reason. If
        `on_finally` returns a thenable, the new Deferred waits for it first.
        If `on_finally` raises (or the thenable it returns is rejected), the
        new Deferred is rejected with this error.

        Named with a trailing underscore, as `finally` is a Python keyword.

        Args:
            on_finally (callable): callback without argument.
        Returns:
            Deferred<*>: new Deferred chained to `self`.
        """
        if not is_callable(on_finally):
            return self.then()

        scheduler = self._scheduler

        def callback(value):
            result = on_finally()
            if is_thenable(result):
                return Deferred.resolve(result, scheduler).then(
                    lambda _: value)
            return value

        def errback(reason):
            result = on_finally()
            if is_thenable(result):
                return Deferred.resolve(result, scheduler).then(
                    lambda _: Deferred.reject(reason, scheduler))
            return Deferred.reject(reason, scheduler)

        callback.__name__ = errback.__name__ = getattr(on_finally, '__name__',
                                                       '???')
        return self.then(callback, errback)

    def safeguard(self):
        """Catch all errors and log them with the most details possible.

        This method is aimed to protect the program from uncaught rejected
        Deferred. If no error handler has been set (via then() or catch()),
        the default behavior is to do nothing, and thus, errors are silently
        ignored.
        Calling `safeguard()` after all chains are set will catch these errors,
        and log them as ERROR with the maximum of details possible.

        Returns:
            Deferred: self
        """
        def guard(reason):
            if isinstance(reason, BaseException):
                _logger.error('[SAFEGUARD] %s', self, exc_info=(
                    type(reason), reason, reason.__traceback__))
            else:
                _logger.error('[SAFEGUARD] %s rejected with: %r', self,
                              reason)

        self.then(None, guard)
        return self

    def __repr__(self):
        return 'Deferred(%s)' % self._inner_print()

    def _inner_print(self):
        if self._state == self.REJECTED:
            state = 'R'
        elif self._state == self.FULFILLED:
            state = 'F'
        else:
            state = 'P'

        if self._previous:
            return '%s -> %s %s' % (self._previous._inner_print(), self._name,
                                    state)
        return '%s %s' % (self._name, state)

    @classmethod
    def resolve(cls, value, scheduler=None):
        """Create a Deferred who resolves the selected value.

        Args:
            value: result of the Deferred. If it's a Deferred, it's returned
                as is. If it's another kind of thenable, the new Deferred
                adopts its state.
            scheduler (optional): scheduler of the new Deferred.
        Returns:
            Deferred: new Deferred fulfilled (or soon to be), containing the
                value passed in parameter.
        """
        if isinstance(value, Deferred):
            return value
        return cls(lambda ok, error: ok(value), scheduler=scheduler,
                   _name='RESOLVE')

    @classmethod
    def reject(cls, reason, scheduler=None):
        """Create a Deferred rejected for the reason specified.

        Args:
            reason: reason of the rejection, usually an Exception.
            scheduler (optional): scheduler of the new Deferred.
        Returns:
            Deferred: new Deferred already rejected.
        """
        return cls(lambda ok, error: error(reason), scheduler=scheduler,
                   _name='REJECT')

    def _adopt(self, thenable, resolve_with):
        """Follow the state of a thenable.

        The thenable receives a pair of callbacks of its own: only the first
        call of one of them is taken into account. If ``thenable.then()``
        raises after one of them has been called, the exception is ignored.
        """
        called = [False]

        def adopt_fulfilled(value):
            if called[0]:
                return
            called[0] = True
            resolve_with(value)

        def adopt_rejected(reason):
            if called[0]:
                return
            called[0] = True
            self._settle(self.REJECTED, reason)

        try:
            thenable.then(adopt_fulfilled, adopt_rejected)
        except Exception as error:
            adopt_rejected(error)

    def _settle(self, state, outcome):
        if self._state != self.PENDING:
            return
        self._state = state
        self._outcome = outcome
        self._dispatch()

    def _dispatch(self):
        """Schedule the execution of the registered handlers.

        Does nothing while the Deferred is pending: handlers stay in the queue
        until the settlement.
        If the scheduler refuses the task, the error is logged and the
        handlers are kept in the queue. The next dispatch (by example when a
        new handler is registered) will try again.
        """
        if self._state == self.PENDING or not self._handlers:
            return
        try:
            self._scheduler.call_soon(self._run_handlers)
        except Exception:
            _logger.exception('Unable to schedule the handlers of %r', self)

    def _run_handlers(self):
        # Handlers added from now on go in a new queue, with their own call.
        handlers, self._handlers = self._handlers, []
        for callback, errback in handlers:
            if self._state == self.FULFILLED:
                self._exec_handler(callback, self._outcome)
            else:
                self._exec_handler(errback, self._outcome, is_errback=True)

    @staticmethod
    def _exec_handler(handler, value, is_errback=False):
        try:
            handler(value)
        except Exception:
            if is_errback:
                _logger.exception('Deferred errback raise an exception!')
            else:
                _logger.exception('Deferred callback raise an exception!')
