# -*- coding: utf-8 -*-

import logging

import pytest

from deferral.promise import Deferred, PendingError, RejectedError, Scheduler


class TestDeferred(object):

    def test_synchronous_call(self, scheduler):
        """Make a Deferred fulfilled by a synchronous function."""

        def executor(on_fulfilled, on_rejected):
            on_fulfilled(3)

        d = Deferred(executor)

        assert d.state == Deferred.FULFILLED
        assert d.result() == 3

    def test_executor_is_called_synchronously(self):
        calls = []

        def executor(on_fulfilled, on_rejected):
            calls.append((on_fulfilled, on_rejected))

        Deferred(executor)
        assert len(calls) == 1
        assert callable(calls[0][0])
        assert callable(calls[0][1])

    def test_synchronous_call_failing(self):
        """Make a Deferred rejected by a synchronous executor."""

        class Err(Exception):
            pass

        def executor(on_fulfilled, on_rejected):
            on_rejected(Err())

        d = Deferred(executor)
        assert d.state == Deferred.REJECTED
        with pytest.raises(Err):
            d.result()

    def test_executor_raising_error(self):
        """Make a Deferred with an executor raising an error and get result."""
        class Err(Exception):
            pass

        def executor(on_fulfilled, on_rejected):
            raise Err()

        d = Deferred(executor)
        assert d.is_rejected()
        assert isinstance(d.exception(), Err)

    def test_executor_raising_after_fulfillment(self):
        """An error raised after the settlement doesn't change the state."""
        def executor(on_fulfilled, on_rejected):
            on_fulfilled('OK')
            raise Exception('Ignored')

        d = Deferred(executor)
        assert d.result() == 'OK'

    def test_pending_deferred(self):
        d = Deferred(lambda ok, error: None)

        assert d.is_pending()
        assert d.state == Deferred.PENDING
        with pytest.raises(PendingError):
            d.result()
        with pytest.raises(PendingError):
            d.exception()

    def test_fulfilled_deferred_has_no_exception(self):
        d = Deferred(lambda ok, error: ok('result value'))
        assert d.exception() is None

    def test_rejection_with_non_exception_reason(self):
        d = Deferred(lambda ok, error: error('e'))

        assert d.exception() == 'e'
        with pytest.raises(RejectedError) as exc_info:
            d.result()
        assert exc_info.value.reason == 'e'

    def test_settle_asynchronously(self, scheduler):
        _fulfill = []
        d = Deferred(lambda ok, error: _fulfill.append(ok))

        assert d.is_pending()
        _fulfill[0](17)
        assert d.is_fulfilled()
        assert d.result() == 17


class TestMonotonicSettlement(object):

    def test_fulfill_twice(self):
        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append(ok))

        callbacks[0](1)
        callbacks[0](2)
        assert d.result() == 1

    def test_reject_after_fulfill(self):
        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append((ok, error)))

        ok, error = callbacks[0]
        ok('first')
        error(Exception('second'))
        assert d.is_fulfilled()
        assert d.result() == 'first'

    def test_fulfill_after_reject(self):
        class Err(Exception):
            pass

        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append((ok, error)))

        ok, error = callbacks[0]
        error(Err())
        ok('second')
        error(Exception('third'))
        assert isinstance(d.exception(), Err)

    def test_state_observed_by_then_is_stable(self, scheduler):
        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append((ok, error)))
        ok, error = callbacks[0]
        ok(5)

        values = []
        d.then(values.append)
        error('too late')
        d.then(values.append, values.append)
        ok(6)
        d.then(values.append)
        scheduler.run()

        assert values == [5, 5, 5]

    def test_reject_while_following_a_deferred(self, scheduler):
        """Once resolved with a thenable, direct calls are ignored."""
        inner_callbacks = []
        inner = Deferred(lambda ok, error: inner_callbacks.append(ok))

        d = Deferred(lambda ok, error: (ok(inner), error('late')))
        assert d.is_pending()

        inner_callbacks[0]('first')
        scheduler.run()
        assert d.result() == 'first'

    def test_fulfill_while_following_a_deferred(self, scheduler):
        inner_callbacks = []
        inner = Deferred(lambda ok, error: inner_callbacks.append(error))

        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append(ok))
        callbacks[0](inner)
        callbacks[0]('ignored')
        assert d.is_pending()

        inner_callbacks[0]('reason')
        scheduler.run()
        assert d.exception() == 'reason'

    def test_executor_raising_while_following_a_deferred(self, scheduler):
        inner_callbacks = []
        inner = Deferred(lambda ok, error: inner_callbacks.append(ok))

        def executor(ok, error):
            ok(inner)
            raise ValueError()

        d = Deferred(executor)
        inner_callbacks[0](3)
        scheduler.run()
        assert d.result() == 3


class TestSchedulingFailure(object):
    """A scheduler refusing the tasks must not break the Deferred."""

    class BrokenScheduler(object):

        def __init__(self):
            self.broken = True
            self.tasks = []

        def call_soon(self, callback, *args):
            if self.broken:
                raise RuntimeError('scheduler unavailable')
            self.tasks.append((callback, args))

        def run(self):
            while self.tasks:
                callback, args = self.tasks.pop(0)
                callback(*args)

    def test_then_does_not_reject(self, caplog):
        s = self.BrokenScheduler()
        d = Deferred.resolve(1, scheduler=s)

        with caplog.at_level(logging.ERROR, logger='deferral'):
            d2 = d.then(lambda v: v + 1)
        assert d2.is_pending()
        assert 'scheduler unavailable' in caplog.text

    def test_settle_does_not_raise(self, caplog):
        s = self.BrokenScheduler()
        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append(ok), scheduler=s)
        d2 = d.then(lambda v: v * 3)

        with caplog.at_level(logging.ERROR, logger='deferral'):
            callbacks[0](2)
        assert d.result() == 2
        assert d2.is_pending()

    def test_handlers_are_kept_until_next_dispatch(self, caplog):
        s = self.BrokenScheduler()
        d = Deferred.resolve(1, scheduler=s)
        values = []
        with caplog.at_level(logging.ERROR, logger='deferral'):
            d.then(values.append)

        s.broken = False
        d.then(values.append)
        s.run()
        assert values == [1, 1]


class TestFactories(object):

    def test_resolve_value(self):
        """Wrap a value into a Deferred using Deferred.resolve()."""
        d = Deferred.resolve('xyz')
        assert d.result() == 'xyz'

    def test_resolve_deferred(self):
        """Use Deferred.resolve() on an object who is already a Deferred."""
        d1 = Deferred.resolve(33)
        assert Deferred.resolve(d1) is d1

    def test_resolve_foreign_thenable(self, scheduler):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                on_fulfilled('foreign')

        d = Deferred.resolve(Thenable())
        assert isinstance(d, Deferred)
        assert d.result() == 'foreign'

    def test_reject(self):
        class MyException(Exception):
            pass

        error = MyException()
        d = Deferred.reject(error)
        assert d.exception() is error

    def test_reject_with_deferred_reason_is_not_adopted(self):
        reason = Deferred.resolve(3)
        d = Deferred.reject(reason)
        assert d.exception() is reason

    def test_factories_use_given_scheduler(self, scheduler):
        other = Scheduler()
        d = Deferred.resolve(1, scheduler=other)
        d.then(lambda v: v)

        assert scheduler.pending_tasks() == 0
        assert other.pending_tasks() == 1


class TestSelfResolution(object):

    def test_resolve_with_itself(self, scheduler):
        callbacks = []
        d = Deferred(lambda ok, error: callbacks.append(ok))
        callbacks[0](d)

        assert isinstance(d.exception(), TypeError)

    def test_callback_returning_its_own_deferred(self, scheduler):
        chained = []

        def callback(value):
            return chained[0]

        chained.append(Deferred.resolve(1).then(callback))
        scheduler.run()

        assert isinstance(chained[0].exception(), TypeError)


class TestRepr(object):

    def test_repr_of_a_chain(self, scheduler):
        def double(x):
            return x * 2

        d = Deferred.resolve(3).then(double)
        assert repr(d) == 'Deferred(RESOLVE F -> double P)'
        scheduler.run()
        assert repr(d) == 'Deferred(RESOLVE F -> double F)'

    def test_repr_of_rejected_deferred(self):
        assert repr(Deferred.reject('e')) == 'Deferred(REJECT R)'


class TestSafeguard(object):

    def test_safeguard_logs_rejection(self, scheduler, caplog):
        class Err(Exception):
            pass

        def in_deferred(ok, error):
            raise Err('ERROR')

        d = Deferred(in_deferred)
        assert d.safeguard() is d

        with caplog.at_level(logging.ERROR, logger='deferral'):
            scheduler.run()

        assert '[SAFEGUARD]' in caplog.text
        assert 'Err' in caplog.text

    def test_safeguard_logs_non_exception_reason(self, scheduler, caplog):
        Deferred.reject('plain reason').safeguard()

        with caplog.at_level(logging.ERROR, logger='deferral'):
            scheduler.run()

        assert '[SAFEGUARD]' in caplog.text
        assert "'plain reason'" in caplog.text

    def test_safeguard_on_fulfilled_deferred(self, scheduler, caplog):
        Deferred.resolve(3).safeguard()

        with caplog.at_level(logging.ERROR, logger='deferral'):
            scheduler.run()

        assert '[SAFEGUARD]' not in caplog.text
