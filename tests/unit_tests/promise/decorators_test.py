# -*- coding: utf-8 -*-

from deferral.promise import Deferred, wrap_deferred


class TestDecorator(object):

    def test_wrap_sync_function(self):
        @wrap_deferred
        def f(x):
            return x * 3

        d = f(30)
        assert isinstance(d, Deferred)
        assert d.result() == 90

    def test_wrap_function_returning_deferred(self, scheduler):
        @wrap_deferred
        def f(x):
            return Deferred.resolve(x + 10).then(lambda v: v * 2)

        d = f(30)
        assert isinstance(d, Deferred)
        assert scheduler.run_until_settled(d) == 80

    def test_wrap_function_with_exception(self):
        class MyException(Exception):
            pass

        @wrap_deferred
        def f(x):
            raise MyException()

        d = f(30)
        assert isinstance(d, Deferred)
        assert isinstance(d.exception(), MyException)

    def test_wrapper_keeps_function_name(self):
        @wrap_deferred
        def compute():
            pass

        assert compute.__name__ == 'compute'
