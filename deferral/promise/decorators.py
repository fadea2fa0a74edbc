# -*- coding: utf-8 -*-

import functools

from .deferred import Deferred


def wrap_deferred(f):
    """Decorator who converts the result in a Deferred object.

    If the function decorated returns a Deferred, it's transmitted as is.
    If it returns another thenable, the new Deferred adopts its state.
    Else, a new Deferred is created with the returned value as result.
    If the function raises an exception, the returned Deferred is rejected.
    """
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return Deferred.resolve(f(*args, **kwargs))
        except Exception as error:
            return Deferred.reject(error)

    return wrapper
