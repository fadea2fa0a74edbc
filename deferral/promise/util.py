# -*- coding: utf-8 -*-


def is_callable(value):
    """Check if a handler is usable as a callback.

    Handlers who are not callable are treated by the promise module as if
    they were not given at all.

    Returns:
        boolean: True if the value can be called; False otherwise.
    """
    return callable(value)


def is_thenable(value):
    """Check if an object can be chained, like a Deferred, or is a "result".

    The promise module uses this function to differentiate "chainable" objects
    and direct return values, when using a callback who can returns both.
    Any object is accepted, not only instances of Deferred: the check is
    purely structural.

    Returns:
        boolean: True if the value has an attribute 'then' who is callable.
            False if not.
    """
    return callable(getattr(value, 'then', None))
