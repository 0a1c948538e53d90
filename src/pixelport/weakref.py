
import threading
import weakref


def ref(thing):
    """ Return a weak reference to the supplied argument, regardless of
        whether it is a simple function or a bound method. A plain
        ``weakref.ref`` to a bound method dies immediately, since the
        method object is created anew on every attribute access.
    """

    try:
        thing.__func__
        thing.__self__
    except AttributeError:
        return weakref.ref(thing)
    else:
        return weakref.WeakMethod(thing)


class CallbackSet:
    """ An ordered collection of weakly referenced callbacks. Registering
        a callback here does not keep it, or the object it is bound to,
        alive; references that have died are pruned the next time the
        live callbacks are requested.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._references = list()

    def __len__(self):
        return len(self.live())

    def add(self, callback):

        if not callable(callback):
            raise TypeError('callback must be callable')

        reference = ref(callback)

        with self._lock:
            for existing in self._references:
                if existing() == callback:
                    return
            self._references.append(reference)

    def discard(self, callback):

        with self._lock:
            for existing in list(self._references):
                if existing() == callback:
                    self._references.remove(existing)

    def live(self):
        """ Return strong references to every callback still alive, in
            registration order.
        """

        callbacks = list()
        invalid = list()

        with self._lock:
            for reference in self._references:
                callback = reference()

                if callback is None:
                    invalid.append(reference)
                else:
                    callbacks.append(callback)

            for reference in invalid:
                self._references.remove(reference)

        return callbacks


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
