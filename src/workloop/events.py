'''Minimal publish/subscribe channel used by the loop to report progress.'''

import logging
import threading

log = logging.getLogger(__name__)


class _OnceListener:
    __slots__ = ('channel', 'event', 'fn')

    def __init__(self, channel, event, fn):
        self.channel = channel
        self.event = event
        self.fn = fn

    def __call__(self, *args):
        self.channel.off(self.event, self)
        return self.fn(*args)


class EventChannel:
    '''Named events with any number of listeners each.

    Listeners run synchronously, in registration order, on the thread that calls ``emit()``.
    A listener added or removed while an event is being emitted takes effect from the next
    ``emit()``.'''

    def __init__(self):
        self._lock = threading.RLock()
        self._callbacks = {}

    def on(self, event, fn):
        '''Call ``fn(*args)`` every time ``event`` is emitted.'''
        with self._lock:
            self._callbacks.setdefault(event, []).append(fn)
        return self

    def once(self, event, fn):
        '''Call ``fn(*args)`` the next time ``event`` is emitted, then forget it.'''
        return self.on(event, _OnceListener(self, event, fn))

    def off(self, event=None, fn=None):
        '''Remove listeners: all of them (no arguments), all for ``event``, or just ``fn``
        (which may also be a function registered with ``once()``).'''
        with self._lock:
            if event is None:
                self._callbacks.clear()
            elif fn is None:
                self._callbacks.pop(event, None)
            else:
                callbacks = self._callbacks.get(event, [])
                for (i, callback) in enumerate(callbacks):
                    if callback is fn or getattr(callback, 'fn', None) is fn:
                        del callbacks[i]
                        break
        return self

    def emit(self, event, *args):
        with self._lock:
            callbacks = list(self._callbacks.get(event, ()))
        for callback in callbacks:
            callback(*args)
        return self

    def listeners(self, event):
        with self._lock:
            return list(self._callbacks.get(event, ()))

    def has_listeners(self, event):
        return bool(self.listeners(event))
