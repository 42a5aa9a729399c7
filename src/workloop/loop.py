'''The work loop: a queue of work items, each run in its own isolated execution context.'''

import logging
import multiprocessing
import signal
import threading
from collections import namedtuple

from .codec import encode, decode
from .errors import UnsupportedType
from .registry import identify, is_importable
from .context import ExecutionContext, WrapperProgram
from .events import EventChannel
from .scheduler import Ticker
from .slots import WorkQueue, ActiveRegistry

log = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.01
DEFAULT_SHUTDOWN_TIMEOUT = 1.0

LoopEvent = namedtuple('LoopEvent', ['context', 'message'])


class Loop:
    '''Dispatches queued work items to isolated execution contexts, one context per item.

    A work item is a callable plus arguments, added with ``push()`` or ``unshift()``.
    ``dequeue(on_all_complete)`` starts a ticker which, every ``tick_interval`` seconds,
    collects messages from running contexts, starts a context for each item that does
    not have one yet and posts the item's encoded arguments to it. In the context, the
    callable is invoked as ``fn({'arguments': [...]}, done)``.

    Calls to ``done(False, result)`` in the context are emitted here as ``message``
    events; ``done(True, result)`` tears the context down, removes the item from the
    queue and emits ``done``. Both events carry a ``LoopEvent(context, message)``. Once
    the queue is empty, ``on_all_complete(loop)`` is called exactly once.

    Items that already have a context are posted their arguments again on every tick
    (unless ``repoke`` is false), whether or not they have answered the previous post,
    so a task may run more than once inside its context before the coordinator sees its
    completion. Only the first ``done(True, ...)`` is acted upon.

    There is no cancellation and no timeout. A task that raises, or never reports
    completion, keeps its slot (and hence the whole run) pending forever.

    Event listeners and ``on_all_complete`` run on the ticker thread.'''

    @classmethod
    def from_environ(cls, loopenv=None):
        if loopenv is None:
            from . import environment

            loopenv = environment.default_env
        return cls(
            tick_interval=loopenv.get_val('tick_interval', DEFAULT_TICK_INTERVAL, float),
            start_method=loopenv.get_val('start_method', None) or None,
            shutdown_timeout=loopenv.get_val('shutdown_timeout', DEFAULT_SHUTDOWN_TIMEOUT, float),
            repoke=loopenv.get_val('repoke', True, loopenv.parse_bool),
        )

    def __init__(self, tick_interval=None, start_method=None, shutdown_timeout=None, repoke=True):
        self.tick_interval = DEFAULT_TICK_INTERVAL if tick_interval is None else tick_interval
        if self.tick_interval < 0:
            raise ValueError('tick interval must be non-negative, not {!r}'.format(self.tick_interval))
        self.shutdown_timeout = DEFAULT_SHUTDOWN_TIMEOUT if shutdown_timeout is None else shutdown_timeout
        self.repoke = repoke
        self.mp_context = multiprocessing.get_context(start_method)
        self.events = EventChannel()

        self._lock = threading.RLock()
        self._queue = WorkQueue()
        self._active = ActiveRegistry()

        # every context started and not yet torn down, registered or not
        self._contexts = []

        self._ticker = None
        self._on_all_complete = None
        self._completed = False

        self._sigint_handler_installed = False
        self.prior_sigint_handler = None

    @property
    def inherits_registry(self):
        '''True if contexts inherit names registered in this process, which only forked ones do.'''
        return self.mp_context.get_start_method() == 'fork'

    def __repr__(self):
        return '<{classname} at 0x{id:x}>'.format(classname=self.__class__.__name__, id=id(self))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_traceback):
        self.shutdown()
        return False

    # Events

    def on(self, event, fn):
        self.events.on(event, fn)
        return self

    def once(self, event, fn):
        self.events.once(event, fn)
        return self

    def off(self, event=None, fn=None):
        self.events.off(event, fn)
        return self

    def emit(self, event, *args):
        self.events.emit(event, *args)
        return self

    # Queue access
    #
    # The active registry is kept index-aligned with the queue: every insertion or
    # removal in one is mirrored in the other, after both have been compacted.

    def _compact(self):
        self._queue.compact()
        self._active.compact()

    def _orphan(self, handle):
        if handle is not None:
            log.warning('removed an item still running in {!r}; it is released when it reports completion'.format(handle))

    def push(self, fn, *args):
        '''Append ``fn`` with ``args`` to the tail of the queue.'''
        with self._lock:
            self._compact()
            self._queue.push(fn, *args)
            self._active.append()
        return self

    def unshift(self, fn, *args):
        '''Prepend ``fn`` with ``args`` to the head of the queue.'''
        with self._lock:
            self._compact()
            self._queue.unshift(fn, *args)
            self._active.insert(0)
        return self

    def shift(self):
        '''Remove and return the head ``WorkItem``, or None if the queue is empty.'''
        with self._lock:
            self._compact()
            if not len(self._queue):
                return None
            self._orphan(self._active.pop(0))
            return self._queue.shift()

    def head(self):
        with self._lock:
            return self._queue.head()

    def get(self, index):
        with self._lock:
            return self._queue.get(index)

    def set(self, index, item):
        '''Insert ``item`` (a ``WorkItem`` or bare callable) at ``index``; the entry already
        there moves up by one, it is not replaced.'''
        with self._lock:
            self._compact()
            self._queue.set(index, item)
            self._active.insert(index)
        return self

    def remove(self, index):
        '''Remove exactly the item at ``index``. An item already running keeps its context
        until that context reports completion.'''
        with self._lock:
            self._compact()
            self._queue.remove(index)
            self._orphan(self._active.pop(index))
        return self

    @property
    def queue(self):
        '''Live work items, in order.'''
        with self._lock:
            return self._queue.items

    @property
    def active(self):
        '''Handles of the execution contexts currently registered.'''
        with self._lock:
            return self._active.items

    @property
    def length(self):
        '''Number of items queued, whether dispatched or not.'''
        with self._lock:
            return len(self._queue)

    def __len__(self):
        return self.length

    # Dispatch

    def dequeue(self, on_all_complete=None):
        '''Start dispatching the queue, calling ``on_all_complete(self)`` once it has drained.
        Has no effect while a previous call is still running. Called from within
        ``on_all_complete``, it starts a new run on the same ticker.'''
        with self._lock:
            if self.running:
                if self._completed:
                    log.debug('{!r} dequeuing again'.format(self))
                    self._on_all_complete = on_all_complete
                    self._completed = False
                else:
                    log.debug('{!r} is already dequeuing'.format(self))
                return self
            self._on_all_complete = on_all_complete
            self._completed = False
            self._ticker = Ticker(self._step, self.tick_interval, name='workloop-ticker-{:x}'.format(id(self)))
            self._ticker.start()
        return self

    @property
    def running(self):
        return self._ticker is not None and self._ticker.running

    def join(self, timeout=None):
        '''Wait for the current run to finish. Returns False if ``timeout`` expired first;
        re-raises any exception that ended the run.'''
        ticker = self._ticker
        if ticker is None:
            return True
        finished = ticker.join(timeout)
        if ticker.exception is not None:
            raise ticker.exception
        return finished

    def tick(self):
        '''Run one scheduler tick: handle messages that have arrived, then dispatch or re-poke
        every queued item. Returns the number of items still queued.'''
        with self._lock:
            self._compact()
            self._receive()
            for index in range(len(self._queue)):
                self._dispatch(index)
            return len(self._queue)

    def _step(self):
        with self._lock:
            if self.tick():
                return True
            self._check_complete()
            if not self._completed:
                # dequeue() was called again from on_all_complete
                return True
            self._ticker = None
            return False

    def _dispatch(self, index):
        item = self._queue.get(index)
        args = [encode(arg) for arg in item.args]
        handle = self._active.handle_at(index)

        if handle is not None:
            self._check_exited(handle)
            if not self.repoke:
                return
            log.debug('re-poking {!r}'.format(handle))
        else:
            if not (self.inherits_registry or is_importable(identify(item.fn))):
                raise UnsupportedType(
                    item.fn,
                    '{!r} has no import path and {!r} contexts do not inherit registered names'.format(
                        item.fn, self.mp_context.get_start_method()
                    ),
                )
            program = WrapperProgram(item.fn)
            handle = ExecutionContext(program, self.mp_context, name='workloop-{:d}-{:x}'.format(index, id(self)))
            self._active.assign(index, handle)
            self._contexts.append(handle)
            log.debug('dispatching {!r} to {!r}'.format(item.fn, handle))

        handle.post({'arguments': args})

    def _check_exited(self, handle):
        if not handle.exit_reported and not handle.alive:
            handle.exit_reported = True
            log.warning(
                '{!r} exited with code {!r} without reporting completion; its item will never complete'.format(
                    handle, handle.exitcode
                )
            )

    def _receive(self):
        for handle in list(self._contexts):
            for message in handle.receive():
                self._handle_message(handle, message)

    def _release(self, handle):
        if handle in self._contexts:
            self._contexts.remove(handle)
        handle.terminate(self.shutdown_timeout)

    def _handle_message(self, handle, message):
        status = message.get('status')
        response = decode(message.get('response'))
        index = self._active.index_of(handle)

        if index is None:
            log.debug('dropping {!r} message from unregistered {!r}'.format(status, handle))
            if status == 'done':
                self._release(handle)
            return

        if status == 'done':
            self._active.kill(index)
            self._queue.kill(index)
            self._compact()
            self._release(handle)
            log.debug('{!r} completed'.format(handle))

        self.emit(status, LoopEvent(handle, response))

        if status == 'done':
            self._check_complete()

    def _check_complete(self):
        if self._completed or len(self._queue) or len(self._active):
            return
        self._completed = True
        log.debug('{!r} drained'.format(self))
        if self._on_all_complete is not None:
            self._on_all_complete(self)

    # Teardown

    def shutdown(self):
        '''Stop the ticker and tear down every running context. Items stay queued and are
        dispatched afresh by the next ``dequeue()``.'''
        if self._ticker is not None:
            self._ticker.stop()
        with self._lock:
            for handle in list(self._contexts):
                log.debug('shutting down {!r}'.format(handle))
                self._release(handle)
            self._compact()
            for index in range(len(self._queue)):
                self._active.assign(index, None)

    def sigint_handler(self, signum, frame):
        self.shutdown()
        if self.prior_sigint_handler in (signal.SIG_IGN, None):
            pass
        elif self.prior_sigint_handler == signal.SIG_DFL:
            raise KeyboardInterrupt
        else:
            self.prior_sigint_handler(signum, frame)

    def install_sigint_handler(self):
        if not self._sigint_handler_installed:
            self._sigint_handler_installed = True
            self.prior_sigint_handler = signal.signal(signal.SIGINT, self.sigint_handler)


def create_loop(**kwargs):
    '''Return a new ``Loop``; keyword arguments are passed to its constructor.'''
    return Loop(**kwargs)
