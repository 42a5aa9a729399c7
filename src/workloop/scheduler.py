'''Fixed-cadence driver for the loop's dispatch step.'''

import logging
import threading

log = logging.getLogger(__name__)


class Ticker:
    '''Calls ``step()`` on a background thread every ``interval`` seconds until it returns a
    false value, raises, or ``stop()`` is called.

    The cadence is independent of what ``step()`` is waiting on: it does not reschedule
    itself when a message arrives, it simply runs again after ``interval``. An exception
    raised by ``step()`` is logged, kept in ``exception`` and ends the ticker.'''

    def __init__(self, step, interval, name='ticker'):
        if interval < 0:
            raise ValueError('tick interval must be non-negative, not {!r}'.format(interval))
        self.step = step
        self.interval = interval
        self.name = name
        self.exception = None
        self.n_ticks = 0
        self._stop_requested = threading.Event()
        self._thread = None

    def __repr__(self):
        return '<{classname} {name} every {interval}s>'.format(
            classname=self.__class__.__name__, name=self.name, interval=self.interval
        )

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self._thread is not None:
            raise RuntimeError('{!r} already started'.format(self))
        self._thread = threading.Thread(target=self._run, name=self.name)
        self._thread.daemon = True
        self._thread.start()

    def stop(self):
        '''Ask the ticker to stop after the current tick, and wait for it unless called from
        the ticker thread itself.'''
        self._stop_requested.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def join(self, timeout=None):
        '''Wait for the ticker to finish; returns True if it has.'''
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self):
        log.debug('starting {!r}'.format(self))
        try:
            while not self._stop_requested.is_set():
                self.n_ticks += 1
                if not self.step():
                    break
                self._stop_requested.wait(self.interval)
        except Exception as e:
            log.exception('tick {:d} of {!r} failed; stopping'.format(self.n_ticks, self))
            self.exception = e
        log.debug('{!r} exiting after {:d} ticks'.format(self, self.n_ticks))
