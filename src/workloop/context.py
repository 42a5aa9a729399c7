'''Isolated execution contexts: one child process per work item.

The coordinator and a context talk over a ``multiprocessing`` pipe, and only
encoded text crosses it. Inbound messages have the form
``{'arguments': [encoded, ...]}`` and outbound ones
``{'status': 'message' | 'done', 'response': encoded}``.

Exceptions raised by the task inside a context are not caught here. The child
process exits with the traceback on its stderr and the coordinator is never
told; its slot simply never completes.
'''

import logging
import multiprocessing
import queue
import random
import sys
import threading

from .codec import encode, decode
from .errors import UnsupportedType

log = logging.getLogger(__name__)


class WrapperProgram:
    '''The program installed in an execution context. It carries only the encoded task
    and, for each inbound message, decodes the task and its arguments and calls
    ``fn(envelope, done)``, where ``envelope['arguments']`` holds the decoded arguments
    and ``done(complete, result)`` reports back to the coordinator.

    A task may call ``done(False, ...)`` any number of times to report progress before
    its final ``done(True, ...)``.'''

    def __init__(self, fn):
        if not callable(fn):
            raise UnsupportedType(fn, 'work must be callable, not {!r}'.format(type(fn).__name__))
        self.work = encode(fn)
        self.conn = None

    def __repr__(self):
        return '<{classname} {work}>'.format(classname=self.__class__.__name__, work=self.work)

    def done(self, complete, result=None):
        self.conn.send({'status': 'done' if complete else 'message', 'response': encode(result)})

    def on_message(self, message):
        work = decode(self.work)
        envelope = dict(message)
        envelope['arguments'] = [decode(arg) for arg in message.get('arguments', ())]
        work(envelope, self.done)

    def run(self, conn):
        '''Message loop; this is the target of the child process.'''
        self.conn = conn

        # Close standard input, so we don't get SIGINT from ^C
        try:
            sys.stdin.close()
        except Exception as e:
            log.info("can't close stdin: {}".format(e))

        # (re)initialize random number generator in this process
        random.seed()

        while True:
            try:
                message = conn.recv()
            except EOFError:
                break
            self.on_message(message)

        log.debug('exiting message loop')


class ExecutionContext:
    '''Coordinator-side handle to a running context.

    Posts go through an unbounded outbox drained by a writer thread, so ``post()``
    returns at once even while the context is busy and its pipe is full.'''

    def __init__(self, program, mp_context=None, name=None):
        mp_context = mp_context or multiprocessing.get_context()
        self.program = program
        self.conn, child_conn = mp_context.Pipe(duplex=True)
        self.process = mp_context.Process(target=program.run, args=(child_conn,), name=name, daemon=True)
        self.process.start()
        child_conn.close()
        self.closed = False
        self.exit_reported = False

        self._outbox = queue.Queue()
        self._writer = threading.Thread(target=self._write_loop, name='{}-writer'.format(self.process.name), daemon=True)
        self._writer.start()
        log.debug('started context {!r}'.format(self))

    def __repr__(self):
        return '<{classname} {name} pid={pid}>'.format(
            classname=self.__class__.__name__, name=self.process.name, pid=self.process.pid
        )

    @property
    def pid(self):
        return self.process.pid

    @property
    def alive(self):
        return not self.closed and self.process.is_alive()

    @property
    def exitcode(self):
        return self.process.exitcode

    def post(self, message):
        '''Queue ``message`` for the context and return immediately. Delivery is not
        confirmed; a context that has already exited drops it.'''
        if not self.closed:
            self._outbox.put(message)

    def _write_loop(self):
        while True:
            message = self._outbox.get()
            if message is None:
                break
            try:
                self.conn.send(message)
            except (BrokenPipeError, ConnectionResetError, OSError) as e:
                log.debug('cannot post to {!r}: {!s}'.format(self, e))
                break

    def receive(self):
        '''Yield every message the context has sent so far, without blocking.'''
        while not self.closed:
            try:
                if not self.conn.poll():
                    return
                message = self.conn.recv()
            except (EOFError, ConnectionResetError, OSError):
                return
            yield message

    def terminate(self, timeout=1):
        '''Stop the child process (SIGTERM, then SIGKILL after ``timeout`` seconds) and
        close the pipe. Calling this more than once has no further effect.'''
        if self.closed:
            return
        self.closed = True
        self._outbox.put(None)

        process = self.process
        if process.is_alive():
            process.terminate()
            process.join(timeout)
            if process.is_alive():
                log.warning('sending SIGKILL to context process {:d}'.format(process.pid))
                process.kill()
                process.join()
        else:
            process.join()

        # a writer blocked on a full pipe fails once the child end is gone
        self._writer.join(timeout)
        if self._writer.is_alive():
            log.debug('writer for {!r} still busy; leaving its pipe open'.format(self))
        else:
            self.conn.close()
        log.debug('context process {:d} terminated with code {!r}'.format(process.pid, process.exitcode))
