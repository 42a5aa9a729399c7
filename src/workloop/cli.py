'''Command-line entry point: run copies of a task in isolated worker processes.'''

import argparse
import json
import logging
import sys

from . import environment
from .errors import WorkLoopError
from .registry import resolve


log = logging.getLogger('workloop.cli')


def parse_task_arg(text):
    '''Parse a command-line task argument as JSON, falling back to the plain string.'''
    try:
        return json.loads(text)
    except ValueError:
        return text


def print_event(name, event, stream=None):
    stream = stream or sys.stdout
    print('{}\t{}\t{}'.format(name, event.context.pid, json.dumps(event.message, default=repr)), file=stream)
    stream.flush()


def entry_point(argv=None):
    parser = argparse.ArgumentParser(
        'workloop',
        description='''\
    Run a task in isolated worker processes, one process per copy, printing each
    progress message and completion the task reports. TASK_ID names a module-level
    callable as "package.module:function"; it is called as fn(data, done), with the
    decoded ARGs in data["arguments"].
    ''',
    )
    parser.add_argument('task_id', metavar='TASK_ID', help='task to run, as "package.module:function"')
    parser.add_argument('task_args', metavar='ARG', nargs='*', help='task arguments; parsed as JSON where possible')
    parser.add_argument(
        '-n', '--copies', type=int, default=1, help='number of copies of the task to queue (default: %(default)s)'
    )
    environment.default_env.add_args(parser)

    args = parser.parse_args(argv)
    environment.default_env.process_args(args)

    if args.copies < 0:
        parser.error('--copies must be non-negative')

    try:
        fn = resolve(args.task_id)
    except WorkLoopError as e:
        parser.error(str(e))

    task_args = [parse_task_arg(arg) for arg in args.task_args]

    loop = environment.make_loop()
    loop.on('message', lambda event: print_event('message', event))
    loop.on('done', lambda event: print_event('done', event))

    with loop:
        loop.install_sigint_handler()
        for _i in range(args.copies):
            loop.push(fn, *task_args)

        try:
            log.debug('dequeuing {:d} copies of {!r}'.format(args.copies, args.task_id))
            loop.dequeue(lambda loop: log.info('all work complete'))
            loop.join()
        except KeyboardInterrupt:
            log.warning('interrupted; shutting down')
            return 130
        except WorkLoopError as e:
            log.error('run failed: {!s}'.format(e))
            return 1
    return 0


if __name__ == '__main__':
    sys.exit(entry_point())
