'''A queue of independent work items, each dispatched to its own isolated process.

Work items (a module-level callable plus arguments) are queued on a ``Loop`` and
run in child processes, one per item. Arguments and results cross the process
boundary as tagged text (see ``workloop.codec``); callables travel by name (see
``workloop.registry``). Progress and completion are reported through the loop's
``message`` and ``done`` events.
'''

from . import codec, registry, slots, events, context, scheduler, loop  # noqa
from .errors import WorkLoopError, UnsupportedType, DecodeError, TaskResolutionError  # noqa
from .codec import serialize, encode, decode  # noqa
from .registry import TaskRegistry, task  # noqa
from .slots import WorkItem, WorkQueue, ActiveRegistry, TOMBSTONE  # noqa
from .events import EventChannel  # noqa
from .context import ExecutionContext, WrapperProgram  # noqa
from .scheduler import Ticker  # noqa
from .loop import Loop, LoopEvent, create_loop  # noqa

from . import environment  # noqa
from .environment import make_loop  # noqa

__version__ = '0.1.0'

__all__ = [
    'codec',
    'registry',
    'environment',
    'serialize',
    'encode',
    'decode',
    'task',
    'TaskRegistry',
    'WorkItem',
    'WorkQueue',
    'ActiveRegistry',
    'EventChannel',
    'ExecutionContext',
    'WrapperProgram',
    'Ticker',
    'Loop',
    'LoopEvent',
    'create_loop',
    'make_loop',
    'WorkLoopError',
    'UnsupportedType',
    'DecodeError',
    'TaskResolutionError',
]
