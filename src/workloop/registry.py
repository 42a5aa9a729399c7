'''Stable identifiers for callables that travel into execution contexts.

A callable crosses the process boundary as a task ID of the form
``package.module:Qualified.name``. The receiving side imports the module and
walks the qualified name, so nothing is ever rebuilt from source text. Only
module-level functions and classes (and attributes reachable from them by
name) qualify; lambdas and nested functions are rejected when encoded.
'''

import importlib
import logging
import sys
import threading

from .errors import UnsupportedType, TaskResolutionError

log = logging.getLogger(__name__)


def _walk(obj, qualname):
    for attr in qualname.split('.'):
        obj = getattr(obj, attr)
    return obj


class TaskRegistry:
    '''Maps callables to task IDs and back.

    Callables reachable by import always travel as their import path. Names given with
    ``register()`` (or the ``task`` decorator) are used on the wire only for callables
    that have no import path, and resolve only in processes where the registration has
    run: forked contexts, or any process that imports the registering module.'''

    def __init__(self):
        self._lock = threading.RLock()
        self._resolved = {}
        self._names = {}

    def __repr__(self):
        return '<{classname} at 0x{id:x}: {n:d} tasks>'.format(
            classname=self.__class__.__name__, id=id(self), n=len(self._resolved)
        )

    def register(self, fn, name=None):
        '''Register ``fn`` under ``name`` (or its import path) and return ``fn`` unchanged.'''
        if not callable(fn):
            raise UnsupportedType(fn, 'cannot register non-callable {!r}'.format(fn))
        if name and ':' in name:
            raise ValueError('task name {!r} must not contain ":"'.format(name))
        with self._lock:
            task_id = name or self._import_path(fn, strict=False)
            existing = self._resolved.get(task_id)
            if existing is not None and existing is not fn:
                raise ValueError('task ID {!r} is already registered to {!r}'.format(task_id, existing))
            self._resolved[task_id] = fn
            if name:
                self._names[fn] = name
            log.debug('registered task {!r} as {!r}'.format(fn, task_id))
        return fn

    def task(self, fn=None, name=None):
        '''Decorator form of ``register()``; usable bare or as ``@task('name')``.'''
        if isinstance(fn, str):
            fn, name = None, fn

        if fn is None:
            return lambda f: self.register(f, name)
        return self.register(fn, name)

    def identify(self, fn):
        '''Return the task ID under which ``fn`` can be resolved in another process.'''
        try:
            return self._import_path(fn)
        except UnsupportedType:
            with self._lock:
                try:
                    return self._names[fn]
                except (KeyError, TypeError):
                    pass
            raise

    @staticmethod
    def is_importable(task_id):
        '''True if ``task_id`` is an import path rather than a registered name.'''
        return ':' in task_id

    def resolve(self, task_id):
        '''Return the callable named by ``task_id``, importing its module if necessary.'''
        with self._lock:
            try:
                return self._resolved[task_id]
            except KeyError:
                pass

        try:
            (modname, qualname) = task_id.split(':', 1)
        except ValueError:
            raise TaskResolutionError(task_id, 'task {!r} is not registered in this process'.format(task_id))

        try:
            module = sys.modules.get(modname) or importlib.import_module(modname)
            fn = _walk(module, qualname)
        except (ImportError, AttributeError) as e:
            raise TaskResolutionError(task_id, 'cannot resolve task {!r}: {!s}'.format(task_id, e)) from e

        if not callable(fn):
            raise TaskResolutionError(task_id, 'task {!r} resolved to non-callable {!r}'.format(task_id, fn))

        with self._lock:
            self._resolved.setdefault(task_id, fn)
        log.debug('resolved task {!r}'.format(task_id))
        return fn

    @staticmethod
    def _import_path(fn, strict=True):
        modname = getattr(fn, '__module__', None)
        qualname = getattr(fn, '__qualname__', None)
        if not (callable(fn) and modname and qualname) or '<' in qualname:
            raise UnsupportedType(fn, '{!r} has no importable name; define it at module level'.format(fn))
        if not strict:
            return '{}:{}'.format(modname, qualname)

        module = sys.modules.get(modname)
        try:
            found = _walk(module, qualname)
        except AttributeError:
            found = None
        if found is not fn:
            raise UnsupportedType(fn, '{!r} is not reachable as {}:{}'.format(fn, modname, qualname))
        return '{}:{}'.format(modname, qualname)


default_registry = TaskRegistry()
register = default_registry.register
task = default_registry.task
identify = default_registry.identify
resolve = default_registry.resolve
is_importable = default_registry.is_importable
