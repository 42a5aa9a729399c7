'''Exceptions raised by the work loop.'''


class WorkLoopError(Exception):
    '''Base class for all errors raised by ``workloop``.'''


class UnsupportedType(WorkLoopError, TypeError):
    '''A value of a kind the codec cannot represent was given to ``serialize`` or ``encode``.'''

    def __init__(self, value, message=None):
        self.value = value
        if message is None:
            message = 'unsupported input type {!r}'.format(type(value).__name__)
        super().__init__(message)


class DecodeError(WorkLoopError, ValueError):
    '''Encoded text could not be turned back into a value.'''

    def __init__(self, text, message=None):
        self.text = text
        if message is None:
            message = 'cannot decode {!r}'.format(text)
        super().__init__(message)


class TaskResolutionError(WorkLoopError, LookupError):
    '''A task ID did not name an importable callable.'''

    def __init__(self, task_id, message=None):
        self.task_id = task_id
        if message is None:
            message = 'cannot resolve task {!r}'.format(task_id)
        super().__init__(message)
