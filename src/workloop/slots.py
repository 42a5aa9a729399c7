'''Slot containers backing the loop: the work queue and the index-aligned active registry.

Both containers mark finished entries with ``TOMBSTONE`` instead of deleting them,
so that indices stay stable until ``compact()`` is called. Reads never compact;
all index-based operations address the compacted view.
'''

import logging
from collections import namedtuple

log = logging.getLogger(__name__)

WorkItem = namedtuple('WorkItem', ['fn', 'args'])


class _Tombstone:
    __slots__ = ()

    def __repr__(self):
        return '<TOMBSTONE>'

    def __bool__(self):
        return False


TOMBSTONE = _Tombstone()


class SlotList:
    '''A list of slots, any of which may be tombstoned.'''

    def __init__(self):
        self._slots = []

    def __repr__(self):
        return '<{classname} at 0x{id:x}: {live:d} live, {dead:d} tombstoned>'.format(
            classname=self.__class__.__name__, id=id(self), live=len(self), dead=self.n_tombstones
        )

    def _live(self, slot):
        return slot is not TOMBSTONE

    def __len__(self):
        return sum(1 for slot in self._slots if self._live(slot))

    def __iter__(self):
        return iter(self.items)

    @property
    def items(self):
        '''The compacted view, as a new list.'''
        return [slot for slot in self._slots if self._live(slot)]

    @property
    def n_tombstones(self):
        return sum(1 for slot in self._slots if slot is TOMBSTONE)

    def kill(self, index):
        '''Tombstone the slot at (backing) ``index``.'''
        self._slots[index] = TOMBSTONE

    def compact(self):
        '''Drop all tombstones, returning how many were removed.'''
        before = len(self._slots)
        self._slots = [slot for slot in self._slots if slot is not TOMBSTONE]
        return before - len(self._slots)


class WorkQueue(SlotList):
    '''Ordered container of pending and in-flight work items.'''

    def push(self, fn, *args):
        self.compact()
        self._slots.append(WorkItem(fn, args))
        return self

    def unshift(self, fn, *args):
        self.compact()
        self._slots.insert(0, WorkItem(fn, args))
        return self

    def shift(self):
        '''Remove and return the head item, or None if the queue is empty.'''
        self.compact()
        if not self._slots:
            return None
        return self._slots.pop(0)

    def head(self):
        return self.get(0)

    def get(self, index):
        '''Return the item at ``index`` in the compacted view, or None if there is none.'''
        try:
            return self.items[index]
        except IndexError:
            return None

    def set(self, index, item):
        '''Insert ``item`` before position ``index``. The entry already at ``index`` is kept
        and moves up by one. ``item`` may be a ``WorkItem`` or a bare callable.'''
        if not isinstance(item, WorkItem):
            item = WorkItem(item, ())
        self.compact()
        self._slots.insert(index, item)
        return self

    def remove(self, index):
        '''Delete exactly the entry at ``index``; raises IndexError if there is none.'''
        self.compact()
        del self._slots[index]
        return self


class ActiveRegistry(SlotList):
    '''Handles to running execution contexts, index-aligned with a ``WorkQueue``.

    Each slot holds a handle, None for an item that has not been dispatched yet, or
    ``TOMBSTONE``. Only slots holding a handle count as live.'''

    def _live(self, slot):
        return slot is not None and slot is not TOMBSTONE

    def append(self):
        self._slots.append(None)

    def insert(self, index):
        self._slots.insert(index, None)

    def pop(self, index):
        '''Drop the slot at ``index``, returning its handle (or None if it had none).'''
        slot = self._slots.pop(index)
        return slot if self._live(slot) else None

    def handle_at(self, index):
        try:
            slot = self._slots[index]
        except IndexError:
            return None
        return slot if self._live(slot) else None

    def assign(self, index, handle):
        if index < 0:
            index += len(self._slots)
        while len(self._slots) <= index:
            self._slots.append(None)
        self._slots[index] = handle

    def index_of(self, handle):
        '''Return the backing index of ``handle``, or None if it is not registered.'''
        for (index, slot) in enumerate(self._slots):
            if slot is handle:
                return index
        return None
