import pytest

from workloop.slots import WorkQueue, ActiveRegistry, WorkItem, TOMBSTONE

from tsupport import answer, echo, add


def fns(queue):
    return [item.fn for item in queue]


class TestWorkQueue:
    def setup_method(self):
        self.queue = WorkQueue()

    def test_push_and_unshift(self):
        self.queue.push(answer).push(echo, 'echo').unshift(add, 1, 2)
        assert fns(self.queue) == [add, answer, echo]
        assert self.queue.head() == WorkItem(add, (1, 2))
        assert self.queue.get(2).args == ('echo',)
        assert len(self.queue) == 3

    def test_shift(self):
        self.queue.push(answer).push(echo)
        assert self.queue.shift().fn is answer
        assert fns(self.queue) == [echo]
        self.queue.shift()
        assert self.queue.shift() is None

    def test_get_out_of_range(self):
        assert self.queue.head() is None
        assert self.queue.get(3) is None

    def test_set_inserts(self):
        self.queue.push(answer).push(echo)
        self.queue.set(1, add)
        assert fns(self.queue) == [answer, add, echo]
        assert self.queue.get(1).args == ()

    def test_set_work_item(self):
        self.queue.push(answer)
        self.queue.set(0, WorkItem(add, (1,)))
        assert self.queue.head() == WorkItem(add, (1,))
        assert len(self.queue) == 2

    def test_remove_exactly_one(self):
        self.queue.push(answer).push(answer).push(echo)
        self.queue.remove(1)
        assert fns(self.queue) == [answer, echo]

    def test_remove_out_of_range(self):
        with pytest.raises(IndexError):
            self.queue.remove(0)

    def test_length_counts_live_entries(self):
        ops = [('push', answer), ('push', echo), ('unshift', add), ('remove', 1), ('push', add), ('unshift', echo)]
        for (op, arg) in ops:
            if op == 'remove':
                self.queue.remove(arg)
            else:
                getattr(self.queue, op)(arg)
        assert len(self.queue) == 4
        self.queue.kill(0)
        assert len(self.queue) == 3

    def test_reads_do_not_compact(self):
        self.queue.push(answer).push(echo).push(add)
        self.queue.kill(1)
        assert fns(self.queue) == [answer, add]
        assert self.queue.get(1).fn is add
        assert self.queue.n_tombstones == 1
        assert self.queue.compact() == 1
        assert self.queue.n_tombstones == 0
        assert fns(self.queue) == [answer, add]

    def test_mutators_address_compacted_view(self):
        self.queue.push(answer).push(echo).push(add)
        self.queue.kill(0)
        self.queue.remove(0)
        assert fns(self.queue) == [add]


class TestActiveRegistry:
    def setup_method(self):
        self.active = ActiveRegistry()

    def test_pending_slots_not_live(self):
        self.active.append()
        self.active.append()
        assert len(self.active) == 0
        assert self.active.items == []
        assert self.active.handle_at(0) is None

    def test_assign_and_lookup(self):
        handle = object()
        self.active.append()
        self.active.append()
        self.active.assign(1, handle)
        assert self.active.items == [handle]
        assert self.active.handle_at(1) is handle
        assert self.active.index_of(handle) == 1
        assert self.active.index_of(object()) is None

    def test_assign_pads(self):
        handle = object()
        self.active.assign(2, handle)
        assert self.active.index_of(handle) == 2

    def test_insert_keeps_alignment(self):
        (first, second) = (object(), object())
        self.active.append()
        self.active.append()
        self.active.assign(0, first)
        self.active.assign(1, second)
        self.active.insert(1)
        assert self.active.index_of(second) == 2
        assert self.active.pop(1) is None
        assert self.active.pop(1) is second

    def test_kill_and_compact(self):
        (first, second) = (object(), object())
        self.active.assign(0, first)
        self.active.assign(1, second)
        self.active.kill(0)
        assert self.active.items == [second]
        assert self.active.index_of(second) == 1
        assert self.active.compact() == 1
        assert self.active.index_of(second) == 0

    def test_tombstone_is_falsy(self):
        assert not TOMBSTONE
