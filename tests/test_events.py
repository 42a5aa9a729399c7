from workloop.events import EventChannel


class TestEventChannel:
    def setup_method(self):
        self.channel = EventChannel()
        self.calls = []

    def recorder(self, tag):
        def record(*args):
            self.calls.append((tag,) + args)

        return record

    def test_registration_order(self):
        self.channel.on('done', self.recorder('a')).on('done', self.recorder('b'))
        self.channel.emit('done', 1, 2)
        assert self.calls == [('a', 1, 2), ('b', 1, 2)]

    def test_unrelated_event(self):
        self.channel.on('done', self.recorder('a'))
        self.channel.emit('message', 1)
        assert self.calls == []

    def test_once(self):
        self.channel.once('done', self.recorder('once'))
        self.channel.on('done', self.recorder('always'))
        self.channel.emit('done', 1)
        self.channel.emit('done', 2)
        assert self.calls == [('once', 1), ('always', 1), ('always', 2)]
        assert len(self.channel.listeners('done')) == 1

    def test_off_specific(self):
        (a, b) = (self.recorder('a'), self.recorder('b'))
        self.channel.on('done', a).on('done', b)
        self.channel.off('done', a)
        self.channel.emit('done')
        assert self.calls == [('b',)]

    def test_off_once_by_wrapped_listener(self):
        fn = self.recorder('once')
        self.channel.once('done', fn)
        self.channel.off('done', fn)
        self.channel.emit('done')
        assert self.calls == []
        assert not self.channel.has_listeners('done')

    def test_off_event(self):
        self.channel.on('done', self.recorder('a')).on('message', self.recorder('m'))
        self.channel.off('done')
        self.channel.emit('done').emit('message')
        assert self.calls == [('m',)]

    def test_off_all(self):
        self.channel.on('done', self.recorder('a')).on('message', self.recorder('m'))
        self.channel.off()
        self.channel.emit('done').emit('message')
        assert self.calls == []

    def test_listener_added_during_emit(self):
        def add_another(*args):
            self.channel.on('done', self.recorder('late'))

        self.channel.on('done', add_another)
        self.channel.emit('done')
        assert self.calls == []
        self.channel.emit('done')
        assert self.calls == [('late',)]
