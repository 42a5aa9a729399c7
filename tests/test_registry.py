import os.path

import pytest

from workloop.registry import TaskRegistry
from workloop.errors import UnsupportedType, TaskResolutionError

from tsupport import answer, identity, Namespace


class TestTaskRegistry:
    def setup_method(self):
        self.registry = TaskRegistry()

    def test_identify_module_function(self):
        assert self.registry.identify(answer) == '{}:answer'.format(answer.__module__)

    def test_identify_qualified_name(self):
        assert self.registry.identify(Namespace.answer) == '{}:Namespace.answer'.format(Namespace.__module__)

    def test_identify_builtin_and_stdlib(self):
        assert self.registry.identify(len) == 'builtins:len'
        assert self.registry.resolve(self.registry.identify(os.path.join)) is os.path.join

    def test_identify_rejects_lambda(self):
        with pytest.raises(UnsupportedType):
            self.registry.identify(lambda: None)

    def test_identify_rejects_bound_method(self):
        with pytest.raises(UnsupportedType):
            self.registry.identify(self.test_identify_rejects_bound_method)

    def test_resolve(self):
        assert self.registry.resolve('{}:identity'.format(identity.__module__)) is identity

    def test_resolve_imports_module(self):
        import json

        assert self.registry.resolve('json:dumps') is json.dumps

    @pytest.mark.parametrize('task_id', ['no_such_module_for_workloop:fn', 'json:no_such_function', 'unregistered'])
    def test_resolve_failures(self, task_id):
        with pytest.raises(TaskResolutionError):
            self.registry.resolve(task_id)

    def test_resolve_non_callable(self):
        with pytest.raises(TaskResolutionError):
            self.registry.resolve('os:sep')

    def test_register_alias(self):
        self.registry.register(answer, 'the-answer')
        assert self.registry.resolve('the-answer') is answer

    def test_alias_does_not_replace_import_path(self):
        # contexts that did not inherit this registry can still import the task
        self.registry.register(answer, 'the-answer')
        task_id = self.registry.identify(answer)
        assert task_id == '{}:answer'.format(answer.__module__)
        assert self.registry.is_importable(task_id)
        assert TaskRegistry().resolve(task_id) is answer

    def test_alias_with_colon(self):
        with pytest.raises(ValueError):
            self.registry.register(answer, 'the:answer')

    def test_register_duplicate_alias(self):
        self.registry.register(answer, 'task')
        with pytest.raises(ValueError):
            self.registry.register(identity, 'task')

    def test_task_decorator(self):
        @self.registry.task('decorated')
        def decorated(data, done):
            done(True, None)

        assert self.registry.identify(decorated) == 'decorated'
        assert not self.registry.is_importable('decorated')
        assert self.registry.resolve('decorated') is decorated

    def test_bare_task_decorator(self):
        fn = self.registry.task(identity)
        assert fn is identity
        assert self.registry.resolve('{}:identity'.format(identity.__module__)) is identity
