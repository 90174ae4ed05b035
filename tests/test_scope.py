"""
Scope Tests

Tests for custom scopes:
- Reserved scope names
- SimpleMapScope instance reuse and destruction callbacks
- SimpleThreadScope per-thread instances
- Scoped beans in the bean factory and the context
"""

import threading
import unittest

from beanforge import (
    BeanDefinition,
    ContextStateError,
    DefaultBeanFactory,
    SimpleMapScope,
    SimpleThreadScope,
)
from beanforge.scope import ScopeRegistry

from conftest import BeanForgeTestCase, create_factory
from fixtures import CounterService, Database, Recorder, TrackedBean


class TestScopeRegistry(unittest.TestCase):
    """Tests for scope registration"""

    def test_reserved_names_rejected(self):
        """singleton and prototype cannot be registered as custom scopes"""
        registry = ScopeRegistry()

        for name in ("singleton", "prototype"):
            with self.assertRaises(ValueError):
                registry.register_scope(name, SimpleMapScope())

    def test_register_and_replace(self):
        """Registering a name again replaces the scope"""
        registry = ScopeRegistry()
        first, second = SimpleMapScope("1"), SimpleMapScope("2")

        registry.register_scope("conversation", first)
        registry.register_scope("conversation", second)

        self.assertIs(registry.get_scope("conversation"), second)
        self.assertEqual(registry.scope_names, ["conversation"])
        self.assertIsNone(registry.get_scope("missing"))


class TestSimpleMapScope(unittest.TestCase):
    """Tests for SimpleMapScope"""

    def test_get_reuses_instance(self):
        """The object factory runs once per name"""
        scope = SimpleMapScope()
        calls = []

        def factory():
            calls.append(1)
            return object()

        self.assertIs(scope.get("x", factory), scope.get("x", factory))
        self.assertEqual(len(calls), 1)

    def test_remove_discards_callback(self):
        """remove() returns the instance and drops its callback without running it"""
        scope = SimpleMapScope()
        called = []
        instance = scope.get("x", object)
        scope.register_destruction_callback("x", lambda: called.append("x"))

        self.assertIs(scope.remove("x"), instance)
        scope.close()

        self.assertEqual(called, [])
        self.assertIsNone(scope.remove("x"))

    def test_close_runs_callbacks_in_reverse(self):
        """Closing runs destruction callbacks, newest first"""
        scope = SimpleMapScope()
        called = []
        for name in ("a", "b", "c"):
            scope.get(name, object)
            scope.register_destruction_callback(name, lambda n=name: called.append(n))

        scope.close()
        scope.close()

        self.assertEqual(called, ["c", "b", "a"])
        self.assertTrue(scope.is_closed)

    def test_closed_scope_rejects_get(self):
        """A closed scope cannot hand out instances"""
        with SimpleMapScope("conversation-1") as scope:
            pass

        with self.assertRaises(ContextStateError) as ctx:
            scope.get("x", object)

        self.assertIn("conversation-1", str(ctx.exception))

    def test_failing_callback_logged(self):
        """A failing callback is logged and the others still run"""
        scope = SimpleMapScope()
        called = []

        def failing():
            raise RuntimeError("boom")

        scope.register_destruction_callback("a", lambda: called.append("a"))
        scope.register_destruction_callback("b", failing)

        with self.assertLogs('beanforge.scope', 'WARNING'):
            scope.close()

        self.assertEqual(called, ["a"])

    def test_conversation_id(self):
        """The conversation id is the scope id"""
        self.assertEqual(SimpleMapScope("c-7").get_conversation_id(), "c-7")


class TestSimpleThreadScope(unittest.TestCase):
    """Tests for SimpleThreadScope"""

    def test_instance_per_thread(self):
        """Each thread gets its own instance"""
        scope = SimpleThreadScope()
        main = scope.get("x", object)
        other = []

        thread = threading.Thread(target=lambda: other.append(scope.get("x", object)))
        thread.start()
        thread.join(timeout=5)

        self.assertIs(scope.get("x", object), main)
        self.assertEqual(len(other), 1)
        self.assertIsNot(other[0], main)

    def test_destruction_callbacks_warn_once(self):
        """Dropped callbacks are reported once"""
        scope = SimpleThreadScope()

        with self.assertLogs('beanforge.scope', 'WARNING') as logs:
            scope.register_destruction_callback("a", lambda: None)
            scope.register_destruction_callback("b", lambda: None)

        self.assertEqual(len(logs.records), 1)
        self.assertIn("'a'", logs.output[0])


class TestScopedBeans(unittest.TestCase):
    """Tests for scoped beans in a bean factory"""

    def setUp(self):
        self.recorder = Recorder()
        self.scope = SimpleMapScope()
        self.factory = create_factory(
            BeanDefinition("tracked", factory=lambda: TrackedBean(self.recorder, "tracked"),
                           scope="conversation"),
            BeanDefinition("db", Database),
        )
        self.factory.register_scope("conversation", self.scope)

    def test_scoped_bean_cached_by_scope(self):
        """A scoped bean is shared while the scope lives"""
        first = self.factory.get_bean("tracked")

        self.assertIs(self.factory.get_bean("tracked"), first)
        self.assertFalse(self.factory.contains_singleton("tracked"))
        self.assertFalse(self.factory.is_singleton("tracked"))
        self.assertFalse(self.factory.is_prototype("tracked"))

    def test_registered_scope_lookup(self):
        """Registered scopes are listed and can be looked up by name"""
        self.assertIs(self.factory.get_registered_scope("conversation"), self.scope)
        self.assertIn("conversation", self.factory.registered_scope_names)
        self.assertIsNone(self.factory.get_registered_scope("request"))

    def test_scope_close_destroys_bean(self):
        """Closing the scope runs the bean's destruction callbacks"""
        self.factory.get_bean("tracked")

        self.scope.close()

        self.assertEqual(self.recorder.entries,
                         ["create:tracked", "init:tracked", "destroy:tracked"])

    def test_destroy_scoped_bean(self):
        """destroy_scoped_bean removes the instance and destroys it"""
        first = self.factory.get_bean("tracked")

        self.factory.destroy_scoped_bean("tracked")

        self.assertIn("destroy:tracked", self.recorder.entries)
        self.assertIsNot(self.factory.get_bean("tracked"), first)

    def test_destroy_scoped_bean_rejects_singletons(self):
        """Singletons are not in a mutable scope"""
        with self.assertRaises(ValueError):
            self.factory.destroy_scoped_bean("db")

    def test_thread_scoped_bean(self):
        """Thread-scoped beans differ between threads"""
        factory = DefaultBeanFactory()
        factory.register_scope("thread", SimpleThreadScope())
        factory.register_definition(BeanDefinition("counter", CounterService, scope="thread"))
        other = []

        thread = threading.Thread(target=lambda: other.append(factory.get_bean("counter")))
        thread.start()
        thread.join(timeout=5)

        self.assertIs(factory.get_bean("counter"), factory.get_bean("counter"))
        self.assertIsNot(other[0], factory.get_bean("counter"))


class TestScopesInContext(BeanForgeTestCase):
    """Tests for scopes registered on a context"""

    def test_scope_registered_before_refresh(self):
        """Scopes registered on the context are applied to its bean factory"""
        scope = SimpleMapScope()
        context = self.create_context(BeanDefinition("counter", CounterService, scope="conversation"))
        context.register_scope("conversation", scope)
        context.refresh()

        self.assertIs(context.get_bean("counter"), context.get_bean("counter"))
        self.assertIn("conversation", context.get_bean_factory().registered_scope_names)

    def test_scope_registered_after_refresh(self):
        """A scope registered on an active context is usable right away"""
        context = self.refreshed_context(BeanDefinition("counter", CounterService, scope="late"))

        context.register_scope("late", SimpleMapScope())

        self.assertIsInstance(context.get_bean("counter"), CounterService)

    def test_scoped_beans_not_created_on_refresh(self):
        """Only singletons are created eagerly"""
        scope = SimpleMapScope()
        calls = []
        context = self.create_context(
            BeanDefinition("bean", factory=lambda: calls.append(1) or Database(), scope="conversation")
        )
        context.register_scope("conversation", scope)
        context.refresh()

        self.assertEqual(calls, [])
        context.get_bean("bean")
        self.assertEqual(calls, [1])


if __name__ == '__main__':
    unittest.main()
