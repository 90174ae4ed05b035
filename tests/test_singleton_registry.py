"""
Singleton Registry Tests

Tests for the shared instance cache:
- At most one construction per name under concurrency
- Early references and cross-thread cycles
- Cleanup after a failed creation
- Destruction order and error handling
"""

import threading
import time
import unittest

from beanforge import (
    BeanCreationNotAllowedError,
    BeanCurrentlyInCreationError,
    BeanDefinitionStoreError,
    SingletonBeanRegistry,
)
from beanforge.singleton_registry import MISSING

from fixtures import Recorder, ServiceA, ServiceB


class _Disposable:
    """Disposable adapter stand-in recording destroy() calls"""

    def __init__(self, recorder: Recorder, name: str, fail: bool = False):
        self.recorder = recorder
        self.name = name
        self.fail = fail

    def destroy(self):
        self.recorder.record(f"destroy:{self.name}")
        if self.fail:
            raise RuntimeError(f"cannot destroy {self.name}")


class TestRegistration(unittest.TestCase):
    """Tests for manual registration"""

    def test_register_singleton(self):
        """A registered object is returned by get_singleton"""
        registry = SingletonBeanRegistry()
        instance = object()

        registry.register_singleton("x", instance)

        self.assertIs(registry.get_singleton("x"), instance)
        self.assertTrue(registry.contains_singleton("x"))
        self.assertEqual(registry.singleton_names, ["x"])

    def test_duplicate_registration_raises(self):
        """A name can only be bound once"""
        registry = SingletonBeanRegistry()
        registry.register_singleton("x", object())

        with self.assertRaises(BeanDefinitionStoreError):
            registry.register_singleton("x", object())

    def test_unknown_name_returns_none(self):
        """Lookup without a factory returns None for unknown names"""
        self.assertIsNone(SingletonBeanRegistry().get_singleton("missing"))


class TestCreation(unittest.TestCase):
    """Tests for creation through a singleton factory"""

    def test_factory_runs_once(self):
        """Repeated lookups reuse the first instance"""
        registry = SingletonBeanRegistry()
        calls = []

        def factory():
            calls.append(1)
            return object()

        first = registry.get_singleton("x", factory)
        second = registry.get_singleton("x", factory)

        self.assertIs(first, second)
        self.assertEqual(len(calls), 1)

    def test_none_result_is_cached(self):
        """A factory returning None runs once and None is the cached instance"""
        registry = SingletonBeanRegistry()
        calls = []

        def factory():
            calls.append(1)
            return None

        results = [registry.get_singleton("x", factory) for _ in range(3)]

        self.assertEqual(results, [None, None, None])
        self.assertEqual(len(calls), 1)
        self.assertTrue(registry.contains_singleton("x"))
        self.assertIsNone(registry.lookup_singleton("x"))
        self.assertIs(registry.lookup_singleton("missing"), MISSING)

    def test_registered_none_cannot_be_replaced(self):
        """A name bound to None counts as bound"""
        registry = SingletonBeanRegistry()
        registry.register_singleton("x", None)

        with self.assertRaises(BeanDefinitionStoreError):
            registry.register_singleton("x", object())

    def test_concurrent_requests_construct_once(self):
        """Threads requesting the same name share one instance"""
        registry = SingletonBeanRegistry()
        calls = []
        barrier = threading.Barrier(10)
        results = []

        def factory():
            calls.append(1)
            time.sleep(0.05)
            return object()

        def worker():
            barrier.wait(timeout=5)
            results.append(registry.get_singleton("x", factory))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        self.assertEqual(len(calls), 1)
        self.assertEqual(len(results), 10)
        self.assertTrue(all(result is results[0] for result in results))

    def test_failed_creation_leaves_no_trace(self):
        """A failing factory leaves the name free for a later attempt"""
        registry = SingletonBeanRegistry()

        def failing():
            registry.add_singleton_factory("x", lambda: "early")
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            registry.get_singleton("x", failing)

        self.assertFalse(registry.contains_singleton("x"))
        self.assertFalse(registry.is_singleton_currently_in_creation("x"))
        self.assertNotIn("x", registry.singleton_names)
        self.assertEqual(registry.get_singleton("x", lambda: "second"), "second")

    def test_reentry_without_early_reference_raises(self):
        """Requesting a bean from its own factory needs an early reference"""
        registry = SingletonBeanRegistry()

        def factory():
            return registry.get_singleton("x", factory)

        with self.assertRaises(BeanCurrentlyInCreationError):
            registry.get_singleton("x", factory)

    def test_early_reference_served_to_own_thread(self):
        """The creating thread receives the early reference"""
        registry = SingletonBeanRegistry()
        raw = ServiceA()

        def factory():
            registry.add_singleton_factory("a", lambda: raw)
            self.assertIs(registry.get_singleton("a"), raw)
            return raw

        self.assertIs(registry.get_singleton("a", factory), raw)

    def test_early_reference_hidden_from_other_threads(self):
        """Other threads never see a half-initialized bean through lookup"""
        registry = SingletonBeanRegistry()
        seen = []

        def factory():
            registry.add_singleton_factory("a", lambda: "early")
            thread = threading.Thread(target=lambda: seen.append(registry.get_singleton("a")))
            thread.start()
            thread.join(timeout=5)
            return "done"

        registry.get_singleton("a", factory)

        self.assertEqual(seen, [None])

    def test_cross_thread_cycle_resolved_with_early_references(self):
        """Two threads creating each other's dependency do not deadlock"""
        registry = SingletonBeanRegistry()
        barrier = threading.Barrier(2)
        results = {}

        def unexpected():
            raise AssertionError("must not create twice")

        def make_factory(name, other, cls, attr):
            def factory():
                raw = cls()
                registry.add_singleton_factory(name, lambda: raw)
                barrier.wait(timeout=5)
                setattr(raw, attr, registry.get_singleton(other, unexpected))
                return raw
            return factory

        def worker(name, factory):
            results[name] = registry.get_singleton(name, factory)

        threads = [
            threading.Thread(target=worker, args=("a", make_factory("a", "b", ServiceA, "b"))),
            threading.Thread(target=worker, args=("b", make_factory("b", "a", ServiceB, "a"))),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertFalse(any(thread.is_alive() for thread in threads))
        self.assertIs(results["a"].b, results["b"])
        self.assertIs(results["b"].a, results["a"])


class TestDestruction(unittest.TestCase):
    """Tests for destroy_singletons()"""

    def setUp(self):
        self.registry = SingletonBeanRegistry()
        self.recorder = Recorder()

    def _add(self, name, fail=False):
        self.registry.register_singleton(name, object())
        self.registry.register_disposable_bean(name, _Disposable(self.recorder, name, fail))

    def test_reverse_registration_order(self):
        """Disposables are destroyed in reverse registration order"""
        for name in ("a", "b", "c"):
            self._add(name)

        self.registry.destroy_singletons()

        self.assertEqual(self.recorder.entries, ["destroy:c", "destroy:b", "destroy:a"])
        self.assertEqual(self.registry.singleton_count, 0)

    def test_dependents_destroyed_first(self):
        """A dependent is destroyed before the bean it depends on"""
        self._add("repo")
        self._add("db")
        self.registry.register_dependent_bean("db", "repo")

        self.registry.destroy_singletons()

        self.assertEqual(self.recorder.entries, ["destroy:repo", "destroy:db"])

    def test_transitive_dependents(self):
        """is_dependent follows the dependent chain"""
        self.registry.register_dependent_bean("db", "repo")
        self.registry.register_dependent_bean("repo", "service")

        self.assertTrue(self.registry.is_dependent("db", "service"))
        self.assertFalse(self.registry.is_dependent("service", "db"))
        self.assertEqual(self.registry.get_dependencies_for_bean("repo"), ["db"])
        self.assertEqual(self.registry.get_dependent_beans("db"), ["repo"])

    def test_destruction_error_logged_and_skipped(self):
        """A failing destroy is logged and the rest still run"""
        self._add("a")
        self._add("b", fail=True)

        with self.assertLogs('beanforge.singleton_registry', 'WARNING') as logs:
            self.registry.destroy_singletons()

        self.assertEqual(self.recorder.entries, ["destroy:b", "destroy:a"])
        self.assertIn("Destruction of bean with name 'b' threw an exception", logs.output[0])

    def test_creation_not_allowed_during_destruction(self):
        """Destroy callbacks cannot create new singletons"""
        errors = []
        registry = self.registry

        class Creating:
            def destroy(self):
                try:
                    registry.get_singleton("late", object)
                except BeanCreationNotAllowedError as e:
                    errors.append(e)

        registry.register_singleton("x", object())
        registry.register_disposable_bean("x", Creating())

        registry.destroy_singletons()

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].bean_name, "late")
        self.assertFalse(registry.contains_singleton("late"))


if __name__ == '__main__':
    unittest.main()
