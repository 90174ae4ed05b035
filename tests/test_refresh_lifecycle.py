"""
Refresh Lifecycle Tests

Tests for the lifecycle of an application context:
- States: new, active, closed
- Phase order of refresh()
- Rollback of a failed refresh
- Re-refresh, close idempotence, context manager, shutdown hook
- Infrastructure beans and context-level aware callbacks
"""

from unittest import mock

from beanforge import (
    ApplicationContext,
    ApplicationContextAware,
    BeanCreationError,
    BeanDefinition,
    BeanDefinitionStoreError,
    BeanFactoryHook,
    ContextRefreshedEvent,
    ContextStateError,
    DefaultBeanFactory,
    EnvironmentAware,
    EventPublisherAware,
    listener,
)
from beanforge.message_source import DelegatingMessageSource
from beanforge.multicaster import SimpleEventMulticaster

from conftest import BeanForgeTestCase
from fixtures import CacheService, CollectingListener, Database, FailingService, Recorder, TrackedBean


class RecordingContext(ApplicationContext):
    """Context recording its template method calls"""

    def __init__(self, recorder, **kwargs):
        super().__init__(**kwargs)
        self.recorder = recorder

    def post_process_bean_factory(self, bean_factory):
        self.recorder.record("post_process_bean_factory")

    def on_refresh(self):
        self.recorder.record("on_refresh")

    def on_close(self):
        self.recorder.record("on_close")


class RecordingFactoryHook(BeanFactoryHook):
    def __init__(self, recorder):
        self.recorder = recorder

    def post_process_bean_factory(self, bean_factory):
        self.recorder.record("factory_hook")


class ContextAwareBean(ApplicationContextAware, EnvironmentAware, EventPublisherAware):
    def set_application_context(self, context):
        self.context = context

    def set_environment(self, environment):
        self.environment = environment

    def set_event_publisher(self, publisher):
        self.publisher = publisher


class NeedsContext:
    def __init__(self, context: ApplicationContext, bean_factory: DefaultBeanFactory):
        self.context = context
        self.bean_factory = bean_factory


class TestStates(BeanForgeTestCase):
    """Tests for context states"""

    def test_new_context_is_inactive(self):
        """Before refresh the context is neither active nor closed"""
        context = self.create_context(BeanDefinition("db", Database))

        self.assertFalse(context.is_active)
        self.assertFalse(context.is_closed)
        with self.assertRaises(ContextStateError) as ctx:
            context.get_bean("db")
        self.assertIn("has not been refreshed yet", str(ctx.exception))

    def test_refreshed_context_is_active(self):
        """refresh() activates the context and creates singletons"""
        context = self.refreshed_context(BeanDefinition("db", Database))

        self.assertTrue(context.is_active)
        self.assertTrue(context.get_bean_factory().contains_singleton("db"))
        self.assertIsNotNone(context.startup_date)

    def test_closed_context_rejects_lookups(self):
        """Lookups on a closed context raise"""
        context = self.refreshed_context(BeanDefinition("db", Database))

        context.close()

        self.assertTrue(context.is_closed)
        self.assertFalse(context.is_active)
        with self.assertRaises(ContextStateError) as ctx:
            context.get_bean("db")
        self.assertIn("has been closed already", str(ctx.exception))

    def test_closed_context_cannot_be_refreshed(self):
        """Closing is terminal"""
        context = self.refreshed_context()
        context.close()

        with self.assertRaises(ContextStateError):
            context.refresh()

    def test_close_without_refresh(self):
        """Closing a context that was never refreshed only marks it closed"""
        context = self.create_context()

        context.close()

        self.assertTrue(context.is_closed)
        with self.assertRaises(ContextStateError):
            context.refresh()

    def test_close_is_idempotent(self):
        """Beans are destroyed once however often close() is called"""
        recorder = Recorder()
        context = self.refreshed_context(
            BeanDefinition("tracked", factory=lambda: TrackedBean(recorder, "tracked"))
        )

        context.close()
        context.close()

        self.assertEqual(recorder.entries.count("destroy:tracked"), 1)

    def test_context_manager_closes(self):
        """Leaving the with block closes the context"""
        recorder = Recorder()
        with ApplicationContext(definitions=[
            BeanDefinition("tracked", factory=lambda: TrackedBean(recorder, "tracked"))
        ]) as context:
            context.refresh()

        self.assertTrue(context.is_closed)
        self.assertIn("destroy:tracked", recorder.entries)

    def test_shutdown_hook_registered_once_and_removed_on_close(self):
        """register_shutdown_hook() uses atexit, close() unregisters it"""
        with mock.patch('beanforge.context.atexit') as atexit_mock:
            context = self.refreshed_context()
            context.register_shutdown_hook()
            context.register_shutdown_hook()

            atexit_mock.register.assert_called_once_with(context.close)

            context.close()

            atexit_mock.unregister.assert_called_once_with(context.close)


class TestRefreshPhases(BeanForgeTestCase):
    """Tests for the phase order of refresh()"""

    def test_phase_order(self):
        """Template methods, hooks, singletons and the refreshed event run in phase order"""
        recorder = Recorder()
        context = RecordingContext(recorder, definitions=[
            BeanDefinition("tracked", factory=lambda: TrackedBean(recorder, "tracked")),
        ])
        self._contexts.append(context)
        context.add_factory_hook(RecordingFactoryHook(recorder))
        context.add_listener(listener(lambda e: recorder.record("refreshed"), ContextRefreshedEvent))

        context.refresh()
        context.close()

        self.assertEqual(recorder.entries, [
            "post_process_bean_factory",
            "factory_hook",
            "on_refresh",
            "create:tracked",
            "init:tracked",
            "refreshed",
            "destroy:tracked",
            "on_close",
        ])

    def test_infrastructure_beans_registered(self):
        """Every refreshed context exposes its infrastructure beans"""
        context = self.refreshed_context()

        self.assertIs(context.get_bean("environment"), context.environment)
        self.assertIsInstance(context.get_bean("message_source"), DelegatingMessageSource)
        self.assertIsInstance(context.get_bean("event_multicaster"), SimpleEventMulticaster)
        self.assertIs(context.get_bean("lifecycle_processor"), context.lifecycle_processor)

    def test_definitions_frozen_after_refresh(self):
        """The definition store is read-only once refresh completed"""
        context = self.refreshed_context(BeanDefinition("db", Database))
        bean_factory = context.get_bean_factory()

        self.assertTrue(bean_factory.is_configuration_frozen)
        with self.assertRaises(BeanDefinitionStoreError):
            bean_factory.register_definition(BeanDefinition("cache", CacheService))

    def test_registered_definitions_not_frozen(self):
        """Definitions given to the context are copied into the factory"""
        definition = BeanDefinition("db", Database)
        self.refreshed_context(definition)

        self.assertFalse(definition.is_frozen)

    def test_context_aware_callbacks(self):
        """Context-level aware beans receive the context and environment"""
        context = self.refreshed_context(BeanDefinition("aware", ContextAwareBean))
        bean = context.get_bean("aware")

        self.assertIs(bean.context, context)
        self.assertIs(bean.publisher, context)
        self.assertIs(bean.environment, context.environment)

    def test_context_and_factory_injectable(self):
        """The context and its bean factory can be autowired"""
        context = self.refreshed_context(BeanDefinition("needs", NeedsContext, autowire=True))
        bean = context.get_bean("needs")

        self.assertIs(bean.context, context)
        self.assertIs(bean.bean_factory, context.get_bean_factory())

    def test_get_proxy(self):
        """context.get[key]() looks beans up by type or name"""
        context = self.create_context(BeanDefinition("db", Database))
        get_db = context.get[Database]

        with self.assertRaises(ContextStateError):
            get_db()

        context.refresh()

        self.assertIs(get_db(), context.get["db"]())


class TestRefreshFailure(BeanForgeTestCase):
    """Tests for the rollback of a failed refresh"""

    def test_failed_refresh_destroys_created_singletons(self):
        """Singletons created before the failure are destroyed"""
        recorder = Recorder()
        context = self.create_context(
            BeanDefinition("tracked", factory=lambda: TrackedBean(recorder, "tracked")),
            BeanDefinition("failing", FailingService),
        )

        with self.assertLogs('beanforge.context', 'WARNING') as logs:
            with self.assertRaises(BeanCreationError) as ctx:
                context.refresh()

        self.assertEqual(ctx.exception.bean_name, "failing")
        self.assertIn("cancelling refresh attempt", logs.output[0])
        self.assertEqual(recorder.entries, ["create:tracked", "init:tracked", "destroy:tracked"])
        self.assertFalse(context.is_active)
        self.assertIsNone(context.event_multicaster)
        with self.assertRaises(ContextStateError):
            context.get_bean("tracked")

    def test_failed_refresh_releases_bean_factory(self):
        """A failed refresh leaves no bean factory and no beans behind"""
        context = self.create_context(
            BeanDefinition("db", Database),
            BeanDefinition("failing", FailingService),
        )

        with self.assertLogs('beanforge.context', 'WARNING'):
            with self.assertRaises(BeanCreationError):
                context.refresh()

        self.assertFalse(context.has_bean_factory())
        self.assertFalse(context.contains_bean("db"))
        self.assertEqual(context.definition_names, [])

    def test_failed_definition_loading(self):
        """A failure while loading definitions cancels the refresh"""
        context = self.create_context(
            BeanDefinition("db", Database),
            BeanDefinition("db", CacheService),
        )

        with self.assertRaises(BeanDefinitionStoreError):
            context.refresh()

        self.assertFalse(context.is_active)
        self.assertFalse(context.has_bean_factory())

    def test_failing_factory_hook_cancels_refresh(self):
        """A factory hook error cancels the refresh"""

        class Failing(BeanFactoryHook):
            def post_process_bean_factory(self, bean_factory):
                raise ValueError("bad configuration")

        context = self.create_context(BeanDefinition("db", Database))
        context.add_factory_hook(Failing())

        with self.assertRaises(ValueError):
            context.refresh()

        self.assertFalse(context.is_active)


class TestReRefresh(BeanForgeTestCase):
    """Tests for refreshing an active context again"""

    def test_refresh_replaces_singletons(self):
        """A second refresh destroys the old singletons and creates new ones"""
        recorder = Recorder()
        context = self.refreshed_context(
            BeanDefinition("tracked", factory=lambda: TrackedBean(recorder, "tracked"))
        )
        first = context.get_bean("tracked")

        context.refresh()

        self.assertIsNot(context.get_bean("tracked"), first)
        self.assertEqual(recorder.entries, [
            "create:tracked", "init:tracked", "destroy:tracked", "create:tracked", "init:tracked",
        ])

    def test_listeners_not_duplicated(self):
        """Listeners registered before the first refresh are attached once per refresh"""
        collector = CollectingListener(ContextRefreshedEvent)
        context = self.create_context(BeanDefinition("bean_listener", CollectingListener))
        context.add_listener(collector)

        context.refresh()
        context.refresh()

        self.assertEqual(len(collector.events), 2)
        self.assertEqual(context.listeners, [collector, context.get_bean("bean_listener")])
