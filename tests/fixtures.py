"""
Test Fixtures

Common test classes used across test modules
"""

from typing import Any, List

from beanforge import (
    ApplicationListener,
    DisposableBean,
    InitializingBean,
    SmartInstantiationAwareInstanceHook,
)


class Database:
    """Test database class"""

    def __init__(self):
        self.name = "TestDB"


class CacheService:
    """Test cache service"""

    def __init__(self):
        self.cache = {}


class UserRepository:
    """Test repository with dependencies"""

    def __init__(self, db: Database, cache: CacheService):
        self.db = db
        self.cache = cache


class CounterService:
    """Service with mutable state for testing singleton behavior"""

    def __init__(self):
        self.counter = 0

    def increment(self):
        self.counter += 1
        return self.counter


class ServiceWithoutHint:
    """Service with missing type hint - for error testing"""

    def __init__(self, dependency):  # No type hint!
        self.dependency = dependency


class FailingService:
    """Service whose constructor always fails"""

    def __init__(self):
        raise RuntimeError("boom")


class Recorder:
    """Ordered log of lifecycle callbacks shared by several beans"""

    def __init__(self):
        self.entries: List[str] = []

    def record(self, entry: str) -> None:
        self.entries.append(entry)

    def index(self, entry: str) -> int:
        return self.entries.index(entry)


class TrackedBean(InitializingBean, DisposableBean):
    """Bean recording its creation, initialization and destruction"""

    def __init__(self, recorder: Recorder, name: str):
        self.recorder = recorder
        self.name = name
        recorder.record(f"create:{name}")

    def after_properties_set(self):
        self.recorder.record(f"init:{self.name}")

    def destroy(self):
        self.recorder.record(f"destroy:{self.name}")


class ServiceA:
    """One side of a field-level cycle"""

    def __init__(self):
        self.b = None


class ServiceB:
    """Other side of a field-level cycle"""

    def __init__(self):
        self.a = None


class Proxy:
    """Wrapper standing in for a proxy created by an instance hook"""

    def __init__(self, target: Any):
        self.target = target

    def __getattr__(self, item):
        return getattr(self.target, item)


class ProxyingHook(SmartInstantiationAwareInstanceHook):
    """Wraps the named beans in a Proxy, early references included"""

    def __init__(self, *bean_names: str):
        self.bean_names = set(bean_names)
        self._early_proxied = set()

    def get_early_bean_reference(self, bean, bean_name):
        if bean_name in self.bean_names:
            self._early_proxied.add(bean_name)
            return Proxy(bean)
        return bean

    def after_init(self, bean, bean_name):
        if bean_name in self.bean_names and bean_name not in self._early_proxied:
            return Proxy(bean)
        return bean


class LateWrappingHook(SmartInstantiationAwareInstanceHook):
    """Wraps the named beans after initialization only"""

    def __init__(self, *bean_names: str):
        self.bean_names = set(bean_names)

    def after_init(self, bean, bean_name):
        if bean_name in self.bean_names:
            return Proxy(bean)
        return bean


class CollectingListener(ApplicationListener):
    """Listener keeping every event it receives"""

    def __init__(self, event_type=None):
        if event_type is not None:
            self.event_type = event_type
        self.events: List[Any] = []

    def on_application_event(self, event):
        self.events.append(event)
