"""
Test Configuration and Utilities

Common base classes and helper functions for BeanForge tests
"""

import unittest
from typing import List

from beanforge import ApplicationContext, BeanDefinition, DefaultBeanFactory


class BeanForgeTestCase(unittest.TestCase):
    """
    Base test case class for BeanForge tests.

    Contexts created with create_context() are closed after each test,
    most recently created first.
    """

    def setUp(self):
        self._contexts: List[ApplicationContext] = []

    def tearDown(self):
        for context in reversed(self._contexts):
            context.close()

    def create_context(self, *definitions: BeanDefinition, **kwargs) -> ApplicationContext:
        """Create a context for the given definitions, closed in tearDown()"""
        context = ApplicationContext(definitions=definitions, **kwargs)
        self._contexts.append(context)
        return context

    def refreshed_context(self, *definitions: BeanDefinition, **kwargs) -> ApplicationContext:
        """Create and refresh a context for the given definitions"""
        context = self.create_context(*definitions, **kwargs)
        context.refresh()
        return context


def create_factory(*definitions: BeanDefinition, **kwargs) -> DefaultBeanFactory:
    """
    Create a bean factory with the given definitions registered.

    Example:
        >>> factory = create_factory(BeanDefinition("db", Database))
        >>> factory.get_bean("db")
    """
    factory = DefaultBeanFactory(**kwargs)
    factory.load_definitions(definitions)
    return factory
