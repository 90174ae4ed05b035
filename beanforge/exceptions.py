"""
BeanForge Exceptions

Custom exception hierarchy for the BeanForge container
"""

from typing import Optional

from .lifecycle import FactoryBean


class BeansError(Exception):
    """
    Base exception for all BeanForge errors.

    All container-specific exceptions inherit from this class.
    You can catch this to handle any container error generically.

    Example:
        >>> try:
        ...     service = context.get_bean("service")
        ... except BeansError as e:
        ...     print(f"Container error: {e}")
    """

    pass


class NoSuchBeanDefinitionError(BeansError):
    """
    Raised when a requested bean name or type is not known to the container.

    Common causes:
        - Typo in the bean name
        - The definition loader that registers the bean was not added
        - The bean is registered with ``autowire_candidate=False`` and was
          looked up by type

    Solution:
        Register a definition before refreshing the context::

            context.register_definition(BeanDefinition("service", Service))
            context.refresh()

    Note:
        The error message lists the registered bean names to help identify
        available beans.
    """

    def __init__(self, message: str, bean_name: Optional[str] = None,
                 bean_type: Optional[type] = None):
        super().__init__(message)
        self.bean_name = bean_name
        self.bean_type = bean_type


class NoUniqueBeanDefinitionError(NoSuchBeanDefinitionError):
    """
    Raised when a lookup by type matches more than one candidate.

    Solution:
        Mark one of the candidates with ``primary=True``, exclude the others
        with ``autowire_candidate=False``, or look the bean up by name.
    """

    def __init__(self, bean_type: type, candidates):
        self.candidates = list(candidates)
        super().__init__(
            f"No qualifying bean of type '{bean_type.__name__}' available: "
            f"expected single matching bean but found {len(self.candidates)}: "
            f"{', '.join(self.candidates)}",
            bean_type=bean_type,
        )


class BeanDefinitionStoreError(BeansError):
    """
    Raised when the definition store rejects a structural change.

    Common causes:
        - Registering a second definition under an existing name while
          definition overriding is disabled
        - Registering or removing definitions after the configuration has
          been frozen (after the factory hooks ran)
        - Assigning to an attribute of a frozen definition
        - Referencing a parent definition that does not exist
    """

    pass


class BeanCreationError(BeansError):
    """
    Raised when a bean could not be created.

    The failing bean name is kept on the exception. The original error,
    if any, is chained as ``__cause__``.

    Common causes:
        - The constructor, factory callable or init method raised
        - An instance hook raised while processing the bean
        - A referenced bean could not be created

    Note:
        During ``refresh()`` a creation error is fatal: every singleton
        created so far is destroyed and the context stays inactive.
    """

    def __init__(self, bean_name: Optional[str], message: str):
        self.bean_name = bean_name
        if bean_name is not None:
            message = f"Error creating bean with name '{bean_name}': {message}"
        super().__init__(message)


class BeanCurrentlyInCreationError(BeanCreationError):
    """
    Raised when a circular reference cannot be resolved.

    Field and setter cycles between singletons are broken through early
    references. Cycles that pass through a constructor cannot be broken,
    because the raw instance does not exist yet.

    Example of an unresolvable cycle::

        class ServiceA:
            def __init__(self, b: ServiceB): ...

        class ServiceB:
            def __init__(self, a: ServiceA): ...

    Solution:
        Move one side of the cycle to ``property_values`` so it is injected
        after construction, or extract the shared part to a third bean.
    """

    def __init__(self, bean_name: str, message: Optional[str] = None):
        super().__init__(
            bean_name,
            message or "Requested bean is currently in creation: "
                       "Is there an unresolvable circular reference?",
        )


class BeanCreationNotAllowedError(BeanCreationError):
    """
    Raised when a singleton is requested while singletons are being destroyed.

    Do not request beans from a destroy method implementation.
    """

    pass


class BeanIsAbstractError(BeanCreationError):
    """Raised when an abstract (template) definition is instantiated."""

    def __init__(self, bean_name: str):
        super().__init__(bean_name, "Bean definition is abstract")


class UnsatisfiedDependencyError(BeanCreationError):
    """
    Raised when an autowired constructor argument cannot be resolved.

    Common causes:
        - Missing type hint for a constructor parameter
        - No bean (or several non-primary beans) of the parameter type
    """

    pass


class BeanNotOfRequiredTypeError(BeansError):
    """Raised when a bean does not match the type requested by the caller."""

    def __init__(self, bean_name: str, required_type: type, actual_type: type):
        self.bean_name = bean_name
        self.required_type = required_type
        self.actual_type = actual_type
        super().__init__(
            f"Bean named '{bean_name}' is expected to be of type "
            f"'{required_type.__name__}' but was actually of type "
            f"'{actual_type.__name__}'"
        )


class BeanIsNotAFactoryError(BeanNotOfRequiredTypeError):
    """Raised when a name prefixed with "&" does not refer to a FactoryBean."""

    def __init__(self, bean_name: str, actual_type: type):
        super().__init__(bean_name, FactoryBean, actual_type)


class ContextStateError(BeansError):
    """
    Raised when an application context is used in the wrong state.

    Common causes:
        - Calling ``refresh()`` on a closed context (closing is terminal)
        - Looking up beans before ``refresh()`` or after ``close()``
        - Publishing an event on a context that was never prepared

    Solution:
        Create a new context instead of reusing a closed one::

            with ApplicationContext(definitions=[...]) as context:
                context.refresh()
                service = context.get_bean("service")
            # Context is now closed

            context2 = ApplicationContext(definitions=[...])
    """

    pass
