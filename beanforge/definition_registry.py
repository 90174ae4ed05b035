"""
DefinitionRegistry

This module provides the definition store of the container: a mapping from
bean name to BeanDefinition, with aliases, parent/child merging and a freeze
point after which the store is read-only.

The registry is mutable while definitions are loaded and while factory-level
hooks run. After ``freeze_configuration()`` every structural change raises
BeanDefinitionStoreError and every stored definition rejects assignment.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .definition import BeanDefinition
from .exceptions import BeanDefinitionStoreError, NoSuchBeanDefinitionError

logger = logging.getLogger(__name__)


class DefinitionRegistry:
    """Definition store with aliases, merging and a freeze point.

    Attributes:
        allow_definition_overriding: Replace an existing definition instead of
            raising when the same name is registered twice
    """

    def __init__(self, allow_definition_overriding: bool = False):
        self.allow_definition_overriding = allow_definition_overriding
        self._definitions: Dict[str, BeanDefinition] = {}
        self._aliases: Dict[str, str] = {}
        self._merged: Dict[str, BeanDefinition] = {}
        self._definition_lock = threading.RLock()
        self._configuration_frozen = False

    def _ensure_not_frozen(self, action: str) -> None:
        if self._configuration_frozen:
            raise BeanDefinitionStoreError(
                f"Cannot {action}: bean definitions are frozen. "
                f"Definitions may only change while they are loaded and "
                f"while factory hooks run."
            )

    def register_definition(self, definition: BeanDefinition) -> None:
        """Register a definition under its name.

        Raises:
            BeanDefinitionStoreError: When the name is taken and overriding is
                disabled, or when the configuration is frozen
        """
        with self._definition_lock:
            self._ensure_not_frozen(f"register bean definition '{definition.name}'")
            existing = self._definitions.get(definition.name)
            if existing is not None:
                if not self.allow_definition_overriding:
                    raise BeanDefinitionStoreError(
                        f"Bean definition '{definition.name}' is already registered. "
                        f"Enable allow_definition_overriding to replace it."
                    )
                logger.debug("Overriding bean definition for bean '%s'", definition.name)
            if definition.name in self._aliases:
                raise BeanDefinitionStoreError(
                    f"Cannot register bean definition '{definition.name}': "
                    f"the name is already used as an alias"
                )
            self._definitions[definition.name] = definition
            if existing is not None:
                self._reset_definition(definition.name)

    def load_definitions(self, definitions: Iterable[BeanDefinition]) -> None:
        """Batch-register definitions produced by an external loader."""
        for definition in definitions:
            self.register_definition(definition)

    def remove_definition(self, name: str) -> BeanDefinition:
        with self._definition_lock:
            self._ensure_not_frozen(f"remove bean definition '{name}'")
            definition = self._definitions.pop(name, None)
            if definition is None:
                raise NoSuchBeanDefinitionError(
                    f"No bean named '{name}' available", bean_name=name
                )
            self._reset_definition(name)
            return definition

    def _reset_definition(self, name: str) -> None:
        """Drop cached merged definitions for ``name`` and its children."""
        self._merged.pop(name, None)
        for child_name, child in list(self._definitions.items()):
            if child.parent_name == name:
                self._reset_definition(child_name)

    def get_definition(self, name: str) -> BeanDefinition:
        definition = self._definitions.get(self.canonical_name(name))
        if definition is None:
            registered = ", ".join(self._definitions) or "None"
            raise NoSuchBeanDefinitionError(
                f"No bean named '{name}' available.\n"
                f"Registered beans: {registered}",
                bean_name=name
            )
        return definition

    def contains_definition(self, name: str) -> bool:
        return name in self._definitions

    @property
    def definition_names(self) -> List[str]:
        with self._definition_lock:
            return list(self._definitions)

    @property
    def definition_count(self) -> int:
        return len(self._definitions)

    # Aliases

    def register_alias(self, name: str, alias: str) -> None:
        with self._definition_lock:
            self._ensure_not_frozen(f"register alias '{alias}'")
            if alias == name:
                self._aliases.pop(alias, None)
                return
            if alias in self._definitions:
                raise BeanDefinitionStoreError(
                    f"Cannot register alias '{alias}' for bean '{name}': "
                    f"a bean definition with that name exists"
                )
            registered = self._aliases.get(alias)
            if registered is not None and registered != name and not self.allow_definition_overriding:
                raise BeanDefinitionStoreError(
                    f"Cannot register alias '{alias}' for bean '{name}': "
                    f"it is already registered for bean '{registered}'"
                )
            if self.canonical_name(name) == alias:
                raise BeanDefinitionStoreError(
                    f"Cannot register alias '{alias}' for bean '{name}': circular alias"
                )
            self._aliases[alias] = name

    def remove_alias(self, alias: str) -> None:
        with self._definition_lock:
            self._ensure_not_frozen(f"remove alias '{alias}'")
            if self._aliases.pop(alias, None) is None:
                raise BeanDefinitionStoreError(f"No alias '{alias}' registered")

    def get_aliases(self, name: str) -> List[str]:
        canonical = self.canonical_name(name)
        result = [
            alias for alias in self._aliases
            if alias != name and self.canonical_name(alias) == canonical
        ]
        if name != canonical:
            result.append(canonical)
        return result

    def canonical_name(self, name: str) -> str:
        seen = set()
        while name in self._aliases and name not in seen:
            seen.add(name)
            name = self._aliases[name]
        return name

    # Merging

    def get_merged_definition(self, name: str) -> BeanDefinition:
        """Return the definition for ``name`` with its parent chain applied.

        Results are cached until the definition (or an ancestor) changes.
        Once the configuration is frozen, merged definitions are frozen too.
        """
        name = self.canonical_name(name)
        merged = self._merged.get(name)
        if merged is not None:
            return merged
        with self._definition_lock:
            merged = self._merged.get(name)
            if merged is None:
                merged = self._merge(self.get_definition(name), set())
                if self._configuration_frozen:
                    merged.freeze()
                self._merged[name] = merged
            return merged

    def _merge(self, definition: BeanDefinition, seen: set) -> BeanDefinition:
        if definition.parent_name is None:
            return definition.copy()
        if definition.name in seen:
            raise BeanDefinitionStoreError(
                f"Circular parent chain for bean definition '{definition.name}'"
            )
        seen.add(definition.name)
        parent = self._get_parent_definition(definition)
        return definition.merged_with(self._merge(parent, seen))

    def _get_parent_definition(self, definition: BeanDefinition) -> BeanDefinition:
        parent_name = self.canonical_name(definition.parent_name)
        parent = self._definitions.get(parent_name)
        if parent is None or parent_name == definition.name:
            raise BeanDefinitionStoreError(
                f"Could not resolve parent bean definition '{definition.parent_name}' "
                f"for bean '{definition.name}'"
            )
        return parent

    def clear_metadata_cache(self) -> None:
        """Forget merged definitions so that they are rebuilt on next use."""
        with self._definition_lock:
            self._merged.clear()

    # Freeze point

    def freeze_configuration(self) -> None:
        """Make the store and every stored definition read-only."""
        with self._definition_lock:
            self._configuration_frozen = True
            for definition in self._definitions.values():
                definition.freeze()
            for merged in self._merged.values():
                merged.freeze()

    @property
    def is_configuration_frozen(self) -> bool:
        return self._configuration_frozen
