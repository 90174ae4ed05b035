"""
Instantiation

This module provides the capability interface the bean factory uses to
construct objects and set their properties. The orchestration code never
touches reflection directly; it asks an InstantiationStrategy:

- which parameters (and type hints) a constructor expects
- to call a constructor with resolved arguments
- whether a property can be set, and to set it

Type hints are resolved with ``typing.get_type_hints()``. Forward references
that cannot be resolved that way are evaluated in the defining module's
namespace, with PEP 604 unions rewritten to ``Union[...]`` first.
"""

import ast
import inspect
import types
import typing
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from .exceptions import UnsatisfiedDependencyError

_UNION_TYPES = tuple(t for t in (Union, getattr(types, 'UnionType', None)) if t is not None)


class ConstructorParameter(NamedTuple):
    """One injectable constructor parameter."""
    name: str
    type: Any
    has_default: bool
    default: Any


class InstantiationStrategy:
    """Default reflection-based strategy.

    Subclass to customize how beans are constructed (e.g. to go through an
    object pool) or how properties are applied.
    """

    def instantiate(self, constructor: Callable[..., Any], args: Sequence[Any],
                    kwargs: Dict[str, Any], bean_name: str) -> Any:
        return constructor(*args, **kwargs)

    def can_set_property(self, bean: Any, name: str) -> bool:
        attr = inspect.getattr_static(type(bean), name, None)
        if isinstance(attr, property):
            return attr.fset is not None
        if hasattr(bean, '__dict__'):
            return True
        slots = set()
        for klass in type(bean).__mro__:
            slots.update(getattr(klass, '__slots__', ()))
        return name in slots

    def set_property(self, bean: Any, name: str, value: Any, bean_name: str) -> None:
        if not self.can_set_property(bean, name):
            raise UnsatisfiedDependencyError(
                bean_name,
                f"Invalid property '{name}' of bean class [{type(bean).__name__}]: "
                f"the property is read-only or does not exist"
            )
        setattr(bean, name, value)

    def constructor_parameters(self, constructor: Callable[..., Any],
                               bean_name: str) -> List[ConstructorParameter]:
        """Return the injectable parameters of ``constructor``.

        ``self``, ``*args`` and ``**kwargs`` are skipped.

        Raises:
            UnsatisfiedDependencyError: When the signature cannot be inspected or
                a parameter without default has no type hint
        """
        target = constructor.__init__ if isinstance(constructor, type) else constructor
        label = getattr(constructor, '__qualname__', repr(constructor))
        try:
            sig = inspect.signature(target)
        except (ValueError, TypeError) as e:
            raise UnsatisfiedDependencyError(
                bean_name,
                f"Cannot inspect the signature of {label}: {e}. "
                f"This may occur with built-in types or C extension classes."
            ) from e

        resolved_hints = _resolve_type_hints(target)

        parameters = []
        for param_name, param in sig.parameters.items():
            if param_name == 'self' and isinstance(constructor, type):
                continue
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            has_default = param.default is not inspect.Parameter.empty
            if param.annotation is inspect.Parameter.empty:
                if has_default:
                    parameters.append(ConstructorParameter(param_name, None, True, param.default))
                    continue
                raise UnsatisfiedDependencyError(
                    bean_name,
                    f"Missing type hint for parameter '{param_name}' of {label}. "
                    f"Autowiring requires type hints for all parameters without defaults."
                )

            param_type = resolved_hints.get(param_name, param.annotation)
            if isinstance(param_type, str):
                param_type = _resolve_string_annotation(target, param_name, param_type, bean_name)
            parameters.append(
                ConstructorParameter(param_name, param_type, has_default,
                                     param.default if has_default else None)
            )
        return parameters

    def predict_return_type(self, factory: Callable[..., Any]) -> Optional[type]:
        """Return the annotated return type of a factory callable, if it is a class."""
        if isinstance(factory, type):
            return factory
        hint = _resolve_type_hints(factory).get('return')
        return hint if isinstance(hint, type) else None


def unwrap_optional(param_type: Any) -> Optional[Any]:
    """Return ``X`` for ``Optional[X]``, or None when the type is not optional."""
    if typing.get_origin(param_type) in _UNION_TYPES:
        args = [a for a in typing.get_args(param_type) if a is not type(None)]
        if len(args) == 1 and len(typing.get_args(param_type)) == 2:
            return args[0]
    return None


def _resolve_type_hints(target: Any) -> Dict[str, Any]:
    """Resolve hints with ``typing.get_type_hints()``; empty dict when that fails."""
    try:
        return typing.get_type_hints(target)
    except NameError:
        # Type not found in scope - common with local classes
        return {}
    except RecursionError:
        return {}
    except TypeError:
        # PEP 604 | operator used with a type that doesn't support it
        return {}
    except Exception:
        return {}


def _resolve_string_annotation(target: Any, param_name: str, annotation: str,
                               bean_name: str) -> Any:
    module = inspect.getmodule(target)
    namespace: Dict[str, Any] = {}
    if module is not None:
        namespace.update(vars(module))
    namespace.setdefault('Union', Union)
    namespace.setdefault('Optional', Optional)

    try:
        return eval(_convert_union_syntax(annotation), namespace)
    except NameError:
        raise UnsatisfiedDependencyError(
            bean_name,
            f"Cannot resolve forward reference '{annotation}' for parameter "
            f"'{param_name}'. Hint: Ensure '{annotation}' is defined and "
            f"imported before the bean is created."
        )
    except Exception as e:
        raise UnsatisfiedDependencyError(
            bean_name,
            f"Invalid forward reference '{annotation}' for parameter '{param_name}': {e}"
        ) from e


def _convert_union_syntax(annotation: str) -> str:
    """Rewrite ``X | Y`` to ``Union[X, Y]`` so that any type can be evaluated."""
    if '|' not in annotation:
        return annotation
    try:
        tree = ast.parse(annotation, mode='eval')
    except SyntaxError:
        return annotation

    def collect(node: ast.AST, found: List[ast.AST]) -> List[ast.AST]:
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            collect(node.left, found)
            collect(node.right, found)
        else:
            found.append(node)
        return found

    class UnionTransformer(ast.NodeTransformer):
        def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
            if isinstance(node.op, ast.BitOr):
                elements = [self.visit(t) for t in collect(node, [])]
                return ast.Subscript(
                    value=ast.Name(id='Union', ctx=ast.Load()),
                    slice=ast.Tuple(elts=elements, ctx=ast.Load()),
                    ctx=ast.Load()
                )
            self.generic_visit(node)
            return node

    new_tree = ast.fix_missing_locations(UnionTransformer().visit(tree))
    return ast.unparse(new_tree.body)
