"""
Annotation Chain Parser

Recovers transition metadata from annotation primitive call sites without
executing them. A transition member such as

    next = describe("Go green", action({"name": "log"}, transition_to(Green, fn)))

is read as a chain of wrapper links (describe -> action -> transition_to).
Each link contributes a partial TransitionMeta and the chain is folded from
the innermost link outwards.
"""

import ast
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Placed in the chart wherever a state reference cannot be resolved
UNKNOWN_STATE = 'unknown'

# Returned by _literal for nodes that are not literal values
_UNPARSED = object()


class Primitive(Enum):
    """The five recognized annotation primitives, keyed by callee name"""
    TARGET = 'transition_to'
    DESCRIPTION = 'describe'
    GUARD = 'guarded'
    INVOKE = 'invoke'
    ACTION = 'action'

    @classmethod
    def from_callee(cls, func: ast.expr) -> Optional['Primitive']:
        """Map ``name(...)`` / ``module.name(...)`` to a primitive, or None"""
        if isinstance(func, ast.Name):
            name = func.id
        elif isinstance(func, ast.Attribute):
            name = func.attr
        else:
            return None
        try:
            return cls(name)
        except ValueError:
            return None


# Keyword spelling of (metadata argument, nested argument) per primitive
ARGUMENT_NAMES = {
    Primitive.TARGET: ('target', 'implementation'),
    Primitive.DESCRIPTION: ('text', 'transition'),
    Primitive.GUARD: ('guard', 'transition'),
    Primitive.INVOKE: ('service', 'implementation'),
    Primitive.ACTION: ('action', 'transition'),
}


@dataclass
class TransitionMeta:
    """Metadata recovered from one transition member"""
    target: Optional[str] = None
    description: Optional[str] = None
    guards: List[Dict[str, Any]] = field(default_factory=list)
    actions: List[Dict[str, Any]] = field(default_factory=list)
    invoke: Optional[Dict[str, Any]] = None

    @property
    def is_transition(self) -> bool:
        """Records with neither target nor invoke are not transitions"""
        return self.target is not None or self.invoke is not None

    def merged_over(self, inner: 'TransitionMeta') -> 'TransitionMeta':
        """
        Combine this (outer) record with an inner one

        Scalars already set by the inner record are kept; guards and
        actions are concatenated outer first.
        """
        if inner.target is not None and self.target is not None and self.target != inner.target:
            logging.warning(
                f"Conflicting transition targets '{self.target}' and '{inner.target}'; "
                f"keeping '{inner.target}'"
            )
        if inner.invoke is not None and self.invoke is not None:
            logging.warning(
                f"Only one invoked service per transition is supported; "
                f"ignoring '{self.invoke.get('src')}' in favor of '{inner.invoke.get('src')}'"
            )
        return TransitionMeta(
            target=inner.target if inner.target is not None else self.target,
            description=inner.description if inner.description is not None else self.description,
            guards=self.guards + inner.guards,
            actions=self.actions + inner.actions,
            invoke=inner.invoke if inner.invoke is not None else self.invoke,
        )


@dataclass
class AnnotationLink:
    """One primitive in a chain and the node holding its metadata argument"""
    kind: Primitive
    argument: Optional[ast.expr] = None


# =============================================================================
# Name resolution
# =============================================================================

def resolve_state_name(node: Optional[ast.expr]) -> str:
    """
    Resolve a state reference to the referenced class name

    Accepts ``Green``, the forward reference ``"Green"`` and the deferred
    reference ``lambda: Green``. Anything else resolves to "unknown".
    """
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Constant) and isinstance(node.value, str) and node.value.isidentifier():
        return node.value
    if isinstance(node, ast.Lambda) and isinstance(node.body, ast.Name):
        args = node.args
        if not (args.args or args.posonlyargs or args.kwonlyargs or args.vararg or args.kwarg):
            return node.body.id
    return UNKNOWN_STATE


# =============================================================================
# Literal values
# =============================================================================

def _literal(node: ast.expr) -> Any:
    if isinstance(node, ast.Constant):
        # bool is an int subclass, so this covers booleans too
        if isinstance(node.value, (str, int, float)):
            return node.value
        return _UNPARSED

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.USub):
        operand = _literal(node.operand)
        if isinstance(operand, (int, float)) and not isinstance(operand, bool):
            return -operand
        return _UNPARSED

    if isinstance(node, ast.Name):
        return node.id

    if isinstance(node, ast.Dict):
        obj = {}
        for key, value in zip(node.keys, node.values):
            # key is None for **mapping entries
            if not (isinstance(key, ast.Constant) and isinstance(key.value, str)):
                continue
            parsed = _literal(value)
            if parsed is not _UNPARSED:
                obj[key.value] = parsed
        return obj

    if (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
            and node.func.id == 'dict' and not node.args):
        obj = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                continue
            parsed = _literal(keyword.value)
            if parsed is not _UNPARSED:
                obj[keyword.arg] = parsed
        return obj

    if isinstance(node, (ast.List, ast.Tuple)):
        items = [_literal(elt) for elt in node.elts]
        return [item for item in items if item is not _UNPARSED]

    return _UNPARSED


def literal_to_value(node: Optional[ast.expr]) -> Any:
    """
    Convert a literal syntax node into a plain Python value

    Fields holding anything that is not a literal are omitted from the
    result. Returns None when the node itself is not a literal.
    """
    if node is None:
        return None
    value = _literal(node)
    return None if value is _UNPARSED else value


# =============================================================================
# Chain reading
# =============================================================================

def _argument(call: ast.Call, position: int, keyword: str) -> Optional[ast.expr]:
    if len(call.args) > position and not isinstance(call.args[position], ast.Starred):
        return call.args[position]
    for kw in call.keywords:
        if kw.arg == keyword:
            return kw.value
    return None


def read_call_chain(call: ast.Call) -> List[AnnotationLink]:
    """
    Walk nested primitive calls from the outermost inwards

    The walk stops at the target declaration (its second argument is the
    implementation), at a nested argument that is not a call, or at a call
    to anything other than a primitive. Links read so far are kept.
    """
    links = []
    node: Optional[ast.expr] = call
    while isinstance(node, ast.Call):
        kind = Primitive.from_callee(node.func)
        if kind is None:
            break
        meta_name, nested_name = ARGUMENT_NAMES[kind]
        links.append(AnnotationLink(kind=kind, argument=_argument(node, 0, meta_name)))
        if kind is Primitive.TARGET:
            break
        node = _argument(node, 1, nested_name)
    return links


def read_decorator_chain(decorators: List[ast.expr]) -> List[AnnotationLink]:
    """Build a chain from a decorator stack, top decorator first"""
    links = []
    for decorator in decorators:
        if not isinstance(decorator, ast.Call):
            continue
        kind = Primitive.from_callee(decorator.func)
        if kind is None:
            continue
        meta_name, _ = ARGUMENT_NAMES[kind]
        links.append(AnnotationLink(kind=kind, argument=_argument(decorator, 0, meta_name)))
    return links


# =============================================================================
# Per-primitive contributions
# =============================================================================

def _named_entry(node: Optional[ast.expr]) -> Optional[Dict[str, Any]]:
    # Guards and actions: {"name": ..., "description": ...} or "name" shorthand
    value = literal_to_value(node)
    if isinstance(value, str) and isinstance(node, ast.Constant):
        return {'name': value}
    if isinstance(value, dict) and isinstance(value.get('name'), str):
        return value
    return None


def _target_part(node: Optional[ast.expr]) -> TransitionMeta:
    return TransitionMeta(target=resolve_state_name(node))


def _description_part(node: Optional[ast.expr]) -> TransitionMeta:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return TransitionMeta(description=node.value)
    return TransitionMeta()


def _guard_part(node: Optional[ast.expr]) -> TransitionMeta:
    entry = _named_entry(node)
    return TransitionMeta(guards=[entry] if entry else [])


def _action_part(node: Optional[ast.expr]) -> TransitionMeta:
    entry = _named_entry(node)
    return TransitionMeta(actions=[entry] if entry else [])


def _service_field(node: ast.expr, *names: str) -> Optional[ast.expr]:
    """Raw value node of a descriptor field, from {...} or dict(...)"""
    if isinstance(node, ast.Dict):
        pairs = [(key.value, value) for key, value in zip(node.keys, node.values)
                 if isinstance(key, ast.Constant)]
    elif isinstance(node, ast.Call):
        pairs = [(kw.arg, kw.value) for kw in node.keywords if kw.arg]
    else:
        return None
    for key, value in pairs:
        if key in names:
            return value
    return None


def _invoke_part(node: Optional[ast.expr]) -> TransitionMeta:
    descriptor = literal_to_value(node)
    if not isinstance(descriptor, dict) or not descriptor:
        return TransitionMeta()

    # onDone/onError name state classes; resolve them from the raw nodes
    src = descriptor.get('src')
    service = {
        'src': src if isinstance(src, str) else UNKNOWN_STATE,
        'onDone': resolve_state_name(_service_field(node, 'onDone', 'on_done')),
        'onError': resolve_state_name(_service_field(node, 'onError', 'on_error')),
    }
    if isinstance(descriptor.get('description'), str):
        service['description'] = descriptor['description']
    return TransitionMeta(invoke=service)


CONTRIBUTIONS = {
    Primitive.TARGET: _target_part,
    Primitive.DESCRIPTION: _description_part,
    Primitive.GUARD: _guard_part,
    Primitive.INVOKE: _invoke_part,
    Primitive.ACTION: _action_part,
}


def fold_chain(links: List[AnnotationLink]) -> Optional[TransitionMeta]:
    """Fold links innermost first; None for an empty chain"""
    if not links:
        return None
    meta = TransitionMeta()
    for link in reversed(links):
        meta = CONTRIBUTIONS[link.kind](link.argument).merged_over(meta)
    return meta


def parse_annotation_call(call: ast.Call) -> Optional[TransitionMeta]:
    """
    Parse a primitive call expression into transition metadata

    Returns:
        TransitionMeta, or None if the callee is not a primitive
    """
    return fold_chain(read_call_chain(call))


def parse_member(call: Optional[ast.Call], decorators: Optional[List[ast.expr]] = None) -> Optional[TransitionMeta]:
    """Parse whichever annotation form a member carries"""
    if call is not None:
        return parse_annotation_call(call)
    if decorators:
        return fold_chain(read_decorator_chain(decorators))
    return None
