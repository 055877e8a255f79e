"""Tests for name resolution, literal parsing and annotation chain folding."""

import ast
import logging
import textwrap

import pytest

from annotation_parser import (
    ARGUMENT_NAMES,
    CONTRIBUTIONS,
    UNKNOWN_STATE,
    Primitive,
    TransitionMeta,
    literal_to_value,
    parse_annotation_call,
    parse_member,
    read_call_chain,
    resolve_state_name,
)


def decorators_of(source):
    func = ast.parse(textwrap.dedent(source)).body[0]
    return func.decorator_list


# ── name resolution ────────────────────────────────────────────────

@pytest.mark.parametrize('text', ['Green', '"Green"', 'lambda: Green'])
def test_resolves_state_references(expr, text):
    assert resolve_state_name(expr(text)) == 'Green'


@pytest.mark.parametrize('text', ['states.Green', 'make_state()', '"not a name"', 'lambda x: Green', '42'])
def test_unresolvable_reference_is_unknown(expr, text):
    assert resolve_state_name(expr(text)) == UNKNOWN_STATE


def test_missing_reference_is_unknown():
    assert resolve_state_name(None) == 'unknown'


# ── literals ───────────────────────────────────────────────────────

def test_scalar_fields(expr):
    node = expr("{'name': 'log', 'retries': 3, 'enabled': True, 'ratio': -0.5}")
    assert literal_to_value(node) == {'name': 'log', 'retries': 3, 'enabled': True, 'ratio': -0.5}


def test_nested_objects_and_arrays(expr):
    node = expr("{'meta': {'tags': ['a', 'b']}, 'pair': (1, 2)}")
    assert literal_to_value(node) == {'meta': {'tags': ['a', 'b']}, 'pair': [1, 2]}


def test_bare_name_is_captured_as_text(expr):
    assert literal_to_value(expr("{'handler': on_click}")) == {'handler': 'on_click'}


def test_non_literal_fields_are_omitted(expr):
    node = expr("{'name': 'x', 'computed': compute(), 'label': f'{x}', 'nothing': None, **extra}")
    assert literal_to_value(node) == {'name': 'x'}


def test_non_literal_array_items_are_omitted(expr):
    assert literal_to_value(expr("['a', compute(), 2]")) == ['a', 2]


def test_dict_call_form(expr):
    assert literal_to_value(expr("dict(name='log', level=2)")) == {'name': 'log', 'level': 2}


def test_non_literal_top_level_is_none(expr):
    assert literal_to_value(expr('compute()')) is None
    assert literal_to_value(None) is None


# ── primitive lookup ───────────────────────────────────────────────

def test_primitive_from_callee(expr):
    assert Primitive.from_callee(expr('describe')) is Primitive.DESCRIPTION
    assert Primitive.from_callee(expr('sc.transition_to')) is Primitive.TARGET
    assert Primitive.from_callee(expr('transitionTo')) is None
    assert Primitive.from_callee(expr('(lambda: 1)')) is None


def test_every_primitive_has_rules():
    assert set(CONTRIBUTIONS) == set(Primitive)
    assert set(ARGUMENT_NAMES) == set(Primitive)


# ── chains ─────────────────────────────────────────────────────────

def test_described_action_transition(expr):
    meta = parse_annotation_call(expr(
        'describe("go green", action({"name": "log"}, transition_to(Green, fn)))'
    ))
    assert meta == TransitionMeta(target='Green', description='go green', actions=[{'name': 'log'}])
    assert meta.is_transition


@pytest.mark.parametrize('text', [
    'describe("d", guarded({"name": "g"}, transition_to(Target, fn)))',
    'guarded({"name": "g"}, describe("d", transition_to(Target, fn)))',
    'sc.guarded({"name": "g"}, sc.describe("d", sc.transition_to("Target", fn)))',
])
def test_independent_fields_do_not_depend_on_nesting_order(expr, text):
    meta = parse_annotation_call(expr(text))
    assert meta == TransitionMeta(target='Target', description='d', guards=[{'name': 'g'}])


def test_guards_accumulate_outer_to_inner(expr):
    meta = parse_annotation_call(expr(
        'guarded({"name": "isAdmin"}, guarded({"name": "isOwner"}, transition_to(Deleted, fn)))'
    ))
    assert [guard['name'] for guard in meta.guards] == ['isAdmin', 'isOwner']


def test_actions_keep_declaration_order(expr):
    meta = parse_annotation_call(expr(
        'action("first", action({"name": "second", "description": "x"}, transition_to(S, fn)))'
    ))
    assert meta.actions == [{'name': 'first'}, {'name': 'second', 'description': 'x'}]


def test_unknown_callee_returns_none(expr):
    assert parse_annotation_call(expr('wrap(transition_to(Green, fn))')) is None


def test_unknown_nested_call_stops_the_chain(expr):
    meta = parse_annotation_call(expr('describe("x", wrap(transition_to(Green, fn)))'))
    assert meta.description == 'x'
    assert meta.target is None
    assert not meta.is_transition


def test_target_declaration_is_innermost(expr):
    links = read_call_chain(expr('transition_to(Green, describe("x", transition_to(Red, fn)))'))
    assert [link.kind for link in links] == [Primitive.TARGET]
    meta = parse_annotation_call(expr('transition_to(Green, describe("x", transition_to(Red, fn)))'))
    assert meta == TransitionMeta(target='Green')


def test_keyword_arguments(expr):
    meta = parse_annotation_call(expr('describe(text="hi", transition=transition_to(target=Green))'))
    assert meta == TransitionMeta(target='Green', description='hi')


def test_description_must_be_a_literal(expr):
    meta = parse_annotation_call(expr('describe(f"{x}", transition_to(G, fn))'))
    assert meta.description is None
    assert meta.target == 'G'


@pytest.mark.parametrize('guard', ['compute()', '{"description": "no name"}', '{}', '42'])
def test_malformed_guard_is_treated_as_absent(expr, guard):
    meta = parse_annotation_call(expr(f'guarded({guard}, transition_to(X, fn))'))
    assert meta.guards == []
    assert meta.target == 'X'


def test_guard_string_shorthand(expr):
    meta = parse_annotation_call(expr('guarded("isAdmin", transition_to(X, fn))'))
    assert meta.guards == [{'name': 'isAdmin'}]


# ── invoked services ───────────────────────────────────────────────

def test_invoke_descriptor(expr):
    meta = parse_annotation_call(expr(
        "invoke({'src': 'fetchData', 'onDone': Success, 'onError': 'Failure', 'description': 'd'}, fn)"
    ))
    assert meta.invoke == {'src': 'fetchData', 'onDone': 'Success', 'onError': 'Failure', 'description': 'd'}
    assert meta.target is None
    assert meta.is_transition


def test_invoke_descriptor_snake_case_and_deferred_references(expr):
    meta = parse_annotation_call(expr(
        "invoke(dict(src='load', on_done=lambda: Loaded, on_error=Broken), fn)"
    ))
    assert meta.invoke == {'src': 'load', 'onDone': 'Loaded', 'onError': 'Broken'}


def test_invoke_with_missing_fields(expr):
    meta = parse_annotation_call(expr("invoke({'description': 'only text'}, fn)"))
    assert meta.invoke == {'src': 'unknown', 'onDone': 'unknown', 'onError': 'unknown',
                           'description': 'only text'}


def test_empty_invoke_descriptor_is_absent(expr):
    meta = parse_annotation_call(expr('invoke({}, fn)'))
    assert meta.invoke is None
    assert not meta.is_transition


def test_invoke_wrapping_a_target_keeps_both(expr):
    meta = parse_annotation_call(expr(
        "describe('save', invoke({'src': 'save', 'onDone': Done, 'onError': Failed}, transition_to(Saving, fn)))"
    ))
    assert meta.target == 'Saving'
    assert meta.invoke['src'] == 'save'
    assert meta.description == 'save'


# ── decorator stacks ───────────────────────────────────────────────

def test_decorator_stack():
    decorators = decorators_of('''
        @describe('d')
        @property
        @guarded({'name': 'a'})
        @sc.transition_to(Green)
        def go(self):
            return Green()
    ''')
    meta = parse_member(None, decorators)
    assert meta == TransitionMeta(target='Green', description='d', guards=[{'name': 'a'}])


def test_method_without_primitive_decorators():
    decorators = decorators_of('''
        @functools.lru_cache()
        def helper(self):
            return 1
    ''')
    assert parse_member(None, decorators) is None
    assert parse_member(None, []) is None


def test_redundant_invoke_keeps_innermost(caplog):
    decorators = decorators_of('''
        @invoke({'src': 'outer', 'onDone': A, 'onError': B})
        @invoke({'src': 'inner', 'onDone': C, 'onError': D})
        def run(self):
            pass
    ''')
    with caplog.at_level(logging.WARNING):
        meta = parse_member(None, decorators)
    assert meta.invoke['src'] == 'inner'
    assert 'Only one invoked service' in caplog.text


def test_conflicting_targets_are_reported(caplog):
    decorators = decorators_of('''
        @transition_to(Outer)
        @transition_to(Inner)
        def go(self):
            pass
    ''')
    with caplog.at_level(logging.WARNING):
        meta = parse_member(None, decorators)
    assert meta.target == 'Inner'
    assert 'Conflicting transition targets' in caplog.text
