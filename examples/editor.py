"""Text editor with independent formatting regions (parallel states)."""

from statechart_primitives import describe, transition_to


class NormalWeight:
    toggle_bold = describe('Make the selection bold', transition_to('BoldWeight', lambda self: BoldWeight()))


class BoldWeight:
    toggle_bold = describe('Remove bold', transition_to(NormalWeight, lambda self: NormalWeight()))


class NoDecoration:
    toggle_underline = transition_to('Underlined', lambda self: Underlined())


class Underlined:
    toggle_underline = transition_to(NoDecoration, lambda self: NoDecoration())
