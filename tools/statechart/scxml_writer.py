"""
SCXML Writer

Serializes extracted chart documents as W3C SCXML so they can be loaded by
SCXML tooling. Mapping:

- chart id           -> <scxml name>, initial state -> <scxml initial>
- parallel chart     -> <parallel id> holding one <state> per region
- on[event]          -> <transition event target [cond]> with <log label> per action
- invoke[]           -> <invoke id src> plus done.invoke / error.platform transitions
- descriptions       -> XML comments
"""

from typing import Any, Dict, Optional

from lxml import etree

# W3C SCXML namespace
SCXML_NAMESPACE = 'http://www.w3.org/2005/07/scxml'


def _tag(name: str) -> str:
    return f'{{{SCXML_NAMESPACE}}}{name}'


def _comment(parent, text: Optional[str]):
    if text:
        # '--' is not allowed inside XML comments
        parent.append(etree.Comment(' ' + ' '.join(text.split()).replace('--', '- -') + ' '))


def _append_state(parent, name: str, node: Dict[str, Any]):
    state = etree.SubElement(parent, _tag('state'), id=name)
    if node.get('initial'):
        state.set('initial', node['initial'])

    for event, spec in node.get('on', {}).items():
        _comment(state, spec.get('description'))
        transition = etree.SubElement(state, _tag('transition'), event=event, target=spec['target'])
        if spec.get('cond'):
            transition.set('cond', spec['cond'])
        for action_name in spec.get('actions', []):
            etree.SubElement(transition, _tag('log'), label=action_name)

    for service in node.get('invoke', []):
        _comment(state, service.get('description'))
        etree.SubElement(state, _tag('invoke'), id=service['src'], src=service['src'])
        etree.SubElement(state, _tag('transition'),
                         event=f"done.invoke.{service['src']}",
                         target=service['onDone']['target'])
        etree.SubElement(state, _tag('transition'),
                         event=f"error.platform.{service['src']}",
                         target=service['onError']['target'])

    # W3C SCXML 3.3: compound state children follow its transitions
    for child_name, child in node.get('states', {}).items():
        _append_state(state, child_name, child)
    return state


def build_scxml_tree(chart: Dict[str, Any]):
    """Build the <scxml> element for a chart document"""
    root = etree.Element(_tag('scxml'), nsmap={None: SCXML_NAMESPACE}, version='1.0', name=chart['id'])
    _comment(root, chart.get('description'))

    if chart.get('type') == 'parallel':
        root.set('initial', chart['id'])
        parallel = etree.SubElement(root, _tag('parallel'), id=chart['id'])
        for region_name, region in chart['states'].items():
            region_state = etree.SubElement(parallel, _tag('state'), id=region_name)
            if region.get('initial'):
                region_state.set('initial', region['initial'])
            for name, node in region.get('states', {}).items():
                _append_state(region_state, name, node)
    else:
        if chart.get('initial'):
            root.set('initial', chart['initial'])
        for name, node in chart.get('states', {}).items():
            _append_state(root, name, node)

    return root


def chart_to_scxml(chart: Dict[str, Any]) -> str:
    """Serialize a chart document as an SCXML string"""
    root = build_scxml_tree(chart)
    return etree.tostring(root, encoding='unicode', pretty_print=True)
