"""
Chart structure validation

Checks an extracted chart against the structure Stately/XState expects and
reports dangling state references (for example a target class that was not
requested, or an "unknown" reference the extractor could not resolve).
"""

from typing import Any, Dict, List, Set


def _check_states(states: Dict[str, Any], known: Set[str], where: str, errors: List[str]):
    for name, node in states.items():
        if not isinstance(node, dict) or not isinstance(node.get('on'), dict):
            errors.append(f"{where}.{name}: state node must have an 'on' object")
            continue

        for event, spec in node['on'].items():
            target = spec.get('target') if isinstance(spec, dict) else None
            if target not in known:
                errors.append(f"{where}.{name}.on.{event}: target '{target}' is not a state of this chart")

        for service in node.get('invoke', []):
            for outcome in ('onDone', 'onError'):
                target = service.get(outcome, {}).get('target')
                if target not in known:
                    errors.append(
                        f"{where}.{name}.invoke[{service.get('src')}].{outcome}: "
                        f"target '{target}' is not a state of this chart"
                    )

        children = node.get('states')
        if children is not None:
            if node.get('initial') not in children:
                errors.append(f"{where}.{name}: initial child '{node.get('initial')}' is not one of its states")
            _check_states(children, known, f"{where}.{name}.states", errors)


def _state_names(states: Dict[str, Any]) -> Set[str]:
    names = set()
    for name, node in states.items():
        names.add(name)
        if isinstance(node, dict) and isinstance(node.get('states'), dict):
            names |= _state_names(node['states'])
    return names


def validate_chart(chart: Dict[str, Any]) -> List[str]:
    """
    Validate a chart document

    Args:
        chart: Chart produced by the extractor

    Returns:
        List of problems; empty when the chart is valid
    """
    errors: List[str] = []
    if not chart.get('id'):
        errors.append("chart: missing 'id'")
    states = chart.get('states')
    if not isinstance(states, dict):
        errors.append("chart: missing 'states'")
        return errors

    if chart.get('type') == 'parallel':
        for region_name, region in states.items():
            where = f"states.{region_name}"
            if not isinstance(region, dict) or not isinstance(region.get('states'), dict):
                errors.append(f"{where}: parallel region must have 'states'")
                continue
            if region.get('initial') not in region['states']:
                errors.append(f"{where}: initial state '{region.get('initial')}' is not one of its states")
            # Regions are independent: targets must stay inside their region
            _check_states(region['states'], _state_names(region['states']), f"{where}.states", errors)
        return errors

    if chart.get('initial') not in states:
        errors.append(f"chart: initial state '{chart.get('initial')}' is not one of its states")
    _check_states(states, _state_names(states), 'states', errors)
    return errors
