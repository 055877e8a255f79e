#!/usr/bin/env python3
"""
Statechart Extractor

Builds XState/Stately-compatible statechart documents from annotated state
classes. Source files are analysed statically; no user code is imported or
executed.

Supported topologies:
- flat: {id, initial, states}
- hierarchical: the initial state additionally carries {initial, states}
  built from the machine's child configuration (one level deep)
- parallel: {id, type: "parallel", states: {region: {initial, states}}}
"""

import ast
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from annotation_parser import TransitionMeta, parse_member
from machine_config import MachineConfig
from source_index import SourceFile, SourceIndex


class SourceNotFoundError(ValueError):
    """A machine's input file is not part of the resolution context"""

    def __init__(self, message: str, machine_id: Optional[str] = None):
        super().__init__(message)
        self.machine_id = machine_id


@dataclass
class ExtractionReport:
    """Outcome of a multi-machine run; charts holds successes only"""
    charts: List[Dict[str, Any]] = field(default_factory=list)
    machines: List[MachineConfig] = field(default_factory=list)  # config of each chart, same order
    failures: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.charts)

    @property
    def failed(self) -> int:
        return len(self.failures)


def _transition_spec(meta: TransitionMeta) -> Dict[str, Any]:
    """Render metadata as an `on` entry: {target, description?, cond?, actions?}"""
    spec: Dict[str, Any] = {'target': meta.target}
    if meta.description is not None:
        spec['description'] = meta.description
    if meta.guards:
        # Stately/XState express guards through `cond`; stacked guards AND together
        spec['cond'] = ' && '.join(guard['name'] for guard in meta.guards)
    if meta.actions:
        spec['actions'] = [entry['name'] for entry in meta.actions]
    return spec


def _invoke_spec(service: Dict[str, Any]) -> Dict[str, Any]:
    spec = {
        'src': service['src'],
        'onDone': {'target': service['onDone']},
        'onError': {'target': service['onError']},
    }
    if service.get('description') is not None:
        spec['description'] = service['description']
    return spec


class StatechartExtractor:
    """
    Extracts statechart documents from one shared resolution context

    The index is only read, so one extractor can serve any number of
    machines in a run.
    """

    def __init__(self, index: SourceIndex):
        self.index = index

    def build_state_node(self, class_def: ast.ClassDef) -> Dict[str, Any]:
        """
        Build the chart node of one state class

        Members without annotation metadata are ordinary behaviour and are
        left out. A member carrying both an invoked service and a target
        yields an invoke entry and an `on` transition.

        Args:
            class_def: Class declaration of the state

        Returns:
            {"on": {...}} plus "invoke": [...] when services are declared
        """
        node: Dict[str, Any] = {'on': {}}
        invokes = []

        for member in self.index.instance_members(class_def):
            meta = parse_member(member.call, member.decorators)
            if meta is None or not meta.is_transition:
                continue

            if meta.invoke is not None:
                invokes.append(_invoke_spec(meta.invoke))

            if meta.target is not None:
                node['on'][member.name] = _transition_spec(meta)

        if invokes:
            node['invoke'] = invokes
        return node

    def _build_states(self, source: SourceFile, class_names: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Build nodes for the requested classes, skipping those not declared"""
        states = {}
        for class_name in class_names:
            class_def = source.classes.get(class_name)
            if class_def is None:
                logging.warning(f"Class '{class_name}' not found in '{source.path}'. Skipping.")
                continue
            states[class_name] = self.build_state_node(class_def)
        return states

    def _source_for(self, config: MachineConfig) -> SourceFile:
        source = self.index.get_source(config.input)
        if source is None:
            raise SourceNotFoundError(
                f"Machine '{config.id}': source file not found: '{config.input}'", config.id
            )
        return source

    def extract_machine(self, config: MachineConfig) -> Dict[str, Any]:
        """
        Extract one machine

        Args:
            config: Machine configuration

        Returns:
            Chart document (flat, hierarchical or parallel)

        Raises:
            ConfigurationError: neither or both topologies configured
            SourceNotFoundError: the input file is not in the index
        """
        config.validate()
        source = self._source_for(config)

        logging.info(f"Analyzing machine '{config.id}' from {source.path}")

        if config.is_parallel:
            return self._extract_parallel(config, source)
        return self._extract_flat(config, source)

    def _extract_flat(self, config: MachineConfig, source: SourceFile) -> Dict[str, Any]:
        chart: Dict[str, Any] = {'id': config.id, 'initial': config.initial_state}
        if config.description is not None:
            chart['description'] = config.description

        states = self._build_states(source, config.classes)

        # Nesting is introduced only here: the initial state, one level deep
        parent = states.get(config.initial_state)
        if config.children is not None:
            if parent is None:
                logging.warning(
                    f"Machine '{config.id}': child states configured but initial state "
                    f"'{config.initial_state}' was not extracted. Skipping children."
                )
            else:
                parent['initial'] = config.children.initial_state
                parent['states'] = self._build_states(source, config.children.classes)

        chart['states'] = states
        return chart

    def _extract_parallel(self, config: MachineConfig, source: SourceFile) -> Dict[str, Any]:
        chart: Dict[str, Any] = {'id': config.id, 'type': 'parallel'}
        if config.description is not None:
            chart['description'] = config.description

        # Regions are independent sub-charts; nothing is shared between them
        regions = {}
        for region in config.parallel:
            regions[region.name] = {
                'initial': region.initial_state,
                'states': self._build_states(source, region.classes),
            }
        chart['states'] = regions
        return chart

    def extract_machines(self, configs: Iterable[MachineConfig]) -> ExtractionReport:
        """
        Extract several machines, isolating failures per machine

        Returns:
            ExtractionReport with the successful charts and the failures
        """
        report = ExtractionReport()
        for config in configs:
            try:
                chart = self.extract_machine(config)
            except Exception as e:  # one failing machine must not abort its siblings
                logging.error(f"Failed to extract machine '{config.id}': {e}")
                report.failures.append((config.id, e))
                continue
            report.charts.append(chart)
            report.machines.append(config)

        logging.info(f"Extraction finished: {report.succeeded} succeeded, {report.failed} failed")
        return report


def extract_machine(config: MachineConfig, index: SourceIndex) -> Dict[str, Any]:
    """Extract one machine from the given resolution context"""
    return StatechartExtractor(index).extract_machine(config)


def extract_machines(configs: Iterable[MachineConfig], index: SourceIndex) -> ExtractionReport:
    """Extract several machines from the given resolution context"""
    return StatechartExtractor(index).extract_machines(configs)


if __name__ == '__main__':
    import json
    import sys

    if len(sys.argv) < 4:
        print("Usage: python statechart_extractor.py <source.py> <id> <InitialClass> [<Class> ...]")
        sys.exit(1)

    index = SourceIndex()
    index.add_file(sys.argv[1])
    machine = MachineConfig(input=sys.argv[1], id=sys.argv[2],
                            initial_state=sys.argv[3], classes=sys.argv[3:])
    print(json.dumps(extract_machine(machine, index), indent=2))
