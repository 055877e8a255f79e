"""
Machine Extraction Configuration

Describes which state classes to extract and how to arrange them:

    {
      "machines": [
        {"input": "examples/traffic_light.py", "id": "trafficLight",
         "initialState": "RedLight", "classes": ["RedLight", "GreenLight"],
         "output": "statecharts/trafficLight.json"},
        {"input": "examples/editor.py", "id": "editor",
         "parallel": {"regions": [{"name": "fontWeight", "initialState": "Normal",
                                   "classes": ["Normal", "Bold"]}]}}
      ],
      "sources": ["examples/**/*.py"],
      "format": "json",
      "validate": true,
      "verbose": false
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

OUTPUT_FORMATS = ('json', 'mermaid', 'scxml', 'both')


class ConfigurationError(ValueError):
    """A machine configuration is malformed; fatal for that machine only"""

    def __init__(self, message: str, machine_id: Optional[str] = None):
        super().__init__(message)
        self.machine_id = machine_id


def _get(data: Dict[str, Any], camel: str, snake: Optional[str] = None, default=None):
    """Read a camelCase key, falling back to its snake_case alias"""
    if camel in data:
        return data[camel]
    if snake is not None and snake in data:
        return data[snake]
    return default


def _string_list(value: Any, what: str, machine_id: Optional[str]) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"Machine '{machine_id}': '{what}' must be a list of class names", machine_id)
    return list(value)


@dataclass
class RegionConfig:
    """One orthogonal region of a parallel machine"""
    name: str
    initial_state: str
    classes: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], machine_id: Optional[str] = None) -> 'RegionConfig':
        if not isinstance(data, dict):
            raise ConfigurationError(f"Machine '{machine_id}': each parallel region must be an object", machine_id)
        name = data.get('name')
        initial = _get(data, 'initialState', 'initial_state')
        if not name or not initial:
            raise ConfigurationError(
                f"Machine '{machine_id}': parallel region requires 'name' and 'initialState'", machine_id
            )
        return cls(
            name=name,
            initial_state=initial,
            classes=_string_list(data.get('classes'), f"regions[{name}].classes", machine_id),
        )


@dataclass
class ChildrenConfig:
    """Child states nested under the machine's initial state"""
    initial_state: str
    classes: List[str] = field(default_factory=list)
    context_property: Optional[str] = None  # informational; the extractor never reads context

    @classmethod
    def from_dict(cls, data: Dict[str, Any], machine_id: Optional[str] = None) -> 'ChildrenConfig':
        if not isinstance(data, dict):
            raise ConfigurationError(f"Machine '{machine_id}': 'children' must be an object", machine_id)
        initial = _get(data, 'initialState', 'initial_state')
        if not initial:
            raise ConfigurationError(f"Machine '{machine_id}': 'children' requires 'initialState'", machine_id)
        return cls(
            initial_state=initial,
            classes=_string_list(data.get('classes'), 'children.classes', machine_id),
            context_property=_get(data, 'contextProperty', 'context_property'),
        )


@dataclass
class MachineConfig:
    """Extraction request for one machine"""
    input: str
    id: str
    description: Optional[str] = None
    initial_state: Optional[str] = None
    classes: Optional[List[str]] = None
    parallel: Optional[List[RegionConfig]] = None
    children: Optional[ChildrenConfig] = None
    output: Optional[str] = None
    error: Optional[ConfigurationError] = None  # shape error found while loading, raised by validate()

    @property
    def is_parallel(self) -> bool:
        return self.parallel is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MachineConfig':
        """
        Build a machine configuration from its JSON shape

        Only the field types are checked here; the topology rules are
        enforced by validate() when the machine is extracted.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Each machine configuration must be an object")
        machine_id = data.get('id')

        parallel = None
        if data.get('parallel') is not None:
            regions = data['parallel'].get('regions') if isinstance(data['parallel'], dict) else None
            if not isinstance(regions, list):
                raise ConfigurationError(f"Machine '{machine_id}': 'parallel.regions' must be a list", machine_id)
            parallel = [RegionConfig.from_dict(region, machine_id) for region in regions]

        children = None
        if data.get('children') is not None:
            children = ChildrenConfig.from_dict(data['children'], machine_id)

        classes = data.get('classes')
        return cls(
            input=data.get('input', ''),
            id=machine_id or '',
            description=data.get('description'),
            initial_state=_get(data, 'initialState', 'initial_state'),
            classes=_string_list(classes, 'classes', machine_id) if classes is not None else None,
            parallel=parallel,
            children=children,
            output=data.get('output'),
        )

    def validate(self):
        """
        Check the topology rules

        Exactly one of {initialState + classes} (flat/hierarchical) or
        {parallel} (orthogonal regions) must be given.

        Raises:
            ConfigurationError: naming this machine's id
        """
        if self.error is not None:
            raise self.error
        if not self.id:
            raise ConfigurationError("Machine configuration is missing 'id'")
        if not self.input:
            raise ConfigurationError(f"Machine '{self.id}' is missing 'input'", self.id)

        has_fsm = self.initial_state is not None or self.classes is not None
        if self.is_parallel:
            if has_fsm:
                raise ConfigurationError(
                    f"Machine '{self.id}' cannot combine 'parallel' with 'initialState'/'classes'", self.id
                )
            if self.children is not None:
                raise ConfigurationError(
                    f"Machine '{self.id}': 'children' is only supported with 'initialState'/'classes'", self.id
                )
            if not self.parallel:
                raise ConfigurationError(f"Machine '{self.id}': 'parallel.regions' must not be empty", self.id)
            return

        if not has_fsm:
            raise ConfigurationError(
                f"Machine '{self.id}' must have either 'parallel' or 'initialState'/'classes' configuration",
                self.id,
            )
        if not self.initial_state or self.classes is None:
            raise ConfigurationError(
                f"Machine '{self.id}' must define both 'initialState' and 'classes'", self.id
            )


def _machine_from_dict(data: Any) -> MachineConfig:
    """
    Build one machine of a configuration file

    A malformed machine does not stop the file from loading: it is kept
    with its error, which fails only that machine when it is extracted.
    """
    try:
        return MachineConfig.from_dict(data)
    except ConfigurationError as e:
        fields = data if isinstance(data, dict) else {}
        machine_id = fields.get('id') if isinstance(fields.get('id'), str) else ''
        machine_input = fields.get('input') if isinstance(fields.get('input'), str) else ''
        return MachineConfig(input=machine_input, id=machine_id, error=e)


@dataclass
class ExtractionConfig:
    """A full extraction run: machines plus global options"""
    machines: List[MachineConfig] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    format: str = 'json'
    validate: bool = False
    verbose: bool = False
    base_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> 'ExtractionConfig':
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a JSON object")
        machines = data.get('machines')
        if not isinstance(machines, list):
            raise ConfigurationError("Configuration requires a 'machines' list")

        output_format = data.get('format', 'json')
        if output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Unsupported output format '{output_format}' (expected one of {', '.join(OUTPUT_FORMATS)})"
            )

        sources = data.get('sources', [])
        if isinstance(sources, str):
            sources = [sources]

        config = cls(
            machines=[_machine_from_dict(m) for m in machines],
            sources=list(sources),
            format=output_format,
            validate=bool(data.get('validate', False)),
            verbose=bool(data.get('verbose', False)),
            base_dir=base_dir or Path.cwd(),
        )
        for machine in config.machines:
            if machine.input:
                machine.input = str(config.resolve(machine.input))
            if machine.output:
                machine.output = str(config.resolve(machine.output))
        return config

    def resolve(self, path: str) -> Path:
        """Resolve a configured path against the configuration's directory"""
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.base_dir / candidate


def load_config(config_path: str) -> ExtractionConfig:
    """
    Load a JSON extraction configuration

    Args:
        config_path: Path to the configuration file

    Returns:
        ExtractionConfig whose relative paths resolve against the file's directory

    Raises:
        ConfigurationError: if the file is missing, unreadable or malformed
    """
    path = Path(config_path)
    if path.suffix != '.json':
        raise ConfigurationError(f"Unsupported configuration format: {path} (expected a .json file)")
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: line {e.lineno}: {e.msg}")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}")

    return ExtractionConfig.from_dict(data, base_dir=path.resolve().parent)
