#!/usr/bin/env python3
"""
Statechart Extraction CLI

Extracts statechart definitions from annotated Python state classes and
writes them as JSON (Stately/XState), Mermaid or SCXML.

Usage:
    extract-statechart --config .statechart.json
    extract-statechart -i machines/traffic.py --id traffic \\
        --classes RedLight,GreenLight,YellowLight --initial RedLight
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from chart_renderer import FORMAT_BUNDLES, FORMAT_SUFFIXES, ChartRenderer
from chart_validator import validate_chart
from machine_config import ConfigurationError, ExtractionConfig, MachineConfig, load_config
from source_index import SourceIndex
from statechart_extractor import StatechartExtractor

DEFAULT_CONFIG = '.statechart.json'
DEFAULT_OUTPUT_DIR = 'statecharts'


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='extract-statechart',
        description='Extract statechart definitions from annotated Python state machines'
    )
    parser.add_argument('-c', '--config', default=None,
                        help=f'Configuration file (default: {DEFAULT_CONFIG} if present)')
    parser.add_argument('-i', '--input', help='Input file containing state classes')
    parser.add_argument('--id', help='Machine ID (required with --input)')
    parser.add_argument('--classes', help='Comma-separated state class names (required with --input)')
    parser.add_argument('--initial', help='Initial state class name (required with --input)')
    parser.add_argument('-s', '--source', action='append', default=[],
                        help='Extra source glob to load (repeatable), e.g. "src/**/*.py"')
    parser.add_argument('-o', '--output', help='Output file for a single machine')
    parser.add_argument('-f', '--format', choices=sorted(FORMAT_BUNDLES), default=None,
                        help='Output format (default: json)')
    parser.add_argument('--validate', action='store_true', default=None,
                        help='Validate generated charts')
    parser.add_argument('-v', '--verbose', action='store_true', default=None,
                        help='Verbose logging')
    return parser


def config_from_args(args) -> ExtractionConfig:
    """
    Build the run configuration from a config file or the --input options

    Command line options override the configuration file.

    Raises:
        ConfigurationError: if neither source of configuration is usable
    """
    if args.input:
        if not (args.id and args.classes and args.initial):
            raise ConfigurationError("--input requires --id, --classes and --initial")
        machine = MachineConfig(
            input=args.input,
            id=args.id,
            initial_state=args.initial,
            classes=[name.strip() for name in args.classes.split(',') if name.strip()],
            output=args.output,
        )
        config = ExtractionConfig(machines=[machine])
    else:
        config_path = args.config or DEFAULT_CONFIG
        if args.config is None and not Path(config_path).exists():
            raise ConfigurationError(
                "Either --config or --input must be provided "
                "(use --input with --id, --classes and --initial for a single machine)"
            )
        config = load_config(config_path)

    config.sources.extend(args.source)
    if args.format is not None:
        config.format = args.format
    if args.validate is not None:
        config.validate = args.validate
    if args.verbose is not None:
        config.verbose = args.verbose
    return config


def build_index(config: ExtractionConfig) -> SourceIndex:
    """Load every configured source glob plus each machine's input file"""
    index = SourceIndex.from_globs(config.sources, root=config.base_dir)
    for machine in config.machines:
        if machine.input and not index.has_source(machine.input):
            index.add_file(config.resolve(machine.input))
    return index


def write_output(text: str, output_path: Optional[Path]):
    """Write rendered text to a file (creating directories) or stdout"""
    if output_path is None:
        sys.stdout.write(text)
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding='utf-8')
    print(f"  ✓ Statechart written to: {output_path}", file=sys.stderr)


def _output_path(machine: MachineConfig, config: ExtractionConfig, cli_output: Optional[str],
                 single: bool) -> Optional[Path]:
    if machine.output:
        return config.resolve(machine.output)
    if single and cli_output:
        return Path(cli_output)
    if single:
        return None
    return config.base_dir / DEFAULT_OUTPUT_DIR / f'{machine.id}.json'


def write_chart(rendered: Dict[str, str], base_path: Optional[Path]):
    """
    Write every rendered format; non-JSON formats take their own suffix

    Stdout carries a single document, so a multi-format render without an
    output path writes its JSON only.
    """
    if base_path is None:
        if len(rendered) > 1:
            logging.warning("Only JSON is written to stdout; use --output to write every format")
            rendered = {'json': rendered['json']}
        for text in rendered.values():
            write_output(text, None)
        return

    for output_format, text in rendered.items():
        if output_format == 'json' and len(rendered) == 1:
            write_output(text, base_path)
        else:
            write_output(text, base_path.with_suffix(FORMAT_SUFFIXES[output_format]))


def run(config: ExtractionConfig, cli_output: Optional[str] = None) -> int:
    """
    Extract, validate and write every configured machine

    Returns:
        Process exit status: 0 if every machine succeeded, else 1
    """
    index = build_index(config)
    extractor = StatechartExtractor(index)

    if config.verbose:
        print(f"Extracting {len(config.machines)} machine(s) from {len(index.paths)} source file(s)",
              file=sys.stderr)

    report = extractor.extract_machines(config.machines)
    renderer = ChartRenderer()
    single = len(config.machines) == 1
    success = report.failed == 0

    for machine, chart in zip(report.machines, report.charts):
        if config.validate:
            problems = validate_chart(chart)
            if problems:
                for problem in problems:
                    logging.error(f"Machine '{machine.id}': {problem}")
                print(f"Error: validation failed for machine: {machine.id}", file=sys.stderr)
                success = False
                continue

        rendered = renderer.render(chart, config.format)
        write_chart(rendered, _output_path(machine, config, cli_output, single))

    for machine_id, error in report.failures:
        print(f"Error: machine '{machine_id}' failed: {error}", file=sys.stderr)

    if config.verbose:
        print(f"Done: {report.succeeded} succeeded, {report.failed} failed", file=sys.stderr)
    return 0 if success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s: %(message)s'
    )

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.verbose:
        logging.getLogger().setLevel(logging.INFO)

    return run(config, cli_output=args.output)


if __name__ == '__main__':
    sys.exit(main())
