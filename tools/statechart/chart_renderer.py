#!/usr/bin/env python3
"""
Statechart Renderer (Python + Jinja2)

Turns extracted chart documents into output text: JSON for Stately/XState
tooling, Mermaid stateDiagram-v2 for documentation, and W3C SCXML.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from scxml_writer import chart_to_scxml

# File suffix per rendered format
FORMAT_SUFFIXES = {
    'json': '.json',
    'mermaid': '.mmd',
    'scxml': '.scxml',
}

# 'both' is kept for compatibility with existing configuration files
FORMAT_BUNDLES = {
    'json': ['json'],
    'mermaid': ['mermaid'],
    'scxml': ['scxml'],
    'both': ['json', 'mermaid'],
}


class ChartRenderer:
    """
    Renders chart documents in the supported output formats

    Mermaid output uses Jinja2 templates from template_dir.
    """

    def __init__(self, template_dir=None):
        if template_dir is None:
            template_dir = Path(__file__).parent / 'templates'

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True
        )

        self.env.filters['state_id'] = self._state_id
        self.env.filters['transition_label'] = self._transition_label
        self.env.filters['one_line'] = self._one_line

    def _state_id(self, name):
        """Mermaid state ids: word characters only"""
        if not name:
            return 'unknown'
        return re.sub(r'\W', '_', str(name))

    def _one_line(self, text):
        return ' '.join(str(text).split())

    def _transition_label(self, event, spec):
        """Edge label: event [cond]: description"""
        label = event
        if spec.get('cond'):
            label += f" [{spec['cond']}]"
        if spec.get('description'):
            label += f": {self._one_line(spec['description'])}"
        return label

    def render_json(self, chart: Dict[str, Any]) -> str:
        return json.dumps(chart, indent=2, ensure_ascii=False) + '\n'

    def render_mermaid(self, chart: Dict[str, Any]) -> str:
        template = self.env.get_template('mermaid.jinja2')
        output = template.render(chart=chart)
        # Drop blank lines left by empty state bodies
        lines = [line for line in output.splitlines() if line.strip()]
        return '\n'.join(lines) + '\n'

    def render_scxml(self, chart: Dict[str, Any]) -> str:
        return chart_to_scxml(chart)

    def render(self, chart: Dict[str, Any], output_format: str) -> Dict[str, str]:
        """
        Render a chart in one output format

        Args:
            chart: Extracted chart document
            output_format: json, mermaid, scxml or both

        Returns:
            Rendered text keyed by format name

        Raises:
            ValueError: for an unknown format
        """
        if output_format not in FORMAT_BUNDLES:
            raise ValueError(
                f"Unsupported output format '{output_format}' "
                f"(expected one of {', '.join(FORMAT_BUNDLES)})"
            )
        renderers = {
            'json': self.render_json,
            'mermaid': self.render_mermaid,
            'scxml': self.render_scxml,
        }
        return {name: renderers[name](chart) for name in FORMAT_BUNDLES[output_format]}
