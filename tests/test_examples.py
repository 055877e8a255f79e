"""Extract the bundled example machines through the repository configuration."""

import pytest

from chart_validator import validate_chart
from conftest import REPO_ROOT
from extract_statechart import build_index
from machine_config import load_config
from statechart_extractor import StatechartExtractor


@pytest.fixture(scope='module')
def charts():
    config = load_config(str(REPO_ROOT / '.statechart.json'))
    report = StatechartExtractor(build_index(config)).extract_machines(config.machines)
    assert report.failed == 0
    return {chart['id']: chart for chart in report.charts}


def test_all_examples_validate(charts):
    assert set(charts) == {'trafficLight', 'fetch', 'dashboard', 'editor'}
    for chart in charts.values():
        assert validate_chart(chart) == []


def test_traffic_light(charts):
    red = charts['trafficLight']['states']['RedLight']
    assert red['on']['emergency'] == {
        'target': 'GreenLight',
        'description': 'Emergency vehicle override - immediately go to green',
        'actions': ['logEmergencyOverride'],
    }
    assert 'remaining' not in red['on']


def test_fetch_services_and_guards(charts):
    states = charts['fetch']['states']
    assert states['Loading']['invoke'] == [{
        'src': 'fetchData',
        'onDone': {'target': 'Success'},
        'onError': {'target': 'Error'},
        'description': 'Fetch data from the API endpoint',
    }]
    assert 'execute_fetch' not in states['Loading']['on']
    assert states['Error']['on']['retry']['cond'] == 'canRetry && isOnline'
    assert list(states['Error']['on']) == ['dismiss', 'retry']
    assert states['Success']['on']['update_data'] == {'target': 'Success', 'description': 'Replace the loaded data'}
    assert states['Retrying']['invoke'][0]['onError'] == {'target': 'Error'}
    assert states['Retrying']['on'] == {'cancel': {'target': 'Idle'}}


def test_dashboard_hierarchy(charts):
    dashboard = charts['dashboard']['states']['Dashboard']
    assert dashboard['on']['logout'] == {
        'target': 'LoggedOut', 'description': 'Log out of the dashboard', 'actions': ['clearSession'],
    }
    assert dashboard['initial'] == 'Viewing'
    editing = dashboard['states']['Editing']
    assert editing['on']['save']['target'] == 'Viewing'
    assert editing['invoke'][0]['src'] == 'saveDocument'
    assert 'states' not in charts['dashboard']['states']['LoggedOut']


def test_editor_regions(charts):
    editor = charts['editor']
    assert editor['type'] == 'parallel'
    assert editor['states']['fontWeight']['initial'] == 'NormalWeight'
    assert editor['states']['textDecoration']['states']['Underlined']['on'] == {
        'toggle_underline': {'target': 'NoDecoration'},
    }
