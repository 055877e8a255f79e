"""Traffic light: a flat, cyclic machine."""

import time
from dataclasses import dataclass

from statechart_primitives import action, describe, transition_to


@dataclass(frozen=True)
class LightContext:
    light: str
    duration: float
    entered_at: float


class RedLight:
    def __init__(self, context=None):
        self.context = context or LightContext('red', 5.0, time.time())

    next = describe(
        'Change to green light after red duration expires',
        action(
            {'name': 'logLightChange', 'description': 'Log traffic light state change'},
            transition_to('GreenLight', lambda self: GreenLight(LightContext('green', 5.0, time.time()))),
        ),
    )

    emergency = describe(
        'Emergency vehicle override - immediately go to green',
        action(
            {'name': 'logEmergencyOverride', 'description': 'Track emergency overrides for analysis'},
            transition_to('GreenLight', lambda self: GreenLight(LightContext('green', 10.0, time.time()))),
        ),
    )

    def remaining(self):
        return max(0.0, self.context.entered_at + self.context.duration - time.time())


class YellowLight:
    def __init__(self, context=None):
        self.context = context or LightContext('yellow', 2.0, time.time())

    next = describe(
        'Change to red light after yellow duration expires',
        action(
            {'name': 'logLightChange', 'description': 'Log traffic light state change'},
            transition_to(RedLight, lambda self: RedLight()),
        ),
    )


class GreenLight:
    def __init__(self, context=None):
        self.context = context or LightContext('green', 5.0, time.time())

    next = describe(
        'Change to yellow light after green duration expires',
        action(
            {'name': 'logLightChange', 'description': 'Log traffic light state change'},
            transition_to(YellowLight, lambda self: YellowLight()),
        ),
    )

    pedestrian_request = describe(
        'Pedestrian crossing button pressed - advance to yellow',
        action(
            {'name': 'logPedestrianRequest'},
            transition_to(YellowLight, lambda self: YellowLight()),
        ),
    )
