"""Random hazard events and secret sabotage actions."""

from collections import namedtuple

from shipcrew.models import SHIP_SYSTEMS

RANDOM_SYSTEM = 'random'

HazardEvent = namedtuple('HazardEvent', ['type', 'message', 'system', 'damage'])

HAZARDS = [
    HazardEvent('meteor', 'Meteor strike! A system took damage.', RANDOM_SYSTEM, 25),
    HazardEvent('radiation', 'Radiation wave! Repair the Shield.', 'Shield', 15),
    HazardEvent('alien', 'Alien signal detected.', None, 0),
    HazardEvent('system_failure', 'System failure! Check every panel.', RANDOM_SYSTEM, 10),
]

SecretAction = namedtuple('SecretAction', ['message', 'system', 'damage'])

SECRET_ACTIONS = {
    'lights': SecretAction('Lights out for 30 seconds!', None, 0),
    'engine': SecretAction('Engine disrupted! Speed reduced.', 'Engine', 20),
    'door': SecretAction('Emergency door opened! Oxygen compromised.', 'Oxygen', 15),
    'hack': SecretAction('Navigation system hacked!', 'Navigation', 25),
}
LIGHTS_OUT_DURATION_SEC = 30


def random_event(rng) -> HazardEvent:
    return rng.choice(HAZARDS)


def resolve_target(event: HazardEvent, rng):
    """Return the system a hazard hits, or None when it has no effect."""
    if event.system is None or not event.damage:
        return None
    if event.system == RANDOM_SYSTEM:
        return rng.choice(SHIP_SYSTEMS)
    if event.system in SHIP_SYSTEMS:
        return event.system
    return None
