"""Mapping of GTFS route types to internal service modes."""

import logging

from transit_graph.gtfs.models import Mode

logger = logging.getLogger(__name__)


def _original_route_types() -> dict[int, tuple[Mode, ...]]:
    """
    Default mapping for the original (basic) GTFS route types.

    Ferry (4), cable tram (5), aerial lift (6), funicular (7) and
    monorail (12) have no internal equivalent and are left unmapped.
    """
    return {
        0: (Mode.LIGHTRAIL, Mode.TRAM),
        1: (Mode.SUBWAY,),
        2: (Mode.TRAIN,),
        3: (Mode.BUS,),
        11: (Mode.BUS,),
    }


def _extended_route_types() -> dict[int, tuple[Mode, ...]]:
    """
    Default mapping for the extended GTFS route types.

    - 100-117, 400, 403-404, 1503: railway services -> train
    - 200-209, 700-716, 800: coach and bus services -> bus
    - 401-402: metro and underground -> subway
    - 900-906: tram services -> tram, lightrail as fallback
    """
    mapping: dict[int, tuple[Mode, ...]] = {}

    train_types = [*range(100, 118), 400, 403, 404, 1503]
    for route_type in train_types:
        mapping[route_type] = (Mode.TRAIN,)

    bus_types = [*range(200, 210), *range(700, 717), 800]
    for route_type in bus_types:
        mapping[route_type] = (Mode.BUS,)

    for route_type in (401, 402):
        mapping[route_type] = (Mode.SUBWAY,)

    for route_type in range(900, 907):
        mapping[route_type] = (Mode.TRAM, Mode.LIGHTRAIL)

    return mapping


# Modes that may share stop infrastructure with each other
_COMPATIBLE_MODES: dict[Mode, frozenset[Mode]] = {
    Mode.TRAM: frozenset({Mode.TRAM, Mode.LIGHTRAIL}),
    Mode.LIGHTRAIL: frozenset({Mode.LIGHTRAIL, Mode.TRAM}),
}


def compatible_modes(mode: Mode) -> frozenset[Mode]:
    """Modes whose infrastructure is considered usable by the given mode."""
    return _COMPATIBLE_MODES.get(mode, frozenset({mode}))


class ModeMapping:
    """
    Route type to mode mapping with per route type activation.

    Each route type maps to a preferred mode followed by fallback modes.
    Only activated route types yield a mode, all mapped route types are
    activated initially.
    """

    def __init__(self, name: str, mapping: dict[int, tuple[Mode, ...]]) -> None:
        self.name = name
        self._mapping = dict(mapping)
        self._activated: set[int] = set(mapping)

    def get_mode(self, route_type: int) -> Mode | None:
        """Preferred mode for an activated route type, None otherwise."""
        modes = self.get_modes(route_type)
        return modes[0] if modes else None

    def get_modes(self, route_type: int) -> tuple[Mode, ...]:
        """Preferred and fallback modes for an activated route type."""
        if route_type not in self._activated:
            return ()
        return self._mapping.get(route_type, ())

    def is_mapped(self, route_type: int) -> bool:
        return route_type in self._mapping

    def is_activated(self, route_type: int) -> bool:
        return route_type in self._activated

    def activate(self, route_type: int) -> None:
        if route_type not in self._mapping:
            raise ValueError(f"Route type {route_type} has no mode mapping in '{self.name}'")
        self._activated.add(route_type)

    def deactivate(self, route_type: int) -> None:
        self._activated.discard(route_type)

    @property
    def activated_route_types(self) -> set[int]:
        return set(self._activated)

    @property
    def activated_modes(self) -> set[Mode]:
        """All preferred modes reachable through activated route types."""
        return {self._mapping[rt][0] for rt in self._activated}


# Available mappings
MAPPINGS = {
    "original": _original_route_types,
    "extended": _extended_route_types,
}


def get_mode_mapping(name: str, excluded_route_types: set[int] | None = None) -> ModeMapping:
    """Create a fresh mode mapping by name, with route types optionally deactivated."""
    if name not in MAPPINGS:
        available = ", ".join(MAPPINGS.keys())
        raise ValueError(f"Unknown mode mapping '{name}'. Available mappings: {available}")

    mapping = ModeMapping(name, MAPPINGS[name]())
    for route_type in excluded_route_types or ():
        mapping.deactivate(route_type)

    logger.debug(
        f"Mode mapping '{name}': {len(mapping.activated_modes)} activated modes "
        f"over {len(mapping.activated_route_types)} route types"
    )
    return mapping
