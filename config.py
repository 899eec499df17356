"""
Simulation parameters for the greyhole detection scenario.

Defaults reproduce the reference scenario: a 27-node ad-hoc grid with
24 watchdog nodes, one greyhole relay, one traffic source and one sink.

Parameter categories:
- Population and node roles
- Watchdog reputation settings
- Traffic generation
- Grid topology
- Run control (start/stop times, seed)
"""

import math
from dataclasses import dataclass, fields, replace as dc_replace

from errors import ConfigurationError


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable per-run configuration. Call validate() before using it."""

    # Population and roles
    num_nodes: int = 27
    num_watchdogs: int = 24
    greyhole_id: int = 25
    source_id: int = 24
    sink_id: int = 26

    # Greyhole
    drop_probability: float = 0.05

    # Watchdog
    tick_period: float = 1.0
    max_ticks: int = 10
    threshold: float = 1.0
    gamma: float = 0.5  # carried from the reference scenario; not used by the update rule

    # Traffic
    traffic_start: float = 2.0
    max_packets: int = 1000
    packet_interval: float = 0.01
    packet_size: int = 1024

    # Topology
    grid_width: int = 7
    grid_spacing: float = 5.0
    radio_range: float = 7.5
    link_delay: float = 0.002

    # Run control
    app_start: float = 1.0
    stop_time: float = 30.0
    seed: int = 1

    @property
    def watchdog_ids(self):
        return list(range(self.num_watchdogs))

    def validate(self):
        """Raises ConfigurationError on the first invalid parameter, returns self otherwise."""
        if self.num_nodes < 1:
            raise ConfigurationError(f"num_nodes must be positive, got {self.num_nodes}")
        if not 1 <= self.num_watchdogs <= self.num_nodes:
            raise ConfigurationError(
                f"num_watchdogs must be in [1, {self.num_nodes}], got {self.num_watchdogs}"
            )

        roles = {"greyhole_id": self.greyhole_id, "source_id": self.source_id, "sink_id": self.sink_id}
        for name, node_id in roles.items():
            if not 0 <= node_id < self.num_nodes:
                raise ConfigurationError(f"{name}={node_id} is outside the population of {self.num_nodes}")
            if node_id < self.num_watchdogs:
                raise ConfigurationError(f"{name}={node_id} collides with a watchdog node")
        if len(set(roles.values())) != len(roles):
            raise ConfigurationError(f"greyhole, source and sink must be distinct nodes: {roles}")

        if not 0.0 <= self.drop_probability <= 1.0:
            raise ConfigurationError(f"drop_probability must be in [0, 1], got {self.drop_probability}")
        if not math.isfinite(self.threshold) or self.threshold < 0.0:
            raise ConfigurationError(f"threshold must be a finite non-negative number, got {self.threshold}")
        if self.tick_period <= 0.0:
            raise ConfigurationError(f"tick_period must be positive, got {self.tick_period}")
        if self.max_ticks < 1:
            raise ConfigurationError(f"max_ticks must be at least 1, got {self.max_ticks}")

        if self.max_packets < 0:
            raise ConfigurationError(f"max_packets cannot be negative, got {self.max_packets}")
        if self.packet_interval <= 0.0:
            raise ConfigurationError(f"packet_interval must be positive, got {self.packet_interval}")
        if self.packet_size < 1:
            raise ConfigurationError(f"packet_size must be positive, got {self.packet_size}")

        if self.grid_width < 1 or self.grid_spacing <= 0.0 or self.radio_range <= 0.0:
            raise ConfigurationError("grid_width, grid_spacing and radio_range must be positive")
        if self.link_delay < 0.0:
            raise ConfigurationError(f"link_delay cannot be negative, got {self.link_delay}")

        if self.app_start < 0.0 or self.traffic_start < 0.0:
            raise ConfigurationError("start times cannot be negative")
        if self.stop_time <= self.app_start:
            raise ConfigurationError(
                f"stop_time ({self.stop_time}) must be after app_start ({self.app_start})"
            )
        return self

    def replace(self, **overrides):
        """Returns a validated copy with the given fields changed."""
        return dc_replace(self, **overrides).validate()

    @classmethod
    def from_args(cls, args):
        """Builds a config from an argparse namespace; unset (None) options keep their defaults."""
        names = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in vars(args).items() if k in names and v is not None}
        return cls(**overrides).validate()
