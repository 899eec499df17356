import math
import struct
from dataclasses import dataclass
from typing import Protocol

import networkx as nx
import simpy

from errors import SchedulingError
from utils import setup_logger

logger = setup_logger()


class NodeApplication(Protocol):
    """Lifecycle capability shared by every node role (watchdog, greyhole, traffic endpoints)."""

    node_id: int

    def start(self) -> None: ...

    def stop(self) -> None: ...


@dataclass(frozen=True)
class Datagram:
    source: int
    destination: int
    payload: bytes
    seq: int = 0

    @classmethod
    def build(cls, source, destination, seq, size):
        """Header is source id + sequence number, the rest is zero padding up to `size` bytes."""
        header = struct.pack("<HI", source, seq)
        body = bytes(max(0, size - len(header)))
        return cls(source, destination, header + body, seq)


class PeriodicProcess:
    """
    Owns one SimPy process that calls `callback` every `period` of simulated time.
    The callback returns False when the owner is done; stop() cancels the pending wake-up.
    """

    def __init__(self, env, period, callback, name="periodic"):
        self.env = env
        self.period = period
        self.callback = callback
        self.name = name
        self.process = None
        self.running = False
        self._suspended = False

    @property
    def finished(self):
        return self.process is not None and not self.process.is_alive

    def start(self):
        if self.running or self.process is not None:
            return
        self.running = True
        self.process = self.env.process(self._run())

    def stop(self):
        """Unconditional and idempotent."""
        if not self.running:
            return
        self.running = False
        # A process that has not reached its first yield sees running=False and exits on its own
        if self.process is not None and self.process.is_alive and self._suspended:
            self.process.interrupt("stopped")

    def _run(self):
        if not self.running:
            return
        try:
            while True:
                self._suspended = True
                yield self.env.timeout(self.period)
                self._suspended = False
                if not self.running:
                    raise SchedulingError(f"{self.name} woke up after stop at t={self.env.now}")
                if not self.callback() or not self.running:
                    break
        except simpy.Interrupt:
            logger.debug(f"{self.name} cancelled at t={self.env.now}")
        finally:
            self._suspended = False
            self.running = False


class Endpoint:
    """A node's bound receive port. close() is idempotent."""

    def __init__(self, transport, node_id, handler):
        self.transport = transport
        self.node_id = node_id
        self.handler = handler
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.transport._unbind(self)


class Transport:
    """
    Datagram delivery between node endpoints with a fixed per-hop delay.
    Taps observe every transmission on the air, whether or not the receiver is bound.
    """

    def __init__(self, env, link_delay=0.0):
        self.env = env
        self.link_delay = link_delay
        self._endpoints = {}
        self._taps = []
        self.discarded = 0

    def bind(self, node_id, handler):
        if node_id in self._endpoints:
            raise SchedulingError(f"Node {node_id} already has a bound endpoint")
        endpoint = Endpoint(self, node_id, handler)
        self._endpoints[node_id] = endpoint
        return endpoint

    def _unbind(self, endpoint):
        if self._endpoints.get(endpoint.node_id) is endpoint:
            del self._endpoints[endpoint.node_id]

    def is_bound(self, node_id):
        return node_id in self._endpoints

    def add_tap(self, callback):
        """callback(sender, next_hop, datagram) is invoked for every transmission."""
        self._taps.append(callback)

    def send(self, sender, next_hop, datagram):
        return self.env.process(self._deliver(sender, next_hop, datagram))

    def _deliver(self, sender, next_hop, datagram):
        yield self.env.timeout(self.link_delay)
        for tap in self._taps:
            tap(sender, next_hop, datagram)

        endpoint = self._endpoints.get(next_hop)
        if endpoint is None:
            self.discarded += 1
            logger.debug(f"Datagram {datagram.seq} from {sender} discarded: node {next_hop} is not listening")
            return
        endpoint.handler(sender, datagram)


class NetworkSimulation:
    def __init__(self, env, link_delay=0.0):
        self.env = env
        self.graph = nx.Graph()
        self.nodes = []
        self.transport = Transport(env, link_delay)

    def create_topology(self, num_nodes=27, grid_width=7, spacing=5.0, radio_range=7.5):
        """Lays nodes out row-first on a grid and links every pair within radio range"""
        pos = {
            n: ((n % grid_width) * spacing, (n // grid_width) * spacing)
            for n in range(num_nodes)
        }
        self.graph = nx.random_geometric_graph(num_nodes, radio_range, pos=pos)
        for (u, v) in self.graph.edges():
            self.graph.edges[u, v]['weight'] = math.dist(pos[u], pos[v])
        for n in self.graph.nodes():
            self.graph.nodes[n]['role'] = 'idle'

        self.nodes = sorted(self.graph.nodes())
        logger.info(f"Topology created with {num_nodes} nodes and {len(self.graph.edges())} edges")

    def assign_roles(self, config):
        """Tags each node with its role in the detection scenario."""
        for n in config.watchdog_ids:
            self.graph.nodes[n]['role'] = 'watchdog'
        self.graph.nodes[config.greyhole_id]['role'] = 'greyhole'
        self.graph.nodes[config.source_id]['role'] = 'source'
        self.graph.nodes[config.sink_id]['role'] = 'sink'

    def role(self, node_id):
        return self.graph.nodes[node_id].get('role', 'idle')

    def neighbors(self, node_id):
        return sorted(self.graph.neighbors(node_id))

    def install(self, app, start_time, stop_time):
        """
        Schedules app.start() at start_time and app.stop() at stop_time.
        Run as a SimPy process; install in NodeId order for deterministic tie-breaking.
        """
        def lifecycle():
            yield self.env.timeout(max(0.0, start_time - self.env.now))
            app.start()
            yield self.env.timeout(max(0.0, stop_time - self.env.now))
            app.stop()

        return self.env.process(lifecycle())
