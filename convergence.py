from dataclasses import dataclass, field

from accounting import PacketLossAccountant
from utils import setup_logger

logger = setup_logger()


class ConvergenceTracker:
    """
    Process-wide record of which monitored nodes have produced a verdict,
    plus a one-shot latch holding the time at which all of them had.
    """

    def __init__(self, node_ids=()):
        self.produced = {}
        self.converged = False
        self.convergence_time = None
        for node_id in node_ids:
            self.register(node_id)

    def register(self, node_id):
        self.produced.setdefault(node_id, False)

    def mark_produced(self, node_id):
        if node_id not in self.produced:
            raise KeyError(f"Node {node_id} is not a monitored node")
        self.produced[node_id] = True

    def has_produced(self, node_id):
        return self.produced.get(node_id, False)

    def all_produced(self):
        return bool(self.produced) and all(self.produced.values())

    def pending(self):
        return [n for n, done in self.produced.items() if not done]

    def latch(self, now):
        """Returns True only for the call that set the latch."""
        if self.converged:
            return False
        self.converged = True
        self.convergence_time = now
        logger.info(f"All nodes have converged at time: {now}")
        return True


@dataclass
class DetectionContext:
    """Shared state handed to every watchdog and traffic endpoint at construction."""

    tracker: ConvergenceTracker = field(default_factory=ConvergenceTracker)
    accountant: PacketLossAccountant = field(default_factory=PacketLossAccountant)
