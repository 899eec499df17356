from accounting import loss_rate
from network_sim import PeriodicProcess
from trust_model import EvidenceSample, TrustModel, draw_evidence
from utils import setup_logger

logger = setup_logger()


class WatchdogMonitor:
    def __init__(self, env, node_id, context, rng, threshold=1.0, tick_period=1.0, max_ticks=10, watched=None):
        """
        Per-node watchdog that samples evidence once per tick and keeps a reputation verdict.

        Args:
            env: SimPy environment providing the clock and scheduler
            node_id: Node this monitor runs on
            context: DetectionContext shared by every monitor in the run
            rng: Uniform source with a random() method in [0, 1)
            threshold: Verdict threshold theta
            tick_period: Simulated time between ticks
            max_ticks: Number of evidence samples before the monitor stops
            watched: Relay whose traffic this node overhears, or None when out of range
        """
        self.env = env
        self.node_id = node_id
        self.context = context
        self.rng = rng
        self.max_ticks = max_ticks
        self.watched = watched
        self.trust = TrustModel(threshold=threshold)

        self.tick_count = 0
        self.sent_packets = 0
        self.received_packets = 0
        self.packet_loss_rate = None
        # (time, sample, reputation, status) per processed tick
        self.history = []

        self._ticker = PeriodicProcess(env, tick_period, self.monitor, name=f"Watchdog {node_id}")
        context.tracker.register(node_id)

    @property
    def reputation(self):
        return self.trust.reputation

    @property
    def status(self):
        return self.trust.status

    @property
    def running(self):
        return self._ticker.running

    def start(self):
        logger.info(f"Starting WatchdogNode application on node {self.node_id}")
        self._ticker.start()

    def stop(self):
        logger.info(f"Stopping WatchdogNode application on node {self.node_id}")
        self._ticker.stop()

    def monitor(self):
        """One tick. Returns False once the monitor is done and must not be rescheduled."""
        tracker = self.context.tracker
        if self.tick_count >= self.max_ticks or tracker.converged:
            logger.info(
                f"Watchdog node {self.node_id} has reached max monitor count or all nodes have converged."
            )
            self.finish()
            return False

        sample = draw_evidence(self.rng)
        self.process_event(sample)
        self.tick_count += 1
        return True

    def process_event(self, sample):
        """Applies one evidence sample, then checks whether the whole population has converged."""
        tracker = self.context.tracker
        status = self.trust.update(sample)

        if sample is EvidenceSample.NO_SIGNAL:
            logger.debug(f"Watchdog node {self.node_id} has no sufficient information.")
        else:
            # Eligibility comes from the sample itself, not from crossing the threshold
            tracker.mark_produced(self.node_id)
            logger.debug(
                f"Watchdog node {self.node_id} detected a {sample.name.lower()} event. "
                f"Reputation: {self.reputation}"
            )
        logger.debug(f"Node {self.node_id} state: {status.name}")
        self.history.append((self.env.now, sample, self.reputation, status))

        if tracker.all_produced():
            tracker.latch(self.env.now)
        return status

    def observe(self, sender, next_hop, datagram):
        """Transport tap: counts traffic into and out of the watched relay while running."""
        if self.watched is None or not self.running:
            return
        if next_hop == self.watched:
            self.sent_packets += 1
        elif sender == self.watched:
            self.received_packets += 1

    def finish(self):
        self.packet_loss_rate = loss_rate(self.sent_packets, self.received_packets)
        logger.info(f"Watchdog node {self.node_id} packet loss rate: {self.packet_loss_rate}")
        return self.packet_loss_rate

    def loss_rate(self):
        """Loss rate as observed so far; NaN when nothing was overheard."""
        if self.packet_loss_rate is not None:
            return self.packet_loss_rate
        return loss_rate(self.sent_packets, self.received_packets)
