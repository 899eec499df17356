import math
import random

import simpy

from convergence import ConvergenceTracker, DetectionContext
from trust_model import EvidenceSample, NodeStatus, classify, draw_evidence
from watchdog import WatchdogMonitor


class ScriptedRandom:
    """Stands in for random.Random with a fixed sequence of draws."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


def make_monitor(env, node_id, population, rng, **kwargs):
    context = kwargs.pop("context", None) or DetectionContext(tracker=ConvergenceTracker(population))
    return WatchdogMonitor(env, node_id, context, rng, **kwargs), context


def test_evidence_bins():
    rng = ScriptedRandom([0.0, 0.3333, 1.0 / 3.0, 0.6666, 2.0 / 3.0, 0.999])
    samples = [draw_evidence(rng) for _ in range(6)]
    assert samples == [
        EvidenceSample.POSITIVE,
        EvidenceSample.POSITIVE,
        EvidenceSample.NEGATIVE,
        EvidenceSample.NEGATIVE,
        EvidenceSample.NO_SIGNAL,
        EvidenceSample.NO_SIGNAL,
    ]


def test_classify_thresholds():
    assert classify(1.0, 1.0) == NodeStatus.TRUSTED
    assert classify(0.99, 1.0) == NodeStatus.UNCLASSIFIED
    assert classify(-1.0, 1.0) == NodeStatus.UNCLASSIFIED
    assert classify(-1.01, 1.0) == NodeStatus.SUSPECT
    assert classify(3.0, 2.5) == NodeStatus.TRUSTED


def test_score_and_status_trajectory():
    env = simpy.Environment()
    monitor, context = make_monitor(env, 0, [0, 1, 2], ScriptedRandom([0.1, 0.5, 0.2]), max_ticks=3)
    assert monitor.status == NodeStatus.UNCLASSIFIED

    monitor.start()
    env.run(until=10)

    scores = [score for _, _, score, _ in monitor.history]
    statuses = [status for _, _, _, status in monitor.history]
    times = [t for t, _, _, _ in monitor.history]
    assert scores == [1.0, 0.0, 1.0]
    assert statuses == [NodeStatus.TRUSTED, NodeStatus.UNCLASSIFIED, NodeStatus.TRUSTED]
    assert times == [1, 2, 3]
    assert monitor.tick_count == 3
    assert not monitor.running

    # The other two nodes never produced anything
    assert context.tracker.has_produced(0)
    assert not context.tracker.converged


def test_reputation_is_unclamped_signal_difference():
    env = simpy.Environment()
    # Node 99 never ticks, so convergence never cuts the run short
    monitor, _ = make_monitor(env, 0, [0, 99], random.Random(7), max_ticks=60)
    monitor.start()
    env.run(until=100)

    samples = [sample for _, sample, _, _ in monitor.history]
    positives = samples.count(EvidenceSample.POSITIVE)
    negatives = samples.count(EvidenceSample.NEGATIVE)
    assert len(samples) == 60
    assert monitor.reputation == positives - negatives
    for _, _, score, status in monitor.history:
        assert status == classify(score, 1.0)


def test_no_signal_never_marks_and_flag_is_monotonic():
    env = simpy.Environment()
    monitor, context = make_monitor(env, 0, [0, 1], ScriptedRandom([]))
    tracker = context.tracker

    monitor.process_event(EvidenceSample.NO_SIGNAL)
    assert not tracker.has_produced(0)

    monitor.process_event(EvidenceSample.NEGATIVE)
    assert tracker.has_produced(0)
    assert monitor.status == NodeStatus.UNCLASSIFIED  # -1 is not below -theta

    monitor.process_event(EvidenceSample.NO_SIGNAL)
    monitor.process_event(EvidenceSample.POSITIVE)
    assert tracker.has_produced(0)
    assert monitor.reputation == 0.0


def test_borderline_score_still_counts_for_convergence():
    env = simpy.Environment()
    monitor, context = make_monitor(env, 0, [0], ScriptedRandom([0.5]), max_ticks=1)
    monitor.start()
    env.run(until=5)

    assert monitor.status == NodeStatus.UNCLASSIFIED
    assert context.tracker.converged
    assert context.tracker.convergence_time == 1


def test_forced_convergence_latches_on_next_tick():
    env = simpy.Environment()
    monitor, context = make_monitor(env, 0, [0, 1], ScriptedRandom([0.9, 0.9]), max_ticks=5)
    tracker = context.tracker
    tracker.mark_produced(0)
    tracker.mark_produced(1)

    def delayed_start():
        yield env.timeout(2.5)
        monitor.start()

    env.process(delayed_start())
    env.run(until=20)

    assert tracker.converged
    assert tracker.convergence_time == 3.5
    # The following tick sees the latch and stops
    assert monitor.tick_count == 1
    assert not tracker.latch(9.0)
    assert tracker.convergence_time == 3.5


def test_single_silent_node_never_converges():
    env = simpy.Environment()
    monitor, context = make_monitor(env, 0, [0], ScriptedRandom([0.9] * 5), max_ticks=5)
    monitor.start()
    env.run(until=50)

    assert monitor.tick_count == 5
    assert not context.tracker.converged
    assert context.tracker.convergence_time is None


def test_same_instant_ticks_run_in_node_order():
    env = simpy.Environment()
    context = DetectionContext(tracker=ConvergenceTracker([0, 1]))
    rng = ScriptedRandom([0.1, 0.9, 0.9, 0.5])
    first = WatchdogMonitor(env, 0, context, rng, max_ticks=10)
    second = WatchdogMonitor(env, 1, context, rng, max_ticks=10)
    first.start()
    second.start()
    env.run(until=20)

    assert [s for _, s, _, _ in first.history] == [EvidenceSample.POSITIVE, EvidenceSample.NO_SIGNAL]
    assert [s for _, s, _, _ in second.history] == [EvidenceSample.NO_SIGNAL, EvidenceSample.NEGATIVE]
    assert context.tracker.convergence_time == 2
    assert first.tick_count == 2 and second.tick_count == 2


def test_stop_cancels_pending_tick():
    env = simpy.Environment()
    monitor, _ = make_monitor(env, 0, [0, 1], random.Random(1), max_ticks=10)
    monitor.start()
    env.run(until=2.5)
    assert monitor.tick_count == 2

    monitor.stop()
    monitor.stop()
    env.run(until=20)
    assert monitor.tick_count == 2


def test_stop_before_first_tick():
    env = simpy.Environment()
    monitor, _ = make_monitor(env, 0, [0], ScriptedRandom([]))
    monitor.start()
    monitor.stop()
    env.run(until=5)
    assert monitor.tick_count == 0
    assert monitor.history == []


def test_loss_rate_without_traffic_is_nan():
    env = simpy.Environment()
    monitor, _ = make_monitor(env, 0, [0], ScriptedRandom([0.9, 0.9]), max_ticks=2)
    monitor.start()
    env.run(until=10)

    assert monitor.sent_packets == 0
    assert math.isnan(monitor.packet_loss_rate)
    assert math.isnan(monitor.loss_rate())


def test_overheard_traffic_counts_towards_loss_rate():
    env = simpy.Environment()
    monitor, _ = make_monitor(env, 0, [0, 1], ScriptedRandom([]), watched=25)
    monitor.start()
    for _ in range(4):
        monitor.observe(24, 25, None)
    for _ in range(3):
        monitor.observe(25, 26, None)
    monitor.observe(24, 26, None)

    assert monitor.sent_packets == 4
    assert monitor.received_packets == 3
    assert monitor.finish() == 0.25


if __name__ == "__main__":
    test_score_and_status_trajectory()
    test_forced_convergence_latches_on_next_tick()
    print("Watchdog tests passed")
