import numpy as np


def loss_rate(sent, received):
    """1 - received/sent, or NaN when nothing was sent."""
    if sent == 0:
        return np.nan
    return (sent - received) / sent


class PacketLossAccountant:
    """End-to-end sent/received counters fed by the traffic source and sink callbacks."""

    def __init__(self):
        self.packets_sent = 0
        self.packets_received = 0

    def record_sent(self, count=1):
        self.packets_sent += count

    def record_received(self, count=1):
        self.packets_received += count

    def loss_rate(self):
        return loss_rate(self.packets_sent, self.packets_received)
