from network_sim import Datagram, PeriodicProcess
from utils import setup_logger

logger = setup_logger()


class TrafficSource:
    """Sends fixed-size datagrams to the sink through a relay at a constant interval."""

    def __init__(self, env, transport, node_id, destination, next_hop, context,
                 max_packets=1000, interval=0.01, packet_size=1024):
        self.env = env
        self.transport = transport
        self.node_id = node_id
        self.destination = destination
        self.next_hop = next_hop
        self.context = context
        self.max_packets = max_packets
        self.packet_size = packet_size
        self.sent = 0
        self._sender = PeriodicProcess(env, interval, self.send_next, name=f"Source {node_id}")

    def start(self):
        logger.info(f"Starting traffic source on node {self.node_id} -> {self.destination} via {self.next_hop}")
        if self.send_next():
            self._sender.start()

    def stop(self):
        self._sender.stop()
        logger.info(f"Stopping traffic source on node {self.node_id} after {self.sent} packets")

    def send_next(self):
        """Sends one datagram; returns False once max_packets have gone out."""
        if self.sent >= self.max_packets:
            return False
        datagram = Datagram.build(self.node_id, self.destination, self.sent, self.packet_size)
        self.transport.send(self.node_id, self.next_hop, datagram)
        self.context.accountant.record_sent()
        self.sent += 1
        return self.sent < self.max_packets


class TrafficSink:
    def __init__(self, transport, node_id, context):
        self.transport = transport
        self.node_id = node_id
        self.context = context
        self.endpoint = None
        self.received = 0

    def start(self):
        logger.info(f"Starting traffic sink on node {self.node_id}")
        if self.endpoint is None:
            self.endpoint = self.transport.bind(self.node_id, self.receive_packet)

    def stop(self):
        logger.info(f"Stopping traffic sink on node {self.node_id} after {self.received} packets")
        if self.endpoint is not None:
            self.endpoint.close()
            self.endpoint = None

    def receive_packet(self, sender, datagram):
        if datagram.destination != self.node_id:
            logger.debug(f"Sink {self.node_id} ignoring datagram for {datagram.destination}")
            return
        self.received += 1
        self.context.accountant.record_received()
