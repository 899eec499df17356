from utils import setup_logger

logger = setup_logger()


class GreyholeRelay:
    """
    Relay that forwards each inbound datagram with probability (1 - drop_probability)
    and silently discards the rest. Drops are only visible in the log and the counters.
    """

    def __init__(self, transport, node_id, rng, drop_probability=0.5):
        self.transport = transport
        self.node_id = node_id
        self.rng = rng
        self.drop_probability = drop_probability
        self.endpoint = None
        self.forwarded = 0
        self.dropped = 0

    def start(self):
        logger.info(f"Starting GreyholeNode application on node {self.node_id}")
        if self.endpoint is None:
            self.endpoint = self.transport.bind(self.node_id, self.receive_packet)

    def stop(self):
        logger.info(f"Stopping GreyholeNode application on node {self.node_id}")
        if self.endpoint is not None:
            self.endpoint.close()
            self.endpoint = None

    def receive_packet(self, sender, datagram):
        if self.rng.random() > self.drop_probability:
            self.transport.send(self.node_id, datagram.destination, datagram)
            self.forwarded += 1
        else:
            self.dropped += 1
            logger.debug(f"Packet dropped by greyhole node: {self.node_id}")
