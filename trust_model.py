from enum import Enum

# Evidence bins over [0, 1). Fixed: changing them changes the protocol's statistics.
POSITIVE_BIN = 1.0 / 3.0
NEGATIVE_BIN = 2.0 / 3.0


class NodeStatus(Enum):
    UNCLASSIFIED = "unclassified"
    SUSPECT = "suspect"
    TRUSTED = "trusted"


class EvidenceSample(Enum):
    NO_SIGNAL = 0
    POSITIVE = 1
    NEGATIVE = -1


def draw_evidence(rng):
    """
    Draws one evidence sample from three equal-width uniform bins.
    This is a placeholder for a real traffic-behaviour classifier and is kept unweighted.
    """
    r = rng.random()
    if r < POSITIVE_BIN:
        return EvidenceSample.POSITIVE
    if r < NEGATIVE_BIN:
        return EvidenceSample.NEGATIVE
    return EvidenceSample.NO_SIGNAL


def classify(score, threshold=1.0):
    """Status from the current score only; no hysteresis."""
    if score >= threshold:
        return NodeStatus.TRUSTED
    if score < -threshold:
        return NodeStatus.SUSPECT
    return NodeStatus.UNCLASSIFIED


class TrustModel:
    def __init__(self, threshold=1.0, initial_reputation=0.0):
        """
        Reputation held by a single watchdog.

        Args:
            threshold: Symmetric verdict threshold (theta)
            initial_reputation: Starting score (0 in the reference protocol)

        The score is never clamped, so a node whose evidence keeps flipping sign
        near the threshold can oscillate between TRUSTED and SUSPECT indefinitely.
        """
        self.threshold = threshold
        self.reputation = initial_reputation
        self.status = NodeStatus.UNCLASSIFIED

    def update(self, sample):
        """Applies one evidence sample and returns the freshly derived status."""
        if sample is EvidenceSample.POSITIVE:
            self.reputation += 1.0
        elif sample is EvidenceSample.NEGATIVE:
            self.reputation -= 1.0

        self.status = classify(self.reputation, self.threshold)
        return self.status
