"""Training loop, losses and run pipelines."""

from .losses import REGISTRY as LOSSES
from .losses import LossFunction, get_loss
from .network import Network
from .records import decode_network, encode_network

__all__ = ["LOSSES", "LossFunction", "Network", "decode_network", "encode_network", "get_loss"]
