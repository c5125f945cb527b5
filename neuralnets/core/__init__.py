"""Core numerical primitives for neuralnets."""

from . import activations, layers, neuron, parallel, types

__all__ = ["activations", "layers", "neuron", "parallel", "types"]
