"""Single-slot snapshot storage for TimeIntegrator state.

Checkpoints own independent copies of every buffer. Values are copied once when saved and
copied again when recovered, so neither the caller's buffers nor the stored snapshot can be
modified through an alias.
"""

import copy

import numpy as np
import scipy.sparse as sp

from alestep.errors import NoCheckpointError


def copy_buffer(buffer):
    """Return an independent copy of a solver buffer.

    Args:
        buffer: NumPy array, SciPy sparse matrix, object with a copy() method (FixedDofSet, SystemOperator),
            list of such buffers, immutable scalar, or None.

    Returns:
        Copy sharing no mutable data with buffer.
    """

    if buffer is None:
        return None
    if isinstance(buffer, np.ndarray) or sp.issparse(buffer):
        return buffer.copy()
    if isinstance(buffer, list):
        return [copy_buffer(item) for item in buffer]
    if hasattr(buffer, "copy"):
        return buffer.copy()
    return copy.deepcopy(buffer)


class Checkpoint:
    """Atomic snapshot of named buffers.

    Args:
        buffers: Dictionary of buffer names and values, copied on construction.
    """

    def __init__(self, buffers):

        self._buffers = {name: copy_buffer(val) for name, val in buffers.items()}

    def get_buffers(self):
        """Return fresh copies of all stored buffers."""

        return {name: copy_buffer(val) for name, val in self._buffers.items()}


class CheckpointStore:
    """Holds at most one Checkpoint; saving replaces the previous one.

    Callers requiring nested rollback must keep their own stack of stores.
    """

    def __init__(self):

        self._checkpoint = None

    @property
    def has_checkpoint(self):
        return self._checkpoint is not None

    def save(self, **buffers):
        """Snapshot the given buffers, overwriting any existing checkpoint."""

        self._checkpoint = Checkpoint(buffers)

    def recover(self, discard=True):
        """Return copies of the saved buffers.

        Args:
            discard: If True, the checkpoint is consumed and the slot emptied.

        Returns:
            Dictionary of buffer names and independent copies of their saved values.
        """

        if self._checkpoint is None:
            raise NoCheckpointError("No saved state to recover")

        buffers = self._checkpoint.get_buffers()
        if discard:
            self._checkpoint = None
        return buffers

    def clear(self):
        self._checkpoint = None
