"""
The enrichsim containers module contains the inventory buffers facilities hold
material in. A MaterialBuffer is an ordered collection of material lots with a
total-quantity capacity; material is drawn down oldest lot first.

Buffers are monitored every period: the simulation saves the current level and
the mass that went in and out, and the history is available as pandas DataFrames.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
import simpy

from enrichsim.errors import CapacityExceeded, ConfigurationError, InsufficientQuantity
from enrichsim.resources import EPS_RSRC, Material

INVENTORY_COLUMNS = ['week', 'quantity', 'count', 'U235']
INVENTORY_TYPES = [int, float, int, float]

def record_to_row(week, buffer):
    return dict(zip(INVENTORY_COLUMNS, [week, buffer.quantity, buffer.count, buffer.mass('U235')]))

class MaterialBuffer(object):
    '''
    FIFO store of material lots with a capacity on the total quantity held.

    Pushing keeps each material as a separate lot. Popping removes an exact
    quantity from the front of the buffer, splitting the oldest remaining lot
    when the requested quantity does not end on a lot boundary, and returns the
    removed mass as a single new material.
    '''
    def __init__(self, env: simpy.Environment | None = None, capacity: float = np.inf):
        if capacity < 0:
            raise ConfigurationError(f"Buffer capacity must be non-negative, got {capacity}")
        self.env = env
        self._capacity: float = capacity
        self.lots: list[Material] = []
        self.inventory: list[dict] = []
        self.weekly_ins: list[float] = []
        self.weekly_outs: list[float] = []
        self.ins = 0.0
        self.outs = 0.0

    @property
    def capacity(self) -> float:
        return self._capacity

    @capacity.setter
    def capacity(self, capacity: float) -> None:
        if capacity < self.quantity - EPS_RSRC:
            raise ConfigurationError(f"Cannot shrink buffer capacity to {capacity} below its contents ({self.quantity})")
        self._capacity = capacity

    @property
    def quantity(self) -> float:
        """Total mass held (kg)"""
        return float(sum(lot.quantity for lot in self.lots))

    @property
    def space(self) -> float:
        """Remaining headroom below capacity (kg)"""
        return max(0.0, self._capacity - self.quantity)

    @property
    def count(self) -> int:
        return len(self.lots)

    def empty(self) -> bool:
        return len(self.lots) == 0

    def mass(self, nuc: str) -> float:
        """Mass (kg) of one nuclide across all lots"""
        return float(sum(lot.mass(nuc) for lot in self.lots))

    def composition(self) -> dict[str, float]:
        """Mass-weighted composition of everything in the buffer (empty dict if empty)"""
        total = self.quantity
        if total <= 0:
            return {}
        nucs = set().union(*(lot.isotopes.keys() for lot in self.lots))
        return {nuc: self.mass(nuc) / total for nuc in nucs}

    def push(self, material: Material) -> None:
        """Add a material to the back of the buffer

        Args:
            material (Material): Material to store

        Raises:
            CapacityExceeded: If the material does not fit in the remaining space
        """
        if self.quantity + material.quantity > self._capacity + EPS_RSRC:
            raise CapacityExceeded(f"Pushing {material.quantity} kg onto a buffer holding {self.quantity} kg "
                                   f"exceeds its capacity of {self._capacity} kg")
        self.lots.append(material)
        self.ins += material.quantity

    def pop(self, quantity: float) -> Material:
        """Remove exactly *quantity* kg from the front of the buffer

        Args:
            quantity (float): Mass to remove (kg)

        Raises:
            InsufficientQuantity: If the buffer holds less than *quantity*

        Returns:
            Material: The removed mass, blended into a single material
        """
        available = self.quantity
        if quantity > available + EPS_RSRC:
            raise InsufficientQuantity(f"Cannot pop {quantity} kg from a buffer holding {available} kg")
        if quantity <= 0 or self.empty():
            raise InsufficientQuantity(f"Cannot pop {quantity} kg from a buffer holding {available} kg")

        popped: Material | None = None
        remaining = min(quantity, available)
        while self.lots and (popped is None or remaining > EPS_RSRC):
            front = self.lots[0]
            if front.quantity <= remaining + EPS_RSRC:
                piece = self.lots.pop(0)
            else:
                piece = front.extract(remaining)
            remaining -= piece.quantity
            if popped is None:
                popped = piece
            else:
                popped.absorb(piece)
        self.outs += popped.quantity
        return popped

    def pop_all(self) -> Material:
        """Empty the buffer into a single blended material"""
        return self.pop(self.quantity)

    def _save_inventory_record(self):
        """Save a copy of the current state of the inventory plus the in and
            out records for the buffer. Reset ins and outs tracking.
        """
        week = self.env.now if self.env is not None else len(self.inventory)
        self.inventory.append(record_to_row(week, self))
        self.weekly_ins.append(self.ins)
        self.weekly_outs.append(self.outs)
        self.ins = 0.0
        self.outs = 0.0

    def generate_ins_and_outs_table(self):
        weeks = range(len(self.weekly_ins))
        return pd.DataFrame({'week':weeks, 'ins':self.weekly_ins, 'outs':self.weekly_outs})

    def generate_inventory_table(self) -> pd.DataFrame:
        """Return a dataframe representation of the inventory history

        Returns:
            DataFrame: One row per saved record, indexed by week
        """
        if not self.inventory:
            return pd.DataFrame({name: pd.Series(dtype=type_) for name, type_ in zip(INVENTORY_COLUMNS, INVENTORY_TYPES)}).set_index('week')
        return pd.DataFrame(self.inventory).set_index('week')
