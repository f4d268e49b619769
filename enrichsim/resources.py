'''
The Resources module contains the material representation used by the enrichment
simulation and the library of named recipes facilities request and produce.

Materials are a quantity (kg) together with an isotopic breakdown given as mass
fractions keyed by nuclide/element name (e.g. "U235", "U238", "F"). Recipes are
named compositions; a facility refers to a recipe by name in its configuration.
'''
from __future__ import annotations
import numpy as np

from enrichsim.errors import ConfigurationError, InsufficientQuantity

# Quantities closer than this (kg) are treated as equal
EPS_RSRC = 1e-6

U235 = 'U235'
U238 = 'U238'

class Material(object):
    """Class for representing materials in the fuel cycle simulation

    A material is a quantity of mass with a homogeneous composition. The composition
    is normalized on construction so the mass fractions always sum to one. Materials
    are handed between facilities by value: the exchange, the inventory buffers and
    the enrichment split all create new Material objects rather than aliasing them.

    Attributes:
        quantity : mass of the material (kg)
        isotopes : dictionary of nuclide name -> mass fraction
        name : recipe or descriptive name of the material
        id : global id from Global_Index (None for untracked materials)
        when : timestep when the material was created
        where : facility name where the material was created
    """
    def __init__(self,
                 quantity: float,
                 isotopes: dict[str, float],
                 name: str = '',
                 id: int | None = None,
                 when: int | None = None,
                 where: str | None = None):
        if quantity < 0:
            raise ValueError(f"Material quantity must be non-negative, got {quantity}")
        total = sum(isotopes.values())
        if any(frac < 0 for frac in isotopes.values()) or total <= 0:
            raise ValueError(f"Invalid composition {isotopes}")
        self.quantity: float = float(quantity)
        self.isotopes: dict = {nuc: frac / total for nuc, frac in isotopes.items() if frac > 0}
        self.name: str = name
        self.id = id
        self.when = when
        self.where = where

    def mass(self, nuc: str) -> float:
        """Mass (kg) of a single nuclide in the material"""
        return self.quantity * self.isotopes.get(nuc, 0.0)

    def mass_fraction(self, *nucs: str) -> float:
        """Combined mass fraction of the given nuclides

        Returns:
            float: Sum of the mass fractions of *nucs* (0 if none are present)
        """
        return sum(self.isotopes.get(nuc, 0.0) for nuc in nucs)

    def copy(self, quantity: float | None = None) -> Material:
        """Untracked copy of the material, optionally with a different quantity"""
        if quantity is None:
            quantity = self.quantity
        return Material(quantity, dict(self.isotopes), name=self.name)

    def extract(self, quantity: float) -> Material:
        """Split *quantity* kg off this material

        The split is a pure mass split: the extracted material carries the same
        composition and this material keeps the remainder.

        Args:
            quantity (float): Mass to remove (kg)

        Raises:
            InsufficientQuantity: If more than the available quantity is requested

        Returns:
            Material: The extracted material
        """
        if quantity > self.quantity + EPS_RSRC:
            raise InsufficientQuantity(f"Cannot extract {quantity} kg from {self.quantity} kg of {self.name}")
        quantity = min(quantity, self.quantity)
        self.quantity -= quantity
        return Material(quantity, dict(self.isotopes), name=self.name, when=self.when, where=self.where)

    def absorb(self, other: Material) -> None:
        """Mix *other* into this material, emptying it

        The resulting composition is the mass-weighted blend of the two materials.
        """
        total = self.quantity + other.quantity
        if total > 0:
            nucs = self.isotopes.keys() | other.isotopes.keys()
            self.isotopes = {nuc: (self.mass(nuc) + other.mass(nuc)) / total for nuc in nucs}
            self.isotopes = {nuc: frac for nuc, frac in self.isotopes.items() if frac > 0}
        self.quantity = total
        other.quantity = 0.0

    def __str__(self) -> str:
        """Return a string representation of the material

        Returns:
            str: String representation of the material
        """
        return f'ID: {self.id} - {self.name} ({self.isotopes}) - QUANTITY: {self.quantity}'

def uranium_composition(assay: float) -> dict[str, float]:
    """Two-isotope uranium composition at the given U-235 mass fraction"""
    return {U235: assay, U238: 1.0 - assay}

def compositions_close(a: dict[str, float], b: dict[str, float], tolerance: float) -> bool:
    """Check that two normalized compositions agree nuclide by nuclide within *tolerance*"""
    return all(np.isclose(a.get(nuc, 0.0), b.get(nuc, 0.0), rtol=0.0, atol=tolerance)
               for nuc in a.keys() | b.keys())

# Named recipes available to every facility. Scenario files can add to this
# library (see SimulationRun.load_config).
RECIPES: dict[str, dict[str, float]] = {
    'natl_u':      {U235: 0.0072, U238: 0.9928},
    'depleted_u':  {U235: 0.003, U238: 0.997},
    'leu_5':       {U235: 0.05, U238: 0.95},
    'leu_10':      {U235: 0.10, U238: 0.90},
    'UF6':         {U235: 0.00467, U238: 0.67145, 'F': 0.32388},
    'UO2':         {U235: 0.0061, U238: 0.87544, 'O': 0.11845},
    'U3O8':        {U235: 0.00586, U238: 0.84218, 'O': 0.152},
}

def add_recipe(name: str, isotopes: dict[str, float]) -> None:
    """Register (or replace) a named recipe

    Args:
        name (str): Recipe name used in facility configurations
        isotopes (dict[str, float]): Nuclide name -> relative mass proportion
    """
    total = sum(isotopes.values())
    if total <= 0 or any(frac < 0 for frac in isotopes.values()):
        raise ConfigurationError(f"Recipe {name} has an invalid composition {isotopes}")
    RECIPES[name] = {nuc: frac / total for nuc, frac in isotopes.items()}

def get_recipe(name: str) -> dict[str, float]:
    """Look up a named recipe

    Raises:
        ConfigurationError: If no recipe with that name is registered

    Returns:
        dict[str, float]: A copy of the normalized recipe composition
    """
    try:
        isotopes = RECIPES[name]
    except KeyError:
        raise ConfigurationError(f"No recipe named {name}") from None
    total = sum(isotopes.values())
    return {nuc: frac / total for nuc, frac in isotopes.items()}

class Global_Index:
    ''' Global indexer maintains current index for each type of simulation entity.
    When a new material, request or bid is created at any facility it gets a unique index
    '''
    def __init__(self):
        """Initialize the global indexer
        """
        self.material_index=0
        self.request_index=0
        self.bid_index=0

    #functions store and retrieve the next index for each entity type
    def next_material(self) -> int:
        """Get the index of the next material created in the simulation

        Returns:
            int: The index of the new material
        """
        self.material_index = self.material_index+1
        return self.material_index

    def next_request(self) -> int:
        """Get the index of the next request placed on the exchange

        Returns:
            int: The index of the new request
        """
        self.request_index = self.request_index+1
        return self.request_index

    def next_bid(self) -> int:
        """Get the index of the next bid placed on the exchange

        Returns:
            int: The index of the new bid
        """
        self.bid_index = self.bid_index+1
        return self.bid_index
