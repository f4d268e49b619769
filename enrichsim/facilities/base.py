from __future__ import annotations

from simpy.core import Environment

from enrichsim.containers import MaterialBuffer
from enrichsim.exchange import Bid, BidPortfolio, Request, Trade
from enrichsim.resources import Global_Index, Material

class SimulationFacility:
    """'SimulationFacility' is a base class for enrichsim facilities to extend.

    The scheduler calls :py:meth:'tick' at the start and :py:meth:'tock' at the end of every
    period. In between, the resource exchange calls the material callbacks in order: requests,
    bids, preference adjustment, trade fulfilment and trade acceptance. The default callbacks
    take no part in the market.

    Raises:
        NotImplementedError: Error is raised if the facility does not implement the required :py:meth:'dict_of_stores' method
    """
    def __init__(self, name, env, indexer, **kwargs):
        """Constructor for :class:'SimulationFacility'

        Args:
            name (String): Name of the facility
            env (Simpy.Environment): Simpy simulation environment
            indexer (Global_Index): Global_Index gives unique indices to all materials, requests and bids

        """
        self.name: str = name
        self.env: Environment = env
        self.indexer: Global_Index = indexer

    @property
    def now(self) -> int:
        return self.env.now if self.env is not None else 0

    def new_material(self, quantity: float, isotopes: dict, name: str = '') -> Material:
        """Create a tracked material stamped with this facility and the current time"""
        return Material(quantity, isotopes, name=name, id=self.indexer.next_material(), when=self.now, where=self.name)

    def new_request(self, commodity: str, target: Material, preference: float = 1.0) -> Request:
        return Request(self.indexer.next_request(), self, commodity, target, preference)

    def new_bid(self, request: Request, offer: Material) -> Bid:
        return Bid(self.indexer.next_bid(), request, self, offer)

    def place_items(self, store: MaterialBuffer, items: list[Material]):
        """Places the materials in :var:'items' into *store* and stamps them with this facility.

        Args:
            store (MaterialBuffer): The buffer to place the materials into.
            items (list): The materials to be placed in the store.
        """
        if not isinstance(items, list):
            items = [items]
        for item in items:
            item.where = self.name
            store.push(item)
        return

    def build(self) -> None:
        """Perform any set up needed when the facility enters the simulation"""

    def tick(self) -> None:
        """Beginning-of-period bookkeeping"""

    def tock(self) -> None:
        """End-of-period bookkeeping"""

    def get_material_requests(self) -> list[Request]:
        return []

    def get_material_bids(self, commod_requests: dict[str, list[Request]]) -> list[BidPortfolio]:
        return []

    def adjust_material_preferences(self, prefs: dict[Request, dict[Bid, float]]) -> None:
        """Adjust (in place) the preferences of the bids made on this facility's requests"""

    def get_material_trades(self, trades: list[Trade]) -> list[tuple[Trade, Material]]:
        return []

    def accept_material_trades(self, responses: list[tuple[Trade, Material]]) -> None:
        return None

    def dict_of_stores(self) -> dict:
        """Return a dictionary of stores used by facility

        Raises:
            NotImplementedError: _description_

        Returns:
            dict: Buffers in facility
        """
        raise NotImplementedError("Facilities must implement method to retrieve dictionary of stores")
