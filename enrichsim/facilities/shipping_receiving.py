import logging

from simpy.core import Environment

from enrichsim.containers import MaterialBuffer
from enrichsim.exchange import BidPortfolio, Request, Trade
from enrichsim.facilities import SimulationFacility
from enrichsim.resources import EPS_RSRC, Global_Index, Material, get_recipe


class Source(SimulationFacility):
    ''' Material source class (e.g. a mine or conversion plant shipping feed)
    name: name for the facility (ex. mine1)
    Offers up to {throughput} kg of {out_commod} at {recipe_name} each timestep
    '''
    def __init__(self,
                 name: str,
                 env: Environment,
                 indexer: Global_Index,
                 out_commod: str,
                 recipe_name: str,
                 throughput: float = 1e299,
                 **kwargs):
        super().__init__(name, env, indexer)
        self.out_commod = out_commod
        self.recipe_name = recipe_name
        self.composition = get_recipe(recipe_name)
        self.throughput = throughput
        self.remaining = throughput
        self.total_shipped = 0.0

    def tick(self):
        self.remaining = self.throughput

    def get_material_bids(self, commod_requests: dict[str, list[Request]]) -> list[BidPortfolio]:
        portfolio = BidPortfolio(self, self.out_commod)
        for request in commod_requests.get(self.out_commod, []):
            qty = min(request.quantity, self.remaining)
            if qty <= EPS_RSRC:
                continue
            offer = Material(qty, self.composition, name=self.recipe_name)
            portfolio.bids.append(self.new_bid(request, offer))
        return [portfolio] if portfolio.bids else []

    def get_material_trades(self, trades: list[Trade]) -> list[tuple[Trade, Material]]:
        responses = []
        for trade in trades:
            qty = min(trade.amt, self.remaining)
            self.remaining -= qty
            material = self.new_material(qty, self.composition, name=self.recipe_name)
            self.total_shipped += qty
            responses.append((trade, material))
        logging.info(f't={self.now}: {self.name} shipped {sum(m.quantity for _, m in responses)} kg of {self.out_commod}')
        return responses

    def dict_of_stores(self):
        return {}


class Sink(SimulationFacility):
    ''' Material sink class (e.g. a fuel fabricator or repository)
    Requests its remaining inventory space, split evenly over {in_commods}, at {recipe_name}
    and keeps whatever it receives in {inventory}
    '''
    def __init__(self,
                 name: str,
                 env: Environment,
                 indexer: Global_Index,
                 in_commods: list[str] | str,
                 recipe_name: str,
                 max_inv_size: float = 1e299,
                 preference: float = 1.0,
                 **kwargs):
        super().__init__(name, env, indexer)
        if isinstance(in_commods, str):
            in_commods = [in_commods]
        self.in_commods: list[str] = list(in_commods)
        self.recipe_name = recipe_name
        self.composition = get_recipe(recipe_name)
        self.preference = preference
        self.inventory = MaterialBuffer(env, capacity=max_inv_size)

    def get_material_requests(self) -> list[Request]:
        amt = self.inventory.space
        if amt <= EPS_RSRC:
            return []
        # the space is shared evenly between commodities so deliveries always fit
        amt /= len(self.in_commods)
        return [self.new_request(commod, Material(amt, self.composition, name=self.recipe_name), self.preference)
                for commod in self.in_commods]

    def accept_material_trades(self, responses: list[tuple[Trade, Material]]) -> None:
        for trade, material in responses:
            self.place_items(self.inventory, material)
            logging.info(f't={self.now}: {self.name} received {material.quantity} kg of {trade.request.commodity}')

    def dict_of_stores(self):
        return {'inventory': self.inventory}
