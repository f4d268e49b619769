import logging
from dataclasses import dataclass, field, fields

import numpy as np
import pandas as pd
from simpy.core import Environment

from enrichsim.assays import Assays, feed_qty, swu_required, uranium_assay
from enrichsim.containers import MaterialBuffer
from enrichsim.converters import NatUConverter, SWUConverter
from enrichsim.errors import CompositionMismatch, ConfigurationError, ConstraintViolation, DegenerateAssay
from enrichsim.exchange import NO_PREFERENCE, Bid, BidPortfolio, CapacityConstraint, Request, Trade
from enrichsim.facilities import SimulationFacility
from enrichsim.resources import (EPS_RSRC, U235, U238, Global_Index, Material, compositions_close,
                                 get_recipe, uranium_composition)

ENRICHMENT_COLUMNS = ['time', 'natural_uranium', 'swu']

@dataclass(frozen=True)
class EnrichmentConfig:
    '''Fixed parameters of an enrichment facility

    in_commod           {str}: Commodity requested as feed (usually natural uranium)
    out_commod          {str}: Commodity supplied as enriched product
    tails_commod        {str}: Commodity supplied as depleted tails
    in_recipe           {str}: Recipe the feed is requested at and checked against on delivery
    tails_assay         {float}: U-235 fraction of the tails stream
    max_enrich          {float}: Highest product U-235 fraction the facility will make
    swu_capacity        {float}: Separative work available each period (kg SWU)
    max_inv_size        {float}: Capacity of the feed inventory (kg)
    initial_reserves    {float}: Feed placed in inventory when the facility is built (kg)
    out_recipe          {str}: Optional product recipe; its U-235 fraction caps the feed the facility prefers
    recipe_tolerance    {float}: Per-nuclide mass fraction tolerance when checking delivered feed
    '''
    in_commod: str
    out_commod: str
    tails_commod: str
    in_recipe: str
    tails_assay: float = 0.003
    max_enrich: float = 1.0
    swu_capacity: float = 1e299
    max_inv_size: float = 1e299
    initial_reserves: float = 0.0
    out_recipe: str | None = None
    recipe_tolerance: float = 1e-6

    @property
    def in_composition(self) -> dict[str, float]:
        return get_recipe(self.in_recipe)

    @property
    def preference_ceiling(self) -> float:
        """Highest U-235 mass fraction of feed the facility will accept"""
        if self.out_recipe is None:
            return self.max_enrich
        return get_recipe(self.out_recipe).get(U235, 0.0)

    def validate(self) -> None:
        """Check the parameters describe a physically valid enrichment

        Raises:
            ConfigurationError: If a capacity is negative, the assays are out of order or a recipe is unusable
        """
        for label in ('swu_capacity', 'max_inv_size', 'initial_reserves', 'recipe_tolerance'):
            if getattr(self, label) < 0:
                raise ConfigurationError(f"{label} must be non-negative, got {getattr(self, label)}")
        if self.initial_reserves > self.max_inv_size:
            raise ConfigurationError(f"initial_reserves ({self.initial_reserves}) exceed max_inv_size ({self.max_inv_size})")
        if not 0.0 < self.tails_assay < 1.0:
            raise ConfigurationError(f"tails_assay must lie strictly between 0 and 1, got {self.tails_assay}")
        if not 0.0 < self.max_enrich <= 1.0:
            raise ConfigurationError(f"max_enrich must lie in (0, 1], got {self.max_enrich}")

        feed_assay = uranium_assay(Material(1.0, self.in_composition))
        if not self.tails_assay < feed_assay < self.max_enrich:
            raise ConfigurationError(f"Recipe {self.in_recipe} has assay {feed_assay}; it must lie strictly between "
                                     f"tails_assay ({self.tails_assay}) and max_enrich ({self.max_enrich})")

        if self.out_recipe is not None:
            out_composition = get_recipe(self.out_recipe)
            if set(out_composition) - {U235, U238}:
                raise ConfigurationError(f"out_recipe {self.out_recipe} must only contain {U235} and {U238}, "
                                         f"got {sorted(out_composition)}")

@dataclass
class EnrichmentState:
    '''Mutable state of an enrichment facility

    current_swu_capacity {float}: SWU left in the current period
    inventory {MaterialBuffer}: Feed waiting to be enriched
    tails {MaterialBuffer}: Depleted material left over from enrichment
    records {list}: One entry per enrichment performed
    '''
    current_swu_capacity: float
    inventory: MaterialBuffer
    tails: MaterialBuffer
    records: list = field(default_factory=list)

class Enrichment(SimulationFacility):
    '''Enrichment facility class
    Requests feed of {in_commod} up to its remaining inventory space and supplies enriched {out_commod}
    and depleted {tails_commod}. Production is limited by two constraints that are debited together:
    the separative work left this period and the feed held in inventory.

    inventory      {MaterialBuffer} :Contains feed lots, drawn down oldest first
    tails          {MaterialBuffer} :Contains tails produced by enrichment (unbounded)

    Feed offers are preferred by U-235 content: richer feed needs less separative work and less
    inventory per kg of product. Offers with no U-235, below the tails assay, or above the product
    ceiling are rejected.

    Bids on product requests are sized so that neither constraint can be breached by a single trade,
    and each product bid portfolio carries both constraints so the exchange cannot over-commit
    the facility across several trades in one period.

    The feed assay used for sizing and enrichment is the average over the whole inventory, while
    the feed actually consumed comes from the front of the inventory. With lots of different assays
    the two differ slightly; the product and tails are still given their nominal assays.
    '''
    def __init__(self,
                 name: str,
                 env: Environment,
                 indexer: Global_Index,
                 in_commod: str,
                 out_commod: str,
                 tails_commod: str,
                 in_recipe: str,
                 **kwargs):
        super().__init__(name, env, indexer)
        params = {f.name: kwargs[f.name] for f in fields(EnrichmentConfig) if f.name in kwargs}
        self.config = EnrichmentConfig(in_commod=in_commod,
                                       out_commod=out_commod,
                                       tails_commod=tails_commod,
                                       in_recipe=in_recipe,
                                       **params)
        self.config.validate()
        self.state = EnrichmentState(current_swu_capacity=self.config.swu_capacity,
                                     inventory=MaterialBuffer(env, capacity=self.config.max_inv_size),
                                     tails=MaterialBuffer(env))

    def __str__(self) -> str:
        c = self.config
        return (f'{self.name}: enrichment facility taking {c.in_commod} ({c.in_recipe}) to {c.out_commod} '
                f'with tails {c.tails_commod} at {c.tails_assay}; SWU capacity {c.swu_capacity}, '
                f'inventory {self.state.inventory.quantity}/{c.max_inv_size} kg')

    @property
    def current_swu_capacity(self) -> float:
        return self.state.current_swu_capacity

    @property
    def inventory(self) -> MaterialBuffer:
        return self.state.inventory

    @property
    def tails(self) -> MaterialBuffer:
        return self.state.tails

    def dict_of_stores(self):
        return {'inventory':    self.state.inventory,
                'tails':        self.state.tails}

    def build(self):
        if self.config.initial_reserves > 0:
            reserves = self.new_material(self.config.initial_reserves, self.config.in_composition, name=self.config.in_recipe)
            self.place_items(self.state.inventory, reserves)
            logging.info(f't={self.now}: {self.name} starts with {reserves.quantity} kg of {self.config.in_recipe}')

    def tick(self):
        self.state.current_swu_capacity = self.config.swu_capacity

    def tock(self):
        logging.info(f't={self.now}: {self.name} holds {self.state.inventory.quantity} kg feed, '
                     f'{self.state.tails.quantity} kg tails, {self.state.current_swu_capacity} SWU unused')

    def feed_assay(self) -> float:
        """U-235 fraction of the uranium across the whole feed inventory (0 if it holds none)"""
        u235 = self.state.inventory.mass(U235)
        uranium = u235 + self.state.inventory.mass(U238)
        if uranium <= 0:
            return 0.0
        return u235 / uranium

    def _uranium_fraction(self) -> float:
        quantity = self.state.inventory.quantity
        if quantity <= 0:
            return 0.0
        return (self.state.inventory.mass(U235) + self.state.inventory.mass(U238)) / quantity

    def valid_request(self, material: Material) -> bool:
        """A material can be enriched to or from only if it holds both uranium isotopes
        and its assay is above the tails assay
        """
        if material.mass_fraction(U235) <= 0 or material.mass_fraction(U238) <= 0:
            return False
        return uranium_assay(material) > self.config.tails_assay

    # --- requests for feed ---

    def get_material_requests(self) -> list[Request]:
        amt = self.state.inventory.space
        if amt <= EPS_RSRC:
            return []
        target = Material(amt, self.config.in_composition, name=self.config.in_recipe)
        logging.info(f't={self.now}: {self.name} requested {amt} kg of {self.config.in_commod}')
        return [self.new_request(self.config.in_commod, target)]

    def adjust_material_preferences(self, prefs: dict[Request, dict[Bid, float]]) -> None:
        ceiling = self.config.preference_ceiling
        for request, bids in prefs.items():
            if request.commodity != self.config.in_commod:
                continue
            for bid in bids:
                f = bid.offer.mass_fraction(U235)
                if f == 0 or f > ceiling or not self.valid_request(bid.offer):
                    bids[bid] = NO_PREFERENCE
                else:
                    bids[bid] = f

    def accept_material_trades(self, responses: list[tuple[Trade, Material]]) -> None:
        for trade, material in responses:
            if trade.request.commodity == self.config.in_commod:
                self._add_material(material)

    def _add_material(self, material: Material) -> None:
        if not compositions_close(material.isotopes, self.config.in_composition, self.config.recipe_tolerance):
            raise CompositionMismatch(f"{self.name} received {material.isotopes}, which does not match "
                                      f"recipe {self.config.in_recipe} {self.config.in_composition}")
        self.place_items(self.state.inventory, material)
        logging.info(f't={self.now}: {self.name} added {material.quantity} kg of {self.config.in_commod} to inventory')

    # --- bids for product and tails ---

    def get_material_bids(self, commod_requests: dict[str, list[Request]]) -> list[BidPortfolio]:
        portfolios = []
        if self.config.out_commod in commod_requests:
            portfolio = self._product_bids(commod_requests[self.config.out_commod])
            if portfolio.bids:
                portfolios.append(portfolio)
        if self.config.tails_commod in commod_requests:
            portfolio = self._tails_bids(commod_requests[self.config.tails_commod])
            if portfolio.bids:
                portfolios.append(portfolio)
        return portfolios

    def _offer(self, target: Material, quantity: float) -> Material:
        """Product offer for *target*: uranium only, at the target's U-235/U-238 ratio"""
        return self.new_material(quantity, uranium_composition(uranium_assay(target)), name=self.config.out_commod)

    def _product_bids(self, requests: list[Request]) -> BidPortfolio:
        portfolio = BidPortfolio(self, self.config.out_commod)
        swu_available = self.state.current_swu_capacity
        natu_available = self.state.inventory.quantity * self._uranium_fraction()
        if natu_available <= EPS_RSRC or swu_available <= EPS_RSRC:
            return portfolio

        feed_assay = self.feed_assay()
        swu_converter = SWUConverter(feed_assay, self.config.tails_assay)
        natu_converter = NatUConverter(feed_assay, self.config.tails_assay)
        for request in requests:
            target = request.target
            assay = uranium_assay(target)
            if not self.valid_request(target):
                logging.debug(f't={self.now}: {self.name} cannot supply request {request.id} at assay {assay}')
                continue
            if assay > self.config.max_enrich and not np.isclose(assay, self.config.max_enrich):
                logging.debug(f't={self.now}: {self.name} request {request.id} above max_enrich ({assay})')
                continue
            if assay <= feed_assay:
                logging.debug(f't={self.now}: {self.name} request {request.id} not above feed assay ({assay})')
                continue

            unit = self._offer(target, 1.0)
            swu_limit = swu_available / swu_converter.convert(unit)
            natu_limit = natu_available / natu_converter.convert(unit)
            qty = min(request.quantity, swu_limit, natu_limit)
            logging.debug(f't={self.now}: {self.name} request {request.id} of {request.quantity} kg, '
                          f'SWU limit {swu_limit} kg, feed limit {natu_limit} kg')
            if qty <= EPS_RSRC:
                continue
            portfolio.bids.append(self.new_bid(request, self._offer(target, qty)))

        portfolio.constraints = [CapacityConstraint(swu_available, swu_converter),
                                 CapacityConstraint(natu_available, natu_converter)]
        return portfolio

    def _tails_bids(self, requests: list[Request]) -> BidPortfolio:
        portfolio = BidPortfolio(self, self.config.tails_commod)
        available = self.state.tails.quantity
        composition = self.state.tails.composition()
        for request in requests:
            if available <= EPS_RSRC:
                break
            qty = min(request.quantity, available)
            if qty <= EPS_RSRC:
                continue
            available -= qty
            offer = self.new_material(qty, composition, name=self.config.tails_commod)
            portfolio.bids.append(self.new_bid(request, offer))
        return portfolio

    # --- trade execution ---

    def get_material_trades(self, trades: list[Trade]) -> list[tuple[Trade, Material]]:
        responses = []
        for trade in trades:
            commodity = trade.request.commodity
            if commodity == self.config.out_commod:
                material = self._enrich(trade.bid.offer, trade.amt)
            elif commodity == self.config.tails_commod:
                material = self.state.tails.pop(trade.amt)
                material.id, material.when, material.where = self.indexer.next_material(), self.now, self.name
                material.name = self.config.tails_commod
                logging.info(f't={self.now}: {self.name} shipped {material.quantity} kg of {commodity}')
            else:
                raise ValueError(f"{self.name} does not supply {commodity}")
            responses.append((trade, material))
        return responses

    def _enrich(self, material: Material, qty: float) -> Material:
        """Enrich feed from inventory into *qty* kg of product at *material*'s assay

        Args:
            material (Material): Offered material giving the requested product assay
            qty (float): Product mass to make (kg)

        Raises:
            DegenerateAssay: If the product assay is not above the feed assay
            ConstraintViolation: If the SWU or feed needed exceeds what is left; nothing is changed

        Returns:
            Material: The enriched product
        """
        inventory = self.state.inventory
        if inventory.quantity <= EPS_RSRC:
            raise ConstraintViolation(f"{self.name} has no feed to enrich {qty} kg of {self.config.out_commod}")

        product_assay = min(self.config.max_enrich, uranium_assay(material))
        assays = Assays(self.feed_assay(), product_assay, self.config.tails_assay)
        if product_assay <= assays.feed:
            raise DegenerateAssay(f"{self.name} cannot enrich to {product_assay} from feed at {assays.feed}")
        natu_req = feed_qty(qty, assays)
        swu_req = swu_required(qty, assays)
        # non-uranium components of the feed come along with the uranium
        feed_req = natu_req / self._uranium_fraction()

        if swu_req > self.state.current_swu_capacity + EPS_RSRC:
            raise ConstraintViolation(f"{self.name} needs {swu_req} SWU for {qty} kg at {product_assay} but has "
                                      f"{self.state.current_swu_capacity} SWU left")
        if feed_req > inventory.quantity + EPS_RSRC:
            raise ConstraintViolation(f"{self.name} needs {feed_req} kg of feed for {qty} kg at {product_assay} but "
                                      f"holds {inventory.quantity} kg")

        feed = inventory.pop(min(feed_req, inventory.quantity))
        product = self.new_material(qty, uranium_composition(product_assay), name=self.config.out_commod)
        tails_mass = feed.quantity - qty
        if tails_mass > 0:
            leftover = self.new_material(tails_mass, self._tails_composition(feed, qty), name=self.config.tails_commod)
            self.place_items(self.state.tails, leftover)
        self.state.current_swu_capacity = max(0.0, self.state.current_swu_capacity - swu_req)
        self._record_enrichment(natu_req, swu_req)
        logging.info(f't={self.now}: {self.name} enriched {feed.quantity} kg of feed into {qty} kg of '
                     f'{self.config.out_commod} at {product_assay} and {tails_mass} kg of tails')
        return product

    def _tails_composition(self, feed: Material, qty: float) -> dict[str, float]:
        """Composition of what is left of *feed* once *qty* kg of uranium leaves as product

        The remaining uranium is at the tails assay; every other nuclide stays in the tails.
        """
        masses = {nuc: feed.mass(nuc) for nuc in feed.isotopes if nuc not in (U235, U238)}
        uranium = max(0.0, feed.mass(U235) + feed.mass(U238) - qty)
        masses[U235] = uranium * self.config.tails_assay
        masses[U238] = uranium * (1.0 - self.config.tails_assay)
        return masses

    def _record_enrichment(self, natural_u: float, swu: float) -> None:
        self.state.records.append(dict(zip(ENRICHMENT_COLUMNS, [self.now, natural_u, swu])))
        logging.info(f't={self.now}: {self.name} used {natural_u} kg natural uranium and {swu} SWU')

    def generate_enrichment_table(self) -> pd.DataFrame:
        """Return a dataframe with one row per enrichment performed"""
        return pd.DataFrame(self.state.records, columns=ENRICHMENT_COLUMNS)
