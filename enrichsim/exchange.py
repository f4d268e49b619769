'''
The exchange module implements the market facilities trade material through
once per simulated period.

Each period the exchange
    1. collects requests for material from every facility,
    2. collects bids on those requests, grouped in portfolios that may carry
       capacity constraints priced through converters,
    3. lets every requester adjust its preference for the bids on its requests,
    4. matches bids to requests greedily by preference, never exceeding a
       request, an offer, or a portfolio constraint,
    5. asks suppliers to fulfil the matched trades and hands the resulting
       materials to the requesters.
'''
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from enrichsim.converters import Converter
from enrichsim.resources import EPS_RSRC, Material

if TYPE_CHECKING:
    from enrichsim.facilities import SimulationFacility

# Preference given to bids a requester will not accept
NO_PREFERENCE = -1.0

@dataclass(eq=False)
class Request:
    """Request for *target.quantity* kg of *commodity* at the target's composition"""
    id: int
    requester: SimulationFacility
    commodity: str
    target: Material
    preference: float = 1.0

    @property
    def quantity(self) -> float:
        return self.target.quantity

@dataclass(eq=False)
class Bid:
    """Offer of material in response to one request"""
    id: int
    request: Request
    bidder: SimulationFacility
    offer: Material

@dataclass(frozen=True)
class CapacityConstraint:
    """Limit on the total converted cost of the bids in a portfolio"""
    capacity: float
    converter: Converter

@dataclass(eq=False)
class BidPortfolio:
    bidder: SimulationFacility
    commodity: str
    bids: list[Bid] = field(default_factory=list)
    constraints: list[CapacityConstraint] = field(default_factory=list)

@dataclass(eq=False)
class Trade:
    request: Request
    bid: Bid
    amt: float

class ResourceExchange:
    """Single-period greedy market between a set of facilities

    Matching is deterministic: requests are served in the order they were
    placed, and bids on a request are tried from highest to lowest preference
    with ties broken by the order the bids were placed.
    """
    def __init__(self, env=None):
        self.env = env
        self.history: list[dict] = []

    def _now(self):
        return self.env.now if self.env is not None else None

    def collect_requests(self, facilities: list[SimulationFacility]) -> dict[str, list[Request]]:
        commod_requests: dict[str, list[Request]] = {}
        for facility in facilities:
            for request in facility.get_material_requests():
                commod_requests.setdefault(request.commodity, []).append(request)
        return commod_requests

    def collect_bids(self, facilities: list[SimulationFacility],
                     commod_requests: dict[str, list[Request]]) -> list[BidPortfolio]:
        portfolios = []
        for facility in facilities:
            for portfolio in facility.get_material_bids(commod_requests):
                portfolio.bids = [bid for bid in portfolio.bids if bid.request.requester is not facility]
                if portfolio.bids:
                    portfolios.append(portfolio)
        return portfolios

    @staticmethod
    def collect_preferences(portfolios: list[BidPortfolio]) -> dict[Request, dict[Bid, float]]:
        prefs: dict[Request, dict[Bid, float]] = {}
        for portfolio in portfolios:
            for bid in portfolio.bids:
                prefs.setdefault(bid.request, {})[bid] = bid.request.preference
        return prefs

    def match(self, commod_requests: dict[str, list[Request]],
              portfolios: list[BidPortfolio],
              prefs: dict[Request, dict[Bid, float]]) -> list[Trade]:
        """Match bids to requests

        Returns:
            list[Trade]: The matched trades, in request order
        """
        portfolio_of = {bid: portfolio for portfolio in portfolios for bid in portfolio.bids}
        headroom = {id(constraint): constraint.capacity for portfolio in portfolios for constraint in portfolio.constraints}
        offered = {bid: bid.offer.quantity for bid in portfolio_of}
        trades = []
        for requests in commod_requests.values():
            for request in requests:
                remaining = request.quantity
                candidates = prefs.get(request, {})
                # sorted() is stable, so equal preferences keep bid arrival order
                ranked = sorted(candidates.items(), key=lambda item: -item[1])
                for bid, preference in ranked:
                    if remaining <= EPS_RSRC:
                        break
                    if preference <= 0:
                        continue
                    amt = min(remaining, offered[bid])
                    for constraint in portfolio_of[bid].constraints:
                        amt = min(amt, self._constraint_limit(constraint, bid.offer, headroom[id(constraint)]))
                    if amt <= EPS_RSRC:
                        continue
                    for constraint in portfolio_of[bid].constraints:
                        headroom[id(constraint)] -= constraint.converter.convert(bid.offer.copy(amt))
                    offered[bid] -= amt
                    remaining -= amt
                    trades.append(Trade(request, bid, amt))
                    logging.debug(f't={self._now()}: matched {amt} kg of {request.commodity} from '
                                  f'{bid.bidder.name} to {request.requester.name}')
        return trades

    @staticmethod
    def _constraint_limit(constraint: CapacityConstraint, offer: Material, headroom: float) -> float:
        """Largest quantity of *offer* whose converted cost fits in *headroom*

        Converters are linear in the material quantity, so the limit follows
        from the unit cost of the offer.
        """
        if headroom <= 0:
            return 0.0
        unit_cost = constraint.converter.convert(offer.copy(1.0))
        if unit_cost <= 0:
            return offer.quantity
        return headroom / unit_cost

    def execute(self, trades: list[Trade]) -> None:
        """Have suppliers fulfil the trades and deliver the materials to the requesters"""
        by_supplier: dict[SimulationFacility, list[Trade]] = {}
        for trade in trades:
            by_supplier.setdefault(trade.bid.bidder, []).append(trade)

        by_requester: dict[SimulationFacility, list[tuple[Trade, Material]]] = {}
        for supplier, supplier_trades in by_supplier.items():
            for trade, material in supplier.get_material_trades(supplier_trades):
                by_requester.setdefault(trade.request.requester, []).append((trade, material))
                self.history.append({'week': self._now(),
                                     'commodity': trade.request.commodity,
                                     'supplier': supplier.name,
                                     'requester': trade.request.requester.name,
                                     'quantity': material.quantity})

        for requester, responses in by_requester.items():
            requester.accept_material_trades(responses)

    def resolve(self, facilities: list[SimulationFacility]) -> list[Trade]:
        """Run one full request / bid / preference / match / trade cycle"""
        commod_requests = self.collect_requests(facilities)
        portfolios = self.collect_bids(facilities, commod_requests)
        prefs = self.collect_preferences(portfolios)
        for facility in facilities:
            own = {request: bids for request, bids in prefs.items() if request.requester is facility}
            if own:
                facility.adjust_material_preferences(own)
                for request, bids in own.items():
                    prefs[request] = bids
        trades = self.match(commod_requests, portfolios, prefs)
        logging.info(f't={self._now()}: exchange matched {len(trades)} trade(s)')
        self.execute(trades)
        return trades
