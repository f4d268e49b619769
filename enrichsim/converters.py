"""Converters translating a candidate product material into resource costs.

The exchange uses converters to price bids against a supplier's capacity
constraints: how much separative work, or how much natural uranium, a given
material would cost the enrichment facility to produce.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from enrichsim.assays import Assays, feed_qty, swu_required, uranium_assay
from enrichsim.resources import Material, U235, U238


class ConverterKind(Enum):
    SWU_COST = 'swu'
    NATU_COST = 'natu'


@dataclass(frozen=True)
class Converter:
    """Cost converter for a facility enriching from *feed_assay* down to *tails_assay*.

    Converters compare equal when they are of the same kind and carry the same
    feed and tails assays.
    """
    kind: ConverterKind
    feed_assay: float
    tails_assay: float

    def assays(self, material: Material) -> Assays:
        return Assays(self.feed_assay, uranium_assay(material), self.tails_assay)

    def convert(self, material: Material) -> float:
        """Resource cost of producing *material*

        Returns:
            float: SWU for SWU_COST converters, kg of feed for NATU_COST converters
        """
        assays = self.assays(material)
        if self.kind is ConverterKind.SWU_COST:
            return swu_required(material.quantity, assays)
        # only the uranium part of the material has to come out of the cascade
        natu_frac = material.mass_fraction(U235, U238)
        return feed_qty(material.quantity, assays) / natu_frac


def SWUConverter(feed_assay: float, tails_assay: float) -> Converter:
    return Converter(ConverterKind.SWU_COST, feed_assay, tails_assay)


def NatUConverter(feed_assay: float, tails_assay: float) -> Converter:
    return Converter(ConverterKind.NATU_COST, feed_assay, tails_assay)
