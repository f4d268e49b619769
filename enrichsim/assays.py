"""Enrichment mass balance: feed and separative work for a product quantity.

Assays are U-235 mass fractions of the uranium in a stream. The separative work
is evaluated with the standard value function

    V(x) = (2x - 1) ln(x / (1 - x))

and the feed and tails quantities come from the two conservation equations

    F = P + T
    F xf = P xp + T xt
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from enrichsim.errors import DegenerateAssay
from enrichsim.resources import Material, U235, U238

# Assays closer than this are considered coincident
ASSAY_TOLERANCE = 1e-12


@dataclass(frozen=True)
class Assays:
    feed: float
    product: float
    tails: float


def value_function(x: float) -> float:
    """Standard enrichment value function."""
    return (2 * x - 1) * np.log(x / (1 - x))


def _check(assays: Assays) -> None:
    for label, x in (('feed', assays.feed), ('product', assays.product), ('tails', assays.tails)):
        if not 0.0 < x < 1.0:
            raise DegenerateAssay(f"{label} assay {x} must lie strictly between 0 and 1")
    if abs(assays.feed - assays.tails) < ASSAY_TOLERANCE:
        raise DegenerateAssay(f"feed assay {assays.feed} equals tails assay {assays.tails}")
    if abs(assays.feed - assays.product) < ASSAY_TOLERANCE:
        raise DegenerateAssay(f"feed assay {assays.feed} equals product assay {assays.product}")


def feed_qty(product_qty: float, assays: Assays) -> float:
    """Feed mass needed to produce *product_qty* of product."""
    _check(assays)
    return product_qty * (assays.product - assays.tails) / (assays.feed - assays.tails)


def tails_qty(product_qty: float, assays: Assays) -> float:
    """Tails mass left over when producing *product_qty* of product."""
    return feed_qty(product_qty, assays) - product_qty


def swu_required(product_qty: float, assays: Assays) -> float:
    """Separative work needed to produce *product_qty* of product at the given assays."""
    f_mass = feed_qty(product_qty, assays)
    w_mass = f_mass - product_qty
    return float(product_qty * value_function(assays.product)
                 + w_mass * value_function(assays.tails)
                 - f_mass * value_function(assays.feed))


def uranium_assay(material: Material) -> float:
    """U-235 fraction of the uranium in *material* (0 if it holds no uranium)."""
    uranium = material.mass_fraction(U235, U238)
    if uranium <= 0:
        return 0.0
    return material.mass_fraction(U235) / uranium
