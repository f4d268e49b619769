"""
Mass balance and converter tests
"""
import math
import pytest

from enrichsim.assays import Assays, feed_qty, swu_required, tails_qty, uranium_assay, value_function
from enrichsim.converters import Converter, ConverterKind, NatUConverter, SWUConverter
from enrichsim.errors import DegenerateAssay
from enrichsim.resources import Material


@pytest.fixture
def assays():
    return Assays(feed=0.0072, product=0.05, tails=0.003)


# ══════════════════════════════════════════════════════════════
#  assays.py tests
# ══════════════════════════════════════════════════════════════

class TestValueFunction:
    def test_symmetric_zero_at_half(self):
        assert value_function(0.5) == 0.0

    def test_matches_closed_form(self):
        x = 0.05
        assert value_function(x) == pytest.approx((2 * x - 1) * math.log(x / (1 - x)))

    def test_positive_away_from_half(self):
        assert value_function(0.003) > 0
        assert value_function(0.9) > 0


class TestFeedQty:
    def test_example_feed(self, assays):
        # (0.05 - 0.003) / (0.0072 - 0.003)
        assert feed_qty(1.0, assays) == pytest.approx(0.047 / 0.0042)

    def test_linear_in_quantity(self, assays):
        assert feed_qty(3.0, assays) == pytest.approx(3 * feed_qty(1.0, assays))

    def test_tails_closes_mass_balance(self, assays):
        feed = feed_qty(2.0, assays)
        tails = tails_qty(2.0, assays)
        assert feed == pytest.approx(2.0 + tails)
        # U-235 balance
        assert feed * assays.feed == pytest.approx(2.0 * assays.product + tails * assays.tails)


class TestSwuRequired:
    def test_matches_value_function_balance(self, assays):
        feed = feed_qty(1.0, assays)
        tails = feed - 1.0
        expected = (value_function(assays.product) + tails * value_function(assays.tails)
                    - feed * value_function(assays.feed))
        assert swu_required(1.0, assays) == pytest.approx(expected)

    def test_positive_and_finite(self, assays):
        swu = swu_required(1.0, assays)
        assert swu > 0
        assert math.isfinite(swu)

    def test_increasing_in_product_assay(self):
        swus = [swu_required(1.0, Assays(0.0072, xp, 0.003)) for xp in (0.01, 0.03, 0.05, 0.2, 0.9)]
        assert all(a < b for a, b in zip(swus, swus[1:]))

    def test_zero_quantity(self, assays):
        assert swu_required(0.0, assays) == 0.0

    @pytest.mark.parametrize('bad', [Assays(0.003, 0.05, 0.003),
                                     Assays(0.05, 0.05, 0.003),
                                     Assays(0.0072, 1.0, 0.003),
                                     Assays(0.0072, 0.05, 0.0)])
    def test_degenerate(self, bad):
        with pytest.raises(DegenerateAssay):
            swu_required(1.0, bad)
        with pytest.raises(DegenerateAssay):
            feed_qty(1.0, bad)


class TestUraniumAssay:
    def test_ignores_other_elements(self):
        uf6 = Material(10.0, {'U235': 0.00467, 'U238': 0.67145, 'F': 0.32388})
        assert uranium_assay(uf6) == pytest.approx(0.00467 / (0.00467 + 0.67145))

    def test_no_uranium(self):
        assert uranium_assay(Material(1.0, {'F': 1.0})) == 0.0


# ══════════════════════════════════════════════════════════════
#  converters.py tests
# ══════════════════════════════════════════════════════════════

class TestConverters:
    def test_structural_equality(self):
        assert SWUConverter(0.0072, 0.003) == SWUConverter(0.0072, 0.003)
        assert NatUConverter(0.0072, 0.003) == Converter(ConverterKind.NATU_COST, 0.0072, 0.003)

    def test_kind_and_parameters_distinguish(self):
        assert SWUConverter(0.0072, 0.003) != NatUConverter(0.0072, 0.003)
        assert SWUConverter(0.0072, 0.003) != SWUConverter(0.0072, 0.002)
        assert SWUConverter(0.0072, 0.003) != SWUConverter(0.0071, 0.003)

    def test_swu_conversion(self, assays):
        leu = Material(2.0, {'U235': 0.05, 'U238': 0.95})
        assert SWUConverter(0.0072, 0.003).convert(leu) == pytest.approx(swu_required(2.0, assays))

    def test_natu_conversion_pure_uranium(self, assays):
        leu = Material(2.0, {'U235': 0.05, 'U238': 0.95})
        assert NatUConverter(0.0072, 0.003).convert(leu) == pytest.approx(feed_qty(2.0, assays))

    def test_natu_conversion_scaled_by_uranium_fraction(self, assays):
        # half the mass is not uranium; the assay of the uranium is still 5%
        diluted = Material(2.0, {'U235': 0.025, 'U238': 0.475, 'O': 0.5})
        assert NatUConverter(0.0072, 0.003).convert(diluted) == pytest.approx(feed_qty(2.0, assays) / 0.5)

    def test_conversion_does_not_mutate(self):
        leu = Material(2.0, {'U235': 0.05, 'U238': 0.95})
        converter = SWUConverter(0.0072, 0.003)
        first = converter.convert(leu)
        assert converter.convert(leu) == first
        assert leu.quantity == 2.0
        assert leu.isotopes == pytest.approx({'U235': 0.05, 'U238': 0.95})

    def test_usable_as_dict_key(self):
        costs = {SWUConverter(0.0072, 0.003): 'swu'}
        assert costs[SWUConverter(0.0072, 0.003)] == 'swu'
