"""
Resource exchange tests: matching by preference, portfolio constraints,
and the Source / Sink facilities that trade through it.
"""
import pytest

from enrichsim.assays import Assays, swu_required
from enrichsim.exchange import NO_PREFERENCE, ResourceExchange
from enrichsim.facilities.enrichment import Enrichment
from enrichsim.facilities.shipping_receiving import Sink, Source
from enrichsim.resources import EPS_RSRC, U235, Material, add_recipe, get_recipe

EXAMPLE = Assays(feed=0.0072, product=0.05, tails=0.003)


def run_period(env, facilities):
    exchange = ResourceExchange(env)
    for facility in facilities:
        facility.tick()
    trades = exchange.resolve(facilities)
    return exchange, trades


@pytest.fixture
def enrichment(env, indexer):
    def factory(**kwargs):
        params = dict(in_commod='natl_u', out_commod='enriched_u', tails_commod='tails', in_recipe='natl_u')
        params.update(kwargs)
        facility = Enrichment('enrichment', env, indexer, **params)
        facility.build()
        return facility
    return factory


class TestSourceSink:
    def test_source_bids_up_to_throughput(self, env, indexer):
        mine = Source('mine', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=30)
        sink = Sink('store', env, indexer, in_commods='natl_u', recipe_name='natl_u', max_inv_size=100)
        (portfolio,) = mine.get_material_bids({'natl_u': sink.get_material_requests()})
        assert portfolio.bids[0].offer.quantity == pytest.approx(30)

    def test_sink_splits_space(self, env, indexer):
        sink = Sink('store', env, indexer, in_commods=['a', 'b'], recipe_name='natl_u', max_inv_size=100)
        requests = sink.get_material_requests()
        assert [r.commodity for r in requests] == ['a', 'b']
        assert [r.quantity for r in requests] == pytest.approx([50, 50])

    def test_source_to_sink(self, env, indexer):
        mine = Source('mine', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=30)
        sink = Sink('store', env, indexer, in_commods=['natl_u'], recipe_name='natl_u', max_inv_size=100)
        exchange, trades = run_period(env, [mine, sink])
        assert len(trades) == 1
        assert sink.inventory.quantity == pytest.approx(30)
        assert mine.total_shipped == pytest.approx(30)
        assert exchange.history == [{'week': 0, 'commodity': 'natl_u', 'supplier': 'mine',
                                     'requester': 'store', 'quantity': pytest.approx(30)}]

    def test_throughput_resets_each_period(self, env, indexer):
        mine = Source('mine', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=30)
        sink = Sink('store', env, indexer, in_commods=['natl_u'], recipe_name='natl_u', max_inv_size=100)
        for _ in range(4):
            run_period(env, [mine, sink])
        assert sink.inventory.quantity == pytest.approx(100)
        assert mine.total_shipped == pytest.approx(100)

    def test_no_self_trades(self, env, indexer):
        # a facility that both requests and supplies a commodity never trades with itself
        depot = Source('depot', env, indexer, out_commod='natl_u', recipe_name='natl_u')
        depot.get_material_requests = lambda: [depot.new_request('natl_u', Material(10, get_recipe('natl_u')))]
        exchange = ResourceExchange(env)
        portfolios = exchange.collect_bids([depot], exchange.collect_requests([depot]))
        assert portfolios == []


class TestMatching:
    def test_richer_feed_source_preferred(self, env, indexer, enrichment):
        add_recipe('test_leu_1', {U235: 0.01, 'U238': 0.99})
        natural = Source('natural', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=1000)
        rich = Source('rich', env, indexer, out_commod='natl_u', recipe_name='test_leu_1', throughput=1000)
        enr = enrichment(max_inv_size=100, recipe_tolerance=1.0)
        run_period(env, [natural, rich, enr])
        assert rich.total_shipped == pytest.approx(100)
        assert natural.total_shipped == 0.0
        assert enr.inventory.composition()[U235] == pytest.approx(0.01)

    def test_falls_back_to_less_preferred_feed(self, env, indexer, enrichment):
        add_recipe('test_leu_1', {U235: 0.01, 'U238': 0.99})
        natural = Source('natural', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=1000)
        rich = Source('rich', env, indexer, out_commod='natl_u', recipe_name='test_leu_1', throughput=30)
        enr = enrichment(max_inv_size=100, recipe_tolerance=1.0)
        run_period(env, [natural, rich, enr])
        assert rich.total_shipped == pytest.approx(30)
        assert natural.total_shipped == pytest.approx(70)
        assert enr.inventory.quantity == pytest.approx(100)

    def test_rejected_feed_not_traded(self, env, indexer, enrichment):
        depleted = Source('depleted', env, indexer, out_commod='natl_u', recipe_name='depleted_u', throughput=1000)
        enr = enrichment(max_inv_size=100, recipe_tolerance=1.0)
        _, trades = run_period(env, [depleted, enr])
        assert trades == []
        assert enr.inventory.empty()

    def test_swu_constraint_prevents_overcommitment(self, env, indexer, enrichment):
        enr = enrichment(initial_reserves=1000, swu_capacity=10)
        fab_a = Sink('fab_a', env, indexer, in_commods=['enriched_u'], recipe_name='leu_5', max_inv_size=1.0)
        fab_b = Sink('fab_b', env, indexer, in_commods=['enriched_u'], recipe_name='leu_5', max_inv_size=1.0)
        _, trades = run_period(env, [enr, fab_a, fab_b])

        swu_per_kg = swu_required(1.0, EXAMPLE)
        # each bid alone fits, together they do not
        assert 10 / swu_per_kg > 1.0
        assert fab_a.inventory.quantity == pytest.approx(1.0)
        assert fab_b.inventory.quantity == pytest.approx(10 / swu_per_kg - 1.0)
        assert enr.current_swu_capacity == pytest.approx(0.0, abs=1e-6)
        assert enr.generate_enrichment_table()['swu'].sum() <= 10 + EPS_RSRC

    def test_feed_constraint_prevents_overcommitment(self, env, indexer, enrichment):
        enr = enrichment(initial_reserves=15)
        fab_a = Sink('fab_a', env, indexer, in_commods=['enriched_u'], recipe_name='leu_5', max_inv_size=1.0)
        fab_b = Sink('fab_b', env, indexer, in_commods=['enriched_u'], recipe_name='leu_5', max_inv_size=1.0)
        run_period(env, [enr, fab_a, fab_b])
        delivered = fab_a.inventory.quantity + fab_b.inventory.quantity
        assert delivered == pytest.approx(15 / (0.047 / 0.0042))
        assert enr.inventory.quantity == pytest.approx(0.0, abs=1e-6)

    def test_no_preference_never_matched(self, env, indexer):
        mine = Source('mine', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=30)
        sink = Sink('store', env, indexer, in_commods=['natl_u'], recipe_name='natl_u', max_inv_size=100)
        exchange = ResourceExchange(env)
        requests = exchange.collect_requests([mine, sink])
        portfolios = exchange.collect_bids([mine, sink], requests)
        prefs = exchange.collect_preferences(portfolios)
        for bids in prefs.values():
            for bid in bids:
                bids[bid] = NO_PREFERENCE
        assert exchange.match(requests, portfolios, prefs) == []

    def test_equal_preferences_keep_bid_order(self, env, indexer):
        first = Source('first', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=60)
        second = Source('second', env, indexer, out_commod='natl_u', recipe_name='natl_u', throughput=60)
        sink = Sink('store', env, indexer, in_commods=['natl_u'], recipe_name='natl_u', max_inv_size=100)
        run_period(env, [first, second, sink])
        assert first.total_shipped == pytest.approx(60)
        assert second.total_shipped == pytest.approx(40)

    def test_tails_delivered(self, env, indexer, enrichment):
        enr = enrichment(initial_reserves=100)
        enr.place_items(enr.tails, Material(10, get_recipe('depleted_u')))
        storage = Sink('storage', env, indexer, in_commods=['tails'], recipe_name='depleted_u')
        run_period(env, [enr, storage])
        assert storage.inventory.quantity == pytest.approx(10)
        assert enr.tails.empty()
