"""Tests for the best-average Monte Carlo pricer."""

import math

import numpy as np
import pytest
from impliedvol import BestAverageMC, OptionSpec, CALL, PUT, gbm_step
from impliedvol.validation import monotonicity_check

S0, K, T, r = 100.0, 100.0, 0.5, 0.05
SEED = 42


class TestGBMStep:
    def test_in_place(self):
        spots = np.full(1000, 100.0, dtype=np.longdouble)
        out = gbm_step(spots, 0.05, 0.2, 0.01, np.random.default_rng(SEED))
        assert out is spots
        assert spots.dtype == np.longdouble
        assert np.all(spots > 0)
        assert not np.all(spots == 100.0)

    def test_zero_vol_is_pure_drift(self):
        spots = np.full(10, 100.0)
        gbm_step(spots, 0.05, 0.0, 0.1, np.random.default_rng(SEED))
        np.testing.assert_allclose(spots, 100.0 * math.exp(0.005))

    def test_mean_matches_forward(self):
        spots = np.full(200_000, 100.0)
        gbm_step(spots, 0.05, 0.3, 0.25, np.random.default_rng(SEED))
        expected = 100.0 * math.exp(0.05 * 0.25)
        assert abs(spots.mean() - expected) / expected < 0.005


class TestBestAverageMC:
    def test_seed_reproducible(self):
        a = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=SEED)
        b = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=SEED)
        assert a.result == b.result

    def test_different_seeds_differ(self):
        a = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=1)
        b = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=2)
        assert a.call != b.call

    def test_entropy_seeding_by_default(self):
        a = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20)
        b = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20)
        assert a.call != b.call

    def test_get_price_accessors(self):
        m = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=SEED)
        assert m.get_price(CALL) == m.call == m.get_price("c")
        assert m.get_price(PUT) == m.put == m.get_price("put")
        with pytest.raises(ValueError):
            m.get_price("x")

    def test_premiums_non_negative_and_plausible(self):
        m = BestAverageMC(T, S0, K, r, 0.2, seed=SEED)
        assert m.call.dtype == np.longdouble
        # ATM at sigma=0.2, T=0.5: roughly 0.4 * S0 * sigma * sqrt(T) ≈ 5.7
        assert 4.0 < m.call < 9.0
        assert 2.0 < m.put < 7.0
        assert m.n_paths == 10_000 and m.n_steps == 100

    def test_best_step_in_range(self):
        m = BestAverageMC(T, S0, K, r, 0.2, n_paths=2000, n_steps=20, seed=SEED)
        assert 0 <= m.result.call_step <= 20
        assert 0 <= m.result.put_step <= 20
        # ATM call with positive drift keeps gaining value to expiry
        assert m.result.call_step > 10

    def test_from_spec(self):
        spec = OptionSpec(S0=S0, K=K, T=T, r=r, sigma=0.2)
        a = BestAverageMC.from_spec(spec, n_paths=500, n_steps=10, seed=SEED)
        b = BestAverageMC(T, S0, K, r, 0.2, n_paths=500, n_steps=10, seed=SEED)
        assert a.result == b.result
        assert a.spec == spec

    def test_workers_do_not_change_result(self):
        kw = dict(n_paths=2000, n_steps=10, seed=SEED, chunk_size=500)
        serial = BestAverageMC(T, S0, K, r, 0.25, n_workers=1, **kw)
        parallel = BestAverageMC(T, S0, K, r, 0.25, n_workers=2, **kw)
        assert serial.result == parallel.result

    def test_reused_seed_sequence_reproducible(self):
        ss = np.random.SeedSequence(2024)
        a = BestAverageMC(T, S0, K, r, 0.2, n_paths=500, n_steps=5, seed=ss)
        b = BestAverageMC(T, S0, K, r, 0.2, n_paths=500, n_steps=5, seed=ss)
        assert a.result == b.result
        assert ss.n_children_spawned == 0

    def test_premium_keeps_simulation_dtype(self):
        kw = dict(n_paths=500, n_steps=5, seed=SEED)
        ext = BestAverageMC(T, S0, K, r, 0.2, **kw)
        dbl = BestAverageMC(T, S0, K, r, 0.2, dtype=np.float64, **kw)
        assert ext.get_price(PUT).dtype == np.longdouble
        assert dbl.get_price(PUT).dtype == np.float64

    def test_double_precision_close_to_extended(self):
        kw = dict(n_paths=2000, n_steps=10, seed=SEED)
        ext = BestAverageMC(T, S0, K, r, 0.25, **kw)
        dbl = BestAverageMC(T, S0, K, r, 0.25, dtype=np.float64, **kw)
        assert abs(ext.call - dbl.call) < 1e-9

    @pytest.mark.parametrize("kw", [dict(n_paths=0), dict(n_steps=0), dict(chunk_size=0)])
    def test_bad_sizes(self, kw):
        with pytest.raises(ValueError):
            BestAverageMC(T, S0, K, r, 0.2, **kw)

    @pytest.mark.parametrize("args", [
        (0.0, S0, K, r, 0.2),
        (T, -1.0, K, r, 0.2),
        (T, S0, 0.0, r, 0.2),
        (T, S0, K, r, -0.1),
        (float("nan"), S0, K, r, 0.2),
        (T, S0, K, r, float("nan")),
        (T, S0, K, float("inf"), 0.2),
    ])
    def test_bad_inputs(self, args):
        with pytest.raises(ValueError):
            BestAverageMC(*args, n_paths=10, n_steps=2)


class TestMonotonicity:
    @pytest.mark.parametrize("kind", [CALL, PUT])
    def test_higher_vol_higher_premium(self, kind):
        spec = OptionSpec(S0=S0, K=K, T=T, r=r, sigma=0.2)
        res = monotonicity_check(spec, kind, 0.2, 0.3, n_trials=30, seed=SEED,
                                 n_paths=2000, n_steps=20)
        assert res["fraction"] >= 0.9
        assert res["high_prices"].mean() > res["low_prices"].mean()


class TestDegenerateVolatility:
    """At sigma -> 0 every path follows S0 * exp(r t)."""

    def test_call_tracks_forward_intrinsic(self):
        m = BestAverageMC(1.0, 100.0, 95.0, 0.05, 1e-8, n_paths=100, n_steps=50, seed=SEED)
        assert m.call == pytest.approx(100.0 * math.exp(0.05) - 95.0, abs=1e-4)
        assert m.result.call_step == 50
        assert m.put == 0.0
        assert m.result.put_step == 0

    def test_put_best_at_first_step(self):
        m = BestAverageMC(1.0, 100.0, 110.0, 0.05, 1e-8, n_paths=100, n_steps=50, seed=SEED)
        assert m.put == pytest.approx(110.0 - 100.0 * math.exp(0.05 / 50), abs=1e-4)
        assert m.result.put_step == 1
        assert m.call == 0.0

    def test_at_the_money_no_drift(self):
        m = BestAverageMC(1.0, 100.0, 100.0, 0.0, 1e-8, n_paths=100, n_steps=50, seed=SEED)
        assert m.call == pytest.approx(0.0, abs=1e-4)
        assert m.put == pytest.approx(0.0, abs=1e-4)
