#!/usr/bin/env python3
"""Test suite for float solution and MLAMBDA ambiguity resolution"""

import unittest

import numpy as np

from gnss_sim import GPS_SKY, SITE_BLH, make_table, random_ambiguities, simulate_epoch
from looseins.coordinate.transforms import enu2ecef, llh2ecef
from looseins.core.constants import SOLQ_FIX, SOLQ_FLOAT, SYS_GPS
from looseins.rtk.ambiguity_resolution import (
    RATIO_MAX, AmbiguityResolver, LD, bootstrap_success_rate, mlambda, ratio_test, reduction
)
from looseins.rtk.double_difference import DoubleDifferenceEngine
from looseins.satellite.satellite_position import SatellitePositionEngine


class TestLambda(unittest.TestCase):
    """Test the LAMBDA building blocks"""

    def setUp(self):
        rng = np.random.default_rng(7)
        B = rng.normal(size=(6, 6))
        self.Q = B @ B.T * 0.05 + 1e-3 * np.eye(6)

    def test_ld_factorization(self):
        L, d = LD(self.Q)
        np.testing.assert_allclose(L.T @ np.diag(d) @ L, self.Q, atol=1e-10)
        np.testing.assert_allclose(np.diag(L), np.ones(6))
        np.testing.assert_array_equal(np.triu(L, 1), np.zeros((6, 6)))

    def test_reduction_is_unimodular(self):
        L, d = LD(self.Q)
        _, d_red, Z = reduction(L.copy(), d.copy())
        self.assertAlmostEqual(abs(np.linalg.det(Z)), 1.0, places=6)
        np.testing.assert_array_equal(Z, np.round(Z))
        self.assertAlmostEqual(np.prod(d_red), np.prod(d), delta=1e-9 * np.prod(d))

    def test_mlambda_uncorrelated(self):
        a = np.array([1.2, -0.4, 3.6])
        afix, s = mlambda(a, np.eye(3))
        np.testing.assert_array_equal(afix[:, 0], [1.0, 0.0, 4.0])
        self.assertAlmostEqual(s[0], 0.36)
        self.assertAlmostEqual(s[1], 0.56)

    def test_mlambda_correlated(self):
        truth = np.array([3.0, -12.0, 7.0, 150.0, -2.0, 41.0])
        a = truth + np.array([1e-3, -2e-3, 1e-3, 0.0, 2e-3, -1e-3])
        afix, s = mlambda(a, self.Q)
        np.testing.assert_array_equal(afix[:, 0], truth)
        self.assertLess(s[0], s[1])


class TestRatioAndSuccessRate(unittest.TestCase):
    """Test validation statistics"""

    def test_ratio(self):
        self.assertAlmostEqual(ratio_test(np.array([1.0, 3.0])), 3.0)
        self.assertEqual(ratio_test(np.array([0.0, 1.0])), RATIO_MAX)
        self.assertEqual(ratio_test(np.array([1e-9, 1.0])), RATIO_MAX)
        self.assertEqual(ratio_test(np.array([1.0])), 0.0)

    def test_success_rate(self):
        self.assertAlmostEqual(bootstrap_success_rate(np.eye(2)), 0.146631, places=4)
        self.assertGreater(bootstrap_success_rate(1e-4 * np.eye(4)), 0.999999)


class TestRatioValidation(unittest.TestCase):
    """Test the integer search with ratio validation"""

    def setUp(self):
        self.resolver = AmbiguityResolver()
        self.Q = 0.01 * np.eye(3)

    def test_clear_gap_is_fixed(self):
        a_fix, ratio = self.resolver.search(np.array([1.02, -2.97, 4.01]), self.Q)
        self.assertAlmostEqual(ratio, 94.14 / 0.14, places=6)
        np.testing.assert_array_equal(a_fix, [1.0, -3.0, 4.0])

    def test_tied_candidates_not_fixed(self):
        a_fix, ratio = self.resolver.search(np.array([1.5, -2.97, 4.01]), self.Q)
        self.assertAlmostEqual(ratio, 1.0)
        self.assertIsNone(a_fix)

    def test_threshold_is_strict(self):
        a = np.array([1.2, -0.4, 3.6])
        _, s = mlambda(a, np.eye(3))
        ratio = ratio_test(s)

        a_fix, _ = AmbiguityResolver(ratio_threshold=ratio).search(a, np.eye(3))
        self.assertIsNone(a_fix)

        a_fix, _ = AmbiguityResolver(ratio_threshold=ratio - 1e-6).search(a, np.eye(3))
        np.testing.assert_array_equal(a_fix, [1.0, 0.0, 4.0])


class TestAmbiguityResolver(unittest.TestCase):
    """Test the baseline solution on a synthetic short baseline"""

    def setUp(self):
        self.table = make_table(GPS_SKY)
        self.base_pos = llh2ecef(SITE_BLH)
        self.rover_pos = enu2ecef(np.array([800.0, -450.0, 3.0]), SITE_BLH)

        self.amb_rover = random_ambiguities(self.table, seed=1)
        self.amb_base = random_ambiguities(self.table, seed=2)
        rover = simulate_epoch(self.table, self.rover_pos, clock=2e-4,
                               ambiguities=self.amb_rover, troposphere=False)
        base = simulate_epoch(self.table, self.base_pos, clock=-1e-4,
                              ambiguities=self.amb_base, troposphere=False)

        engine = SatellitePositionEngine(self.table)
        self.rover_states = engine.compute(rover, self.rover_pos)
        self.base_states = engine.compute(base, self.base_pos)
        elevations = {k: s.elevation for k, s in self.rover_states.items()}
        self.dd = DoubleDifferenceEngine().form(rover, base, elevations)
        self.resolver = AmbiguityResolver()

    def _resolve(self, dd=None):
        dd = self.dd if dd is None else dd
        return self.resolver.resolve(dd, self.rover_states, self.base_states, self.base_pos,
                                     self.rover_pos + np.array([1.5, -2.0, 3.0]))

    def _true_dd_ambiguities(self):
        values = []
        for f in range(2):
            for rec in self.dd.records:
                ref = (rec.sys, rec.ref_prn)
                sd = self.amb_rover[rec.key][f] - self.amb_base[rec.key][f]
                sd_ref = self.amb_rover[ref][f] - self.amb_base[ref][f]
                values.append(sd - sd_ref)
        return np.array(values)

    def test_float_solution(self):
        x, Q = self.resolver.float_solution(self.dd, self.rover_states, self.base_states,
                                            self.base_pos, np.zeros(3))
        n = len(self.dd)
        self.assertEqual(x.shape, (3 + 2 * n,))
        self.assertEqual(Q.shape, (3 + 2 * n, 3 + 2 * n))
        np.testing.assert_allclose(x[:3], self.rover_pos - self.base_pos, atol=1e-3)
        np.testing.assert_allclose(x[3:], self._true_dd_ambiguities(), atol=1e-2)

    def test_fix(self):
        sol = self._resolve()
        self.assertEqual(sol.quality, SOLQ_FIX)
        self.assertGreater(sol.ratio, 3.0)
        np.testing.assert_allclose(sol.baseline, self.rover_pos - self.base_pos, atol=1e-3)
        np.testing.assert_allclose(sol.position, self.rover_pos, atol=1e-3)
        np.testing.assert_array_equal(sol.fixed_ambiguities, self._true_dd_ambiguities())
        self.assertEqual(sol.ns, len(GPS_SKY))
        self.assertGreater(sol.success_rate, 0.0)

    def test_ratio_at_cap_stays_float(self):
        # the noise-free fix reports the capped ratio, which does not exceed itself
        self.resolver = AmbiguityResolver(ratio_threshold=RATIO_MAX)
        sol = self._resolve()
        self.assertEqual(sol.quality, SOLQ_FLOAT)
        self.assertEqual(sol.ratio, RATIO_MAX)
        self.assertIsNone(sol.fixed_ambiguities)
        np.testing.assert_allclose(sol.baseline, self.rover_pos - self.base_pos, atol=1e-3)

    def test_too_few_double_differences(self):
        short = type(self.dd)(self.dd.time, self.dd.records[:2], self.dd.reference)
        self.assertIsNone(self._resolve(short))

    def test_reference_per_system(self):
        self.assertEqual(self.dd.reference, {SYS_GPS: 1})
        self.assertEqual(len(self.dd), len(GPS_SKY) - 1)


if __name__ == '__main__':
    unittest.main()
