#!/usr/bin/env python3
"""Test suite for data structures"""

import unittest

import numpy as np

from looseins.core.constants import SOLQ_FIX, SOLQ_NONE, SYS_BDS, SYS_GPS
from looseins.core.data_structures import (
    DoubleDifference, DoubleDifferenceSet, Ephemeris, EpochObservation,
    RtkSolution, SatelliteObservation
)
from looseins.core.time import GNSSTime


class TestSatelliteObservation(unittest.TestCase):
    """Test observation validity and shape checks"""

    def test_dual_frequency_is_valid(self):
        obs = SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 2.1e7], L=[1.1e8, 8.6e7])
        self.assertTrue(obs.valid)
        self.assertEqual(obs.key, (SYS_GPS, 5))
        self.assertEqual(obs.D.shape, (2,))

    def test_missing_band_is_invalid(self):
        obs = SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 0.0], L=[1.1e8, 8.6e7])
        self.assertFalse(obs.valid)
        obs = SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 2.1e7], L=[1.1e8, 0.0])
        self.assertFalse(obs.valid)

    def test_explicit_validity(self):
        obs = SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 2.1e7], L=[1.1e8, 8.6e7], valid=False)
        self.assertFalse(obs.valid)

    def test_wrong_shape(self):
        with self.assertRaises(ValueError):
            SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 2.1e7, 2.1e7])

    def test_immutable(self):
        obs = SatelliteObservation(SYS_GPS, 5)
        with self.assertRaises(AttributeError):
            obs.prn = 6


class TestEpochObservation(unittest.TestCase):
    """Test epoch lookup and screening copies"""

    def setUp(self):
        self.epoch = EpochObservation(GNSSTime(2200, 0.0), [
            SatelliteObservation(SYS_GPS, 5, P=[2.1e7, 2.1e7], L=[1.1e8, 8.6e7]),
            SatelliteObservation(SYS_BDS, 22, P=[2.3e7, 2.3e7], L=[1.2e8, 9.6e7]),
        ])

    def test_find(self):
        self.assertEqual(self.epoch.find(SYS_BDS, 22), 1)
        self.assertIsNone(self.epoch.find(SYS_GPS, 22))
        self.assertEqual(len(self.epoch), 2)
        self.assertEqual(self.epoch.systems, (SYS_GPS, SYS_BDS))

    def test_with_invalid(self):
        screened = self.epoch.with_invalid({(SYS_GPS, 5)})
        self.assertFalse(screened[0].valid)
        self.assertTrue(screened[1].valid)
        self.assertTrue(self.epoch[0].valid)

    def test_with_invalid_nothing(self):
        self.assertIs(self.epoch.with_invalid([]), self.epoch)


class TestEphemeris(unittest.TestCase):
    """Test derived ephemeris fields"""

    def test_geo_flag(self):
        self.assertTrue(Ephemeris(SYS_BDS, 3).is_geo)
        self.assertFalse(Ephemeris(SYS_BDS, 22).is_geo)
        self.assertFalse(Ephemeris(SYS_GPS, 3).is_geo)

    def test_semi_major_axis(self):
        eph = Ephemeris(SYS_GPS, 1, sqrt_a=5153.6)
        self.assertAlmostEqual(eph.A, 5153.6 ** 2)


class TestSolutions(unittest.TestCase):
    """Test double difference sets and RTK solutions"""

    def test_dd_set_counts(self):
        records = [
            DoubleDifference(SYS_GPS, 5, 1, np.zeros(4), 0, 0, 1, 1),
            DoubleDifference(SYS_GPS, 8, 1, np.zeros(4), 2, 2, 1, 1),
            DoubleDifference(SYS_BDS, 22, 19, np.zeros(4), 3, 3, 4, 4),
        ]
        dd = DoubleDifferenceSet(GNSSTime(2200, 0.0), tuple(records), {SYS_GPS: 1, SYS_BDS: 19})
        self.assertEqual(len(dd), 3)
        self.assertEqual(dd.count(SYS_GPS), 2)
        self.assertEqual(dd.systems, (SYS_GPS, SYS_BDS))

    def test_rtk_solution_validity(self):
        t = GNSSTime(2200, 0.0)
        self.assertFalse(RtkSolution(time=t).valid)
        self.assertEqual(RtkSolution(time=t).quality, SOLQ_NONE)
        self.assertTrue(RtkSolution(time=t, quality=SOLQ_FIX).valid)


if __name__ == '__main__':
    unittest.main()
