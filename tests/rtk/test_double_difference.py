#!/usr/bin/env python3
"""Test suite for single and double difference formation"""

import unittest

import numpy as np

from looseins.core.constants import SYS_BDS, SYS_GPS
from looseins.core.data_structures import EpochObservation, SatelliteObservation
from looseins.core.time import GNSSTime
from looseins.rtk.double_difference import DoubleDifferenceEngine, single_differences

T0 = GNSSTime(2200, 345600.0)


def _obs(sys, prn, offset=0.0, valid=None):
    rng = 2.0e7 + 1.0e4 * prn + offset
    return SatelliteObservation(sys, prn, P=[rng, rng + 1.0], L=[rng / 0.19, rng / 0.24],
                                valid=valid)


def _pair(keys, rover_offset=100.0):
    rover = EpochObservation(T0, [_obs(s, p, rover_offset) for s, p in keys])
    base = EpochObservation(T0, [_obs(s, p) for s, p in reversed(keys)])
    return rover, base


class TestSingleDifferences(unittest.TestCase):
    """Test between-receiver differences"""

    def test_common_valid_satellites(self):
        rover = EpochObservation(T0, [_obs(SYS_GPS, 1, 5.0), _obs(SYS_GPS, 2, 5.0),
                                      _obs(SYS_GPS, 3, 5.0, valid=False)])
        base = EpochObservation(T0, [_obs(SYS_GPS, 3), _obs(SYS_GPS, 2)])
        sds = single_differences(rover, base)

        self.assertEqual([sd.key for sd in sds], [(SYS_GPS, 2)])
        sd = sds[0]
        self.assertEqual((sd.rover_index, sd.base_index), (1, 1))
        np.testing.assert_allclose(sd.psr, [5.0, 5.0])
        np.testing.assert_allclose(sd.cp, [5.0 / 0.19, 5.0 / 0.24], rtol=1e-6)

    def test_invalid_base(self):
        rover = EpochObservation(T0, [_obs(SYS_GPS, 1)])
        base = EpochObservation(T0, [_obs(SYS_GPS, 1, valid=False)])
        self.assertEqual(single_differences(rover, base), [])


class TestDoubleDifferenceEngine(unittest.TestCase):
    """Test reference selection and DD values"""

    def setUp(self):
        self.engine = DoubleDifferenceEngine()
        self.keys = [(SYS_GPS, 1), (SYS_GPS, 5), (SYS_GPS, 8), (SYS_GPS, 12),
                     (SYS_BDS, 19), (SYS_BDS, 22), (SYS_BDS, 27)]
        self.elevations = {
            (SYS_GPS, 1): np.radians(80.0), (SYS_GPS, 5): np.radians(50.0),
            (SYS_GPS, 8): np.radians(40.0), (SYS_GPS, 12): np.radians(35.0),
            (SYS_BDS, 19): np.radians(55.0), (SYS_BDS, 22): np.radians(45.0),
            (SYS_BDS, 27): np.radians(38.0),
        }

    def test_form(self):
        rover, base = _pair(self.keys)
        dd = self.engine.form(rover, base, self.elevations)

        self.assertEqual(dd.reference, {SYS_GPS: 1, SYS_BDS: 19})
        self.assertEqual(len(dd), 5)
        self.assertEqual(dd.count(SYS_GPS), 3)
        self.assertEqual(dd.count(SYS_BDS), 2)
        self.assertTrue(all(r.prn != dd.reference[r.sys] for r in dd.records))

        # common receiver offsets cancel between satellites
        for rec in dd.records:
            self.assertEqual(rec.values.shape, (4,))
            np.testing.assert_allclose(rec.values[2:], [0.0, 0.0], atol=1e-6)
            np.testing.assert_allclose(rec.values[:2], [0.0, 0.0], atol=1e-5)

    def test_values_and_indices(self):
        rover = EpochObservation(T0, [_obs(SYS_GPS, 1, 10.0), _obs(SYS_GPS, 5, 17.0)])
        base = EpochObservation(T0, [_obs(SYS_GPS, 5), _obs(SYS_GPS, 1)])
        dd = self.engine.form(rover, base, self.elevations)

        rec = dd.records[0]
        self.assertEqual((rec.prn, rec.ref_prn), (5, 1))
        self.assertEqual((rec.rover_index, rec.base_index), (1, 0))
        self.assertEqual((rec.ref_rover_index, rec.ref_base_index), (0, 1))
        np.testing.assert_allclose(rec.values, [7.0 / 0.19, 7.0 / 0.24, 7.0, 7.0], rtol=1e-6)

    def test_idempotent(self):
        rover, base = _pair(self.keys, rover_offset=1234.5)
        first = self.engine.form(rover, base, self.elevations)
        second = self.engine.form(rover, base, self.elevations)
        self.assertEqual(first.reference, second.reference)
        for a, b in zip(first.records, second.records):
            self.assertEqual(a.key, b.key)
            np.testing.assert_array_equal(a.values, b.values)

    def test_elevation_mask(self):
        elevations = dict(self.elevations)
        elevations[(SYS_GPS, 12)] = np.radians(10.0)
        del elevations[(SYS_GPS, 8)]
        rover, base = _pair(self.keys)
        dd = self.engine.form(rover, base, elevations)
        self.assertEqual({r.prn for r in dd.records if r.sys == SYS_GPS}, {5})

    def test_single_satellite_system(self):
        keys = [(SYS_GPS, 1), (SYS_GPS, 5), (SYS_BDS, 19)]
        rover, base = _pair(keys)
        dd = self.engine.form(rover, base, self.elevations)
        self.assertEqual(dd.reference, {SYS_GPS: 1, SYS_BDS: 19})
        self.assertEqual(dd.count(SYS_BDS), 0)

    def test_tie_prefers_lower_prn(self):
        sds = single_differences(*_pair([(SYS_GPS, 8), (SYS_GPS, 5)]))
        ref = self.engine.select_reference(sds, {(SYS_GPS, 5): 0.7, (SYS_GPS, 8): 0.7})
        self.assertEqual(ref, {SYS_GPS: 5})

    def test_hysteresis(self):
        sds = single_differences(*_pair([(SYS_GPS, 1), (SYS_GPS, 5)]))

        ref = self.engine.select_reference(sds, {(SYS_GPS, 1): np.radians(60.0),
                                                 (SYS_GPS, 5): np.radians(50.0)})
        self.assertEqual(ref[SYS_GPS], 1)

        # PRN 5 is higher but within the margin
        ref = self.engine.select_reference(sds, {(SYS_GPS, 1): np.radians(55.0),
                                                 (SYS_GPS, 5): np.radians(62.0)})
        self.assertEqual(ref[SYS_GPS], 1)

        ref = self.engine.select_reference(sds, {(SYS_GPS, 1): np.radians(55.0),
                                                 (SYS_GPS, 5): np.radians(70.0)})
        self.assertEqual(ref[SYS_GPS], 5)

    def test_lost_reference(self):
        self.engine.form(*_pair(self.keys), self.elevations)
        self.assertEqual(self.engine.reference[SYS_GPS], 1)

        keys = [k for k in self.keys if k != (SYS_GPS, 1)]
        dd = self.engine.form(*_pair(keys), self.elevations)
        self.assertEqual(dd.reference[SYS_GPS], 5)

    def test_reset(self):
        self.engine.form(*_pair(self.keys), self.elevations)
        self.engine.reset()
        self.assertEqual(self.engine.reference, {})


if __name__ == '__main__':
    unittest.main()
