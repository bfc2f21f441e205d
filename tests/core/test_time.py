#!/usr/bin/env python3
"""Test suite for GNSS time handling"""

import unittest
from datetime import datetime

from looseins.core.time import GNSSTime, gps_seconds_to_week_tow, timediff


class TestGNSSTime(unittest.TestCase):
    """Test week/seconds-of-week arithmetic"""

    def test_normalization(self):
        t = GNSSTime(2200, 604800.5)
        self.assertEqual(t.week, 2201)
        self.assertAlmostEqual(t.tow, 0.5)

        t = GNSSTime(2200, -1.0)
        self.assertEqual(t.week, 2199)
        self.assertAlmostEqual(t.tow, 604799.0)

    def test_invalid_system(self):
        with self.assertRaises(ValueError):
            GNSSTime(2200, 0.0, 'GAL')

    def test_arithmetic(self):
        t0 = GNSSTime(2200, 604799.0)
        t1 = t0 + 2.0
        self.assertEqual(t1.week, 2201)
        self.assertAlmostEqual(t1 - t0, 2.0)
        self.assertEqual(t1 - 2.0, t0)
        self.assertTrue(t0 < t1)
        self.assertTrue(t1 >= t0)

    def test_bds_conversion(self):
        t = GNSSTime(2200, 100.0)
        bdt = t.convert_to('BDS')
        self.assertEqual(bdt.time_sys, 'BDS')
        self.assertEqual(bdt.week, 844)
        self.assertAlmostEqual(bdt.tow, 86.0)
        self.assertEqual(bdt.convert_to('GPS'), t)

    def test_bds_conversion_across_week(self):
        bdt = GNSSTime(2200, 5.0).convert_to('BDS')
        self.assertEqual(bdt.week, 843)
        self.assertAlmostEqual(bdt.tow, 604791.0)

    def test_mixed_systems_rejected(self):
        with self.assertRaises(ValueError):
            GNSSTime(2200, 0.0) - GNSSTime(844, 0.0, 'BDS')

    def test_from_datetime(self):
        t = GNSSTime.from_datetime(datetime(1980, 1, 13, 0, 0, 30))
        self.assertEqual(t.week, 1)
        self.assertAlmostEqual(t.tow, 30.0)
        self.assertEqual(t.to_datetime(), datetime(1980, 1, 13, 0, 0, 30))

    def test_mjd(self):
        self.assertAlmostEqual(GNSSTime(0, 0.0).to_mjd(), 44244.0)
        t = GNSSTime.from_mjd(60000.25)
        self.assertAlmostEqual(t.to_mjd(), 60000.25, places=9)
        self.assertAlmostEqual(t.tow % 86400.0, 21600.0, places=3)


class TestTimeHelpers(unittest.TestCase):
    """Test seconds-of-week helpers"""

    def test_timediff_rollover(self):
        self.assertAlmostEqual(timediff(10.0, 604790.0), 20.0)
        self.assertAlmostEqual(timediff(604790.0, 10.0), -20.0)
        self.assertAlmostEqual(timediff(500.0, 100.0), 400.0)

    def test_week_tow(self):
        week, tow = gps_seconds_to_week_tow(2200 * 604800.0 + 12.5)
        self.assertEqual(week, 2200)
        self.assertAlmostEqual(tow, 12.5)


if __name__ == '__main__':
    unittest.main()
