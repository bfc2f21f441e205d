#!/usr/bin/env python3
"""Test suite for the strapdown mechanization"""

import unittest

import numpy as np

from looseins.coordinate.geodetic import earth_rate_ned, normal_gravity, radii_of_curvature
from looseins.core.constants import D2R
from looseins.fusion.mechanization import SinsMechanizer
from looseins.fusion.state import NavigationState
from looseins.sensors.imu import ImuSample

BLH = np.array([30.0 * D2R, 114.0 * D2R, 20.0])
DT = 0.01


def static_sample(time, acc_error=np.zeros(3), extra_rate=np.zeros(3)):
    """Increments sensed by a level, north-pointing IMU at rest"""
    w_ie = earth_rate_ned(BLH[0])
    f = np.array([0.0, 0.0, -normal_gravity(BLH[0], BLH[2])])
    return ImuSample(time, (w_ie + extra_rate) * DT, (f + acc_error) * DT)


def level_state(time=0.0, yaw=0.0):
    return NavigationState.from_euler(time, np.array([0.0, 0.0, yaw]), np.zeros(3), BLH)


class TestSinsMechanizer(unittest.TestCase):
    """Test propagation of attitude, velocity and position"""

    def _run(self, seconds, **kwargs):
        mech = SinsMechanizer(level_state())
        state = None
        for k in range(int(round(seconds / DT)) + 1):
            state = mech.mechanize(static_sample(k * DT, **kwargs))
        return mech, state

    def test_first_sample_initializes(self):
        mech = SinsMechanizer(level_state(time=-5.0))
        state = mech.mechanize(static_sample(10.0))
        self.assertEqual(state.time, 10.0)
        self.assertEqual(mech.dt, 0.0)
        np.testing.assert_array_equal(state.blh, BLH)
        self.assertEqual(len(mech.states), 3)
        self.assertTrue(all(s.time == 10.0 for s in mech.states))

    def test_static_drift(self):
        mech, state = self._run(20.0)
        self.assertAlmostEqual(state.time, 20.0)
        self.assertAlmostEqual(mech.dt, DT)
        np.testing.assert_allclose(state.velocity, np.zeros(3), atol=1e-6)
        rm, rn = radii_of_curvature(BLH[0])
        offset = (state.blh - BLH) * np.array([rm, rn * np.cos(BLH[0]), 1.0])
        np.testing.assert_allclose(offset, np.zeros(3), atol=1e-4)
        np.testing.assert_allclose(state.euler, np.zeros(3), atol=1e-9)

    def test_quaternion_stays_normalized(self):
        rng = np.random.default_rng(5)
        mech = SinsMechanizer(level_state())
        for k in range(2000):
            extra = rng.normal(scale=2.0, size=3)
            state = mech.mechanize(static_sample(k * DT, extra_rate=extra))
            self.assertAlmostEqual(np.linalg.norm(state.quaternion), 1.0, places=12)
            self.assertGreaterEqual(state.quaternion[0], 0.0)

    def test_north_accelerometer_bias(self):
        bias = 1e-3
        _, state = self._run(10.0, acc_error=np.array([bias, 0.0, 0.0]))
        self.assertAlmostEqual(state.velocity[0], bias * 10.0, delta=1e-5)
        rm, _ = radii_of_curvature(BLH[0])
        north = (state.blh[0] - BLH[0]) * (rm + BLH[2])
        self.assertAlmostEqual(north, 0.5 * bias * 10.0 ** 2, delta=1e-3)

    def test_heading_rotation(self):
        rate = 10.0 * D2R
        _, state = self._run(9.0, extra_rate=np.array([0.0, 0.0, rate]))
        self.assertAlmostEqual(state.euler[2], 90.0 * D2R, delta=2e-3)
        self.assertLess(abs(state.euler[0]), 2e-3)
        self.assertLess(abs(state.euler[1]), 2e-3)

    def test_degenerate_interval(self):
        mech = SinsMechanizer(level_state())
        mech.mechanize(static_sample(0.0))
        state = mech.mechanize(static_sample(DT))
        again = mech.mechanize(static_sample(DT))
        self.assertIs(again, state)
        self.assertEqual(mech.dt, 0.0)

        later = mech.mechanize(static_sample(2 * DT))
        self.assertAlmostEqual(later.time, 2 * DT)
        self.assertAlmostEqual(mech.dt, DT)

    def test_history_order(self):
        mech = SinsMechanizer(level_state())
        for k in range(4):
            mech.mechanize(static_sample(k * DT))
        times = [s.time for s in mech.states]
        np.testing.assert_allclose(times, [3 * DT, 2 * DT, DT])

    def test_reset(self):
        mech = SinsMechanizer(level_state())
        mech.mechanize(static_sample(0.0))
        corrected = level_state(time=0.0, yaw=0.5)
        mech.reset(corrected)
        self.assertIs(mech.state, corrected)

    def test_reset_shifts_history(self):
        mech = SinsMechanizer(level_state())
        for k in range(4):
            mech.mechanize(static_sample(k * DT))
        before = mech.states
        dv = np.array([0.1, -0.2, 0.05])
        dblh = np.array([1e-7, -2e-7, 0.5])
        current = mech.state
        corrected = NavigationState.from_euler(current.time, np.array([0.0, 0.0, 0.01]),
                                               current.velocity + dv, current.blh + dblh)
        mech.reset(corrected)
        self.assertIs(mech.state, corrected)
        for old, new in zip(before, mech.states):
            self.assertEqual(new.time, old.time)
            np.testing.assert_allclose(new.velocity - old.velocity, dv, atol=1e-12)
            np.testing.assert_allclose(new.blh - old.blh, dblh, atol=1e-12)
            np.testing.assert_allclose(new.euler[2], 0.01, atol=1e-6)
        state = mech.mechanize(static_sample(4 * DT))
        np.testing.assert_allclose(state.velocity, corrected.velocity, atol=1e-4)


if __name__ == '__main__':
    unittest.main()
