import unittest

import numpy as np

from looseins.coordinate.geodetic import (
    blh_to_ned_matrix, earth_rate_ned, gravity_ned, ned_to_blh_matrix,
    normal_gravity, radii_of_curvature, transport_rate_ned
)
from looseins.coordinate.transforms import (
    covecef2enu, ecef2enu, ecef2enu_dcm, ecef2llh, ecef2ned, ecef2ned_dcm,
    enu2ecef, llh2ecef, ned2ecef
)
from looseins.core.constants import RE_WGS84, WIE


class TestCoordinateTransforms(unittest.TestCase):

    def setUp(self):
        self.tokyo_llh = np.array([np.radians(35.6762), np.radians(139.6503), 40.0])
        self.points = [
            self.tokyo_llh,
            np.array([np.radians(40.7128), np.radians(-74.0060), 10.0]),
            np.array([0.0, 0.0, 0.0]),
            np.array([np.radians(90.0), 0.0, 0.0]),
            np.array([np.radians(-35.0), np.radians(150.0), 100.0]),
        ]

    def test_llh2ecef_ecef2llh_round_trip(self):
        for llh in self.points:
            back = ecef2llh(llh2ecef(llh))
            np.testing.assert_allclose(back[:2], llh[:2], atol=1e-10)
            self.assertAlmostEqual(back[2], llh[2], delta=1e-4)

    def test_random_round_trip(self):
        rng = np.random.default_rng(2024)
        lat = np.radians(rng.uniform(-90.0, 90.0, 2000))
        lon = np.radians(rng.uniform(-180.0, 180.0, 2000))
        hgt = rng.uniform(-500.0, 20000.0, 2000)
        for llh in np.column_stack([lat, lon, hgt]):
            back = ecef2llh(llh2ecef(llh))
            np.testing.assert_allclose(back[:2], llh[:2], atol=1e-8)
            self.assertAlmostEqual(back[2], llh[2], delta=1e-6)

    def test_equator(self):
        np.testing.assert_allclose(llh2ecef([0.0, 0.0, 0.0]), [RE_WGS84, 0.0, 0.0], atol=1e-6)

    def test_local_frames(self):
        origin = llh2ecef(self.tokyo_llh)
        up = ecef2enu_dcm(self.tokyo_llh)[2]
        point = origin + 100.0 * up
        np.testing.assert_allclose(ecef2enu(point, self.tokyo_llh), [0.0, 0.0, 100.0], atol=1e-6)
        np.testing.assert_allclose(ecef2ned(point, self.tokyo_llh), [0.0, 0.0, -100.0], atol=1e-6)

    def test_local_round_trip(self):
        enu = np.array([1234.5, -678.9, 12.3])
        xyz = enu2ecef(enu, self.tokyo_llh)
        np.testing.assert_allclose(ecef2enu(xyz, self.tokyo_llh), enu, atol=1e-6)
        ned = np.array([enu[1], enu[0], -enu[2]])
        np.testing.assert_allclose(ned2ecef(ned, self.tokyo_llh), xyz, atol=1e-6)

    def test_rotation_matrices_orthonormal(self):
        for R in (ecef2enu_dcm(self.tokyo_llh), ecef2ned_dcm(self.tokyo_llh)):
            np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-12)

    def test_covariance_rotation(self):
        P = np.diag([1.0, 2.0, 3.0])
        P_enu = covecef2enu(self.tokyo_llh, P)
        self.assertAlmostEqual(np.trace(P_enu), 6.0)
        np.testing.assert_allclose(P_enu, P_enu.T, atol=1e-12)


class TestGeodetic(unittest.TestCase):

    def test_radii(self):
        rm, rn = radii_of_curvature(0.0)
        self.assertAlmostEqual(rn, RE_WGS84)
        self.assertLess(rm, rn)
        rm_pole, rn_pole = radii_of_curvature(np.pi / 2)
        self.assertAlmostEqual(rm_pole, rn_pole, delta=1e-6)

    def test_normal_gravity(self):
        self.assertAlmostEqual(normal_gravity(0.0, 0.0), 9.7803267715, places=9)
        self.assertGreater(normal_gravity(np.pi / 2, 0.0), normal_gravity(0.0, 0.0))
        self.assertLess(normal_gravity(0.5, 1000.0), normal_gravity(0.5, 0.0))
        blh = np.array([0.5, 2.0, 100.0])
        np.testing.assert_allclose(gravity_ned(blh), [0.0, 0.0, normal_gravity(0.5, 100.0)])

    def test_earth_rate(self):
        w = earth_rate_ned(np.radians(30.0))
        self.assertAlmostEqual(np.linalg.norm(w), WIE)
        self.assertLess(w[2], 0.0)

    def test_transport_rate_at_rest(self):
        np.testing.assert_array_equal(transport_rate_ned(np.array([0.6, 2.0, 10.0]), np.zeros(3)),
                                      np.zeros(3))

    def test_transport_rate_east(self):
        blh = np.array([0.0, 0.0, 0.0])
        w = transport_rate_ned(blh, np.array([0.0, 10.0, 0.0]))
        self.assertAlmostEqual(w[0], 10.0 / RE_WGS84)

    def test_blh_matrices_inverse(self):
        blh = np.array([0.6, 2.0, 50.0])
        np.testing.assert_allclose(ned_to_blh_matrix(blh) @ blh_to_ned_matrix(blh),
                                   np.eye(3), atol=1e-15)


if __name__ == '__main__':
    unittest.main()
