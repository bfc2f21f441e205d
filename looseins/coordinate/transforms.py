# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Coordinate transformation utilities"""

import numpy as np

from ..core.constants import E2_WGS84, RE_WGS84


def ecef2llh(xyz: np.ndarray) -> np.ndarray:
    """Convert ECEF coordinates to geodetic coordinates

    Iterates on the auxiliary z coordinate until it changes by less than
    a micrometre, which keeps the latitude exact at the poles where the
    p / cos(lat) form breaks down.

    Parameters
    ----------
    xyz : np.ndarray
        ECEF coordinates [x, y, z] in meters

    Returns
    -------
    np.ndarray
        Geodetic coordinates [lat, lon, height] where:
        - lat: latitude in radians (-π/2 to π/2)
        - lon: longitude in radians (-π to π)
        - height: height above WGS84 ellipsoid in meters

    Examples
    --------
    >>> ecef = np.array([-2267749.0, 5009154.0, 3221290.0])
    >>> llh = ecef2llh(ecef)
    """
    x, y, z0 = float(xyz[0]), float(xyz[1]), float(xyz[2])
    r2 = x * x + y * y
    z = z0
    zk = 0.0
    v = RE_WGS84
    for _ in range(20):
        if abs(z - zk) < 1e-6:
            break
        zk = z
        sinp = z / np.sqrt(r2 + z * z)
        v = RE_WGS84 / np.sqrt(1.0 - E2_WGS84 * sinp * sinp)
        z = z0 + v * E2_WGS84 * sinp

    if r2 > 1e-12:
        lat = np.arctan(z / np.sqrt(r2))
        lon = np.arctan2(y, x)
    else:
        lat = np.pi / 2.0 if z0 > 0.0 else -np.pi / 2.0
        lon = 0.0
    h = np.sqrt(r2 + z * z) - v
    return np.array([lat, lon, h])


def llh2ecef(llh: np.ndarray) -> np.ndarray:
    """Convert geodetic coordinates [lat, lon, height] to ECEF coordinates

    Parameters
    ----------
    llh : np.ndarray
        Geodetic coordinates, lat/lon in radians, height in meters

    Returns
    -------
    np.ndarray
        ECEF coordinates [x, y, z] in meters
    """
    lat, lon, h = llh[0], llh[1], llh[2]

    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)

    N = RE_WGS84 / np.sqrt(1.0 - E2_WGS84 * sin_lat**2)

    x = (N + h) * cos_lat * np.cos(lon)
    y = (N + h) * cos_lat * np.sin(lon)
    z = (N * (1.0 - E2_WGS84) + h) * sin_lat

    return np.array([x, y, z])


def ecef2enu_dcm(org_llh: np.ndarray) -> np.ndarray:
    """Rotation matrix from ECEF to local ENU at the given origin"""
    lat, lon = org_llh[0], org_llh[1]
    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    sin_lon = np.sin(lon)
    cos_lon = np.cos(lon)

    return np.array([
        [-sin_lon, cos_lon, 0.0],
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat]
    ])


def ecef2ned_dcm(org_llh: np.ndarray) -> np.ndarray:
    """Rotation matrix from ECEF to local NED at the given origin"""
    R = ecef2enu_dcm(org_llh)
    return np.array([R[1], R[0], -R[2]])


def ecef2enu(xyz: np.ndarray, org_llh: np.ndarray) -> np.ndarray:
    """Convert ECEF to local ENU coordinates relative to an origin

    Parameters
    ----------
    xyz : np.ndarray
        ECEF coordinates [x, y, z] in meters
    org_llh : np.ndarray
        Origin geodetic coordinates [lat, lon, height] (rad, rad, m)

    Returns
    -------
    np.ndarray
        Local ENU coordinates [e, n, u] in meters
    """
    return ecef2enu_dcm(org_llh) @ (np.asarray(xyz, dtype=float) - llh2ecef(org_llh))


def enu2ecef(enu: np.ndarray, org_llh: np.ndarray) -> np.ndarray:
    """Convert local ENU coordinates to ECEF (inverse of ecef2enu)"""
    return llh2ecef(org_llh) + ecef2enu_dcm(org_llh).T @ np.asarray(enu, dtype=float)


def ecef2ned(xyz: np.ndarray, org_llh: np.ndarray) -> np.ndarray:
    """Convert ECEF to local NED coordinates relative to an origin"""
    e, n, u = ecef2enu(xyz, org_llh)
    return np.array([n, e, -u])


def ned2ecef(ned: np.ndarray, org_llh: np.ndarray) -> np.ndarray:
    """Convert local NED coordinates to ECEF (inverse of ecef2ned)"""
    return enu2ecef(np.array([ned[1], ned[0], -ned[2]]), org_llh)


def covecef2enu(llh: np.ndarray, P_ecef: np.ndarray) -> np.ndarray:
    """Rotate a 3x3 ECEF covariance into the local ENU frame"""
    R = ecef2enu_dcm(llh)
    return R @ P_ecef @ R.T
